"""
Pruebas de Stripe Checkout y del webhook con el SDK simulado.
"""
import hashlib
import hmac
import json
import time
from decimal import Decimal
from unittest.mock import patch

import stripe

from conftest import HEADERS_ADMIN, HEADERS_USUARIO
from services.stripe_service import StripeService, get_stripe_service

SESION = {"id": "cs_test_123", "url": "https://checkout.stripe.com/c/pay/cs_test_123"}
FIRMA = {"stripe-signature": "t=1700000000,v1=firma"}


def _crear_reserva(client):
    area = client.post(
        "/api/booking",
        json={"nombre": "Quincho", "capacidad": 20, "costo_hora": "50.00"},
        headers=HEADERS_ADMIN,
    ).json()
    return client.post(
        "/api/reserva",
        json={"area_id": area["id"], "inicio": "2024-01-01T10:00:00", "fin": "2024-01-01T12:00:00"},
        headers=HEADERS_USUARIO,
    ).json()


def _evento(tipo, objeto):
    return json.dumps({"id": "evt_1", "type": tipo, "data": {"object": objeto}}).encode()


def _firma(payload, secreto):
    marca = int(time.time())
    firma = hmac.new(secreto.encode(), f"{marca}.{payload.decode()}".encode(), hashlib.sha256).hexdigest()
    return {"stripe-signature": f"t={marca},v1={firma}"}


def _enviar_webhook(client, payload):
    with patch.object(stripe.Webhook, "construct_event", side_effect=lambda cuerpo, firma, secreto: json.loads(cuerpo)):
        return client.post("/api/stripe/webhook", content=payload, headers=FIRMA)


class TestCheckout:

    def test_crea_sesion_para_el_pago_pendiente(self, client):
        creada = _crear_reserva(client)

        with patch.object(stripe.checkout.Session, "create", return_value=SESION) as create:
            response = client.post(
                "/api/stripe/create-checkout-session",
                json={"reserva_id": creada["reserva"]["id"], "monto": "100.00"},
                headers=HEADERS_USUARIO,
            )

        assert response.status_code == 200
        assert response.json() == {
            "session_id": "cs_test_123",
            "checkout_url": SESION["url"],
            "pago_id": creada["pago"]["id"],
        }
        parametros = create.call_args.kwargs
        assert parametros["line_items"][0]["price_data"]["unit_amount"] == 10000
        assert parametros["metadata"] == {
            "reservaId": str(creada["reserva"]["id"]),
            "pagoId": str(creada["pago"]["id"]),
        }
        assert parametros["customer_email"] == "ana@mail.com"

        pago = client.get(f"/api/pago-reserva/{creada['pago']['id']}", headers=HEADERS_USUARIO).json()
        assert pago["metodo_pago"] == "STRIPE"
        assert pago["stripe_session_id"] == "cs_test_123"

    def test_reserva_con_stripe(self, client):
        area = client.post(
            "/api/booking",
            json={"nombre": "Terraza", "capacidad": 8, "costo_hora": "30.00"},
            headers=HEADERS_ADMIN,
        ).json()

        with patch.object(stripe.checkout.Session, "create", return_value=SESION):
            response = client.post(
                "/api/reserva/with-stripe",
                json={"area_id": area["id"], "inicio": "2024-01-01T10:00:00", "fin": "2024-01-01T11:00:00"},
                headers=HEADERS_USUARIO,
            )

        assert response.status_code == 201
        body = response.json()
        assert body["stripe"]["checkout_url"] == SESION["url"]
        assert body["pago"]["stripe_session_id"] == "cs_test_123"

    def test_error_de_stripe(self, client):
        creada = _crear_reserva(client)

        with patch.object(stripe.checkout.Session, "create", side_effect=stripe.StripeError("sin conexión")):
            response = client.post(
                "/api/stripe/create-checkout-session",
                json={"reserva_id": creada["reserva"]["id"], "monto": "100.00"},
                headers=HEADERS_USUARIO,
            )

        assert response.status_code == 502
        assert response.json()["success"] is False


class TestWebhook:

    def test_sesion_completada_confirma_y_factura(self, client):
        creada = _crear_reserva(client)
        objeto = {
            "id": "cs_test_123",
            "payment_intent": "pi_123",
            "metadata": {"reservaId": str(creada["reserva"]["id"]), "pagoId": str(creada["pago"]["id"])},
        }

        response = _enviar_webhook(client, _evento("checkout.session.completed", objeto))

        assert response.status_code == 200
        assert response.json() == {"received": True, "processed": True, "pago_id": creada["pago"]["id"]}
        estado = client.get(f"/api/pago-reserva/{creada['pago']['id']}/estado", headers=HEADERS_USUARIO).json()
        assert estado["data"]["pago"]["estado"] == "ACCEPTED"
        assert estado["data"]["pago"]["transaccion_id"] == "pi_123"
        assert estado["data"]["reserva"]["estado"] == "CONFIRMED"
        assert estado["data"]["factura"]["numero_factura"] == "FAC-00000001"

    def test_evento_repetido_no_duplica_factura(self, client):
        creada = _crear_reserva(client)
        payload = _evento("checkout.session.completed", {
            "id": "cs_test_123",
            "metadata": {"reservaId": str(creada["reserva"]["id"]), "pagoId": str(creada["pago"]["id"])},
        })

        _enviar_webhook(client, payload)
        _enviar_webhook(client, payload)

        assert len(client.get("/api/factura", headers=HEADERS_ADMIN).json()) == 1

    def test_sin_pago_en_metadata_usa_el_primer_pendiente(self, client):
        creada = _crear_reserva(client)
        objeto = {"id": "cs_otro", "metadata": {"reservaId": str(creada["reserva"]["id"])}}

        response = _enviar_webhook(client, _evento("checkout.session.completed", objeto))

        assert response.json()["pago_id"] == creada["pago"]["id"]

    def test_sesion_desconocida(self, client):
        objeto = {"id": "cs_perdida", "metadata": {}}
        response = _enviar_webhook(client, _evento("checkout.session.completed", objeto))
        assert response.json() == {"received": True, "processed": False}

    def test_evento_no_manejado(self, client):
        response = _enviar_webhook(client, _evento("customer.created", {"id": "cus_1"}))
        assert response.status_code == 200
        assert response.json()["processed"] is False

    def test_firma_invalida(self, client):
        error = stripe.SignatureVerificationError("firma no coincide", FIRMA["stripe-signature"])
        with patch.object(stripe.Webhook, "construct_event", side_effect=error):
            response = client.post("/api/stripe/webhook", content=_evento("checkout.session.completed", {}), headers=FIRMA)

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_sin_header_de_firma(self, client):
        response = client.post("/api/stripe/webhook", content=b"{}")
        assert response.status_code == 400

    def test_firma_real_con_el_secreto_configurado(self, client):
        creada = _crear_reserva(client)
        payload = _evento("checkout.session.completed", {
            "id": "cs_test_123",
            "metadata": {"reservaId": str(creada["reserva"]["id"]), "pagoId": str(creada["pago"]["id"])},
        })

        response = client.post("/api/stripe/webhook", content=payload, headers=_firma(payload, "whsec_pruebas"))

        assert response.status_code == 200
        assert response.json()["processed"] is True

    def test_firma_real_con_otro_secreto(self, client):
        creada = _crear_reserva(client)
        payload = _evento("checkout.session.completed", {
            "id": "cs_test_123",
            "metadata": {"reservaId": str(creada["reserva"]["id"]), "pagoId": str(creada["pago"]["id"])},
        })

        response = client.post("/api/stripe/webhook", content=payload, headers=_firma(payload, "whsec_otra"))

        assert response.status_code == 400
        estado = client.get(f"/api/pago-reserva/{creada['pago']['id']}/estado", headers=HEADERS_USUARIO).json()
        assert estado["data"]["pago"]["estado"] == "PENDING"


class TestFacturaDeSesion:

    def test_genera_factura_de_sesion_pagada(self, client):
        creada = _crear_reserva(client)
        sesion = {
            **SESION,
            "payment_status": "paid",
            "status": "complete",
            "payment_intent": "pi_999",
            "amount_total": 10000,
            "metadata": {"reservaId": str(creada["reserva"]["id"]), "pagoId": str(creada["pago"]["id"])},
        }

        with patch.object(stripe.checkout.Session, "retrieve", return_value=sesion):
            response = client.post("/api/stripe/generate-invoice/cs_test_123", headers=HEADERS_USUARIO)
            verificada = client.get("/api/stripe/verify-session/cs_test_123", headers=HEADERS_USUARIO)

        assert response.status_code == 200
        assert response.json()["numero_factura"] == "FAC-00000001"
        datos = verificada.json()["data"]
        assert datos["payment_status"] == "paid"
        assert datos["pago"]["estado"] == "ACCEPTED"
        assert datos["factura"]["numero_factura"] == "FAC-00000001"

    def test_sesion_no_pagada(self, client):
        creada = _crear_reserva(client)
        sesion = {**SESION, "payment_status": "unpaid", "metadata": {"pagoId": str(creada["pago"]["id"])}}

        with patch.object(stripe.checkout.Session, "retrieve", return_value=sesion):
            response = client.post("/api/stripe/generate-invoice/cs_test_123", headers=HEADERS_USUARIO)

        assert response.status_code == 409


class StripeFalso(StripeService):
    """Pasarela sin red: registra las sesiones pedidas"""

    def __init__(self):
        super().__init__(webhook_secret="whsec_falso")
        self.sesiones = []

    def crear_sesion(self, reserva_id, pago_id, monto, descripcion=None, email=None):
        self.sesiones.append((reserva_id, pago_id, monto))
        return {"id": f"cs_falsa_{pago_id}", "url": f"https://pagos.test/{pago_id}"}


class TestPasarelaInyectada:

    def test_checkout_con_dependencia_reemplazada(self, client):
        from main import app

        falso = StripeFalso()
        app.dependency_overrides[get_stripe_service] = lambda: falso
        creada = _crear_reserva(client)

        response = client.post(
            "/api/stripe/create-checkout-session",
            json={"reserva_id": creada["reserva"]["id"], "monto": "100.00", "pago_id": creada["pago"]["id"]},
            headers=HEADERS_USUARIO,
        )

        assert response.status_code == 200
        assert response.json()["session_id"] == f"cs_falsa_{creada['pago']['id']}"
        assert falso.sesiones == [(creada["reserva"]["id"], creada["pago"]["id"], Decimal("100.00"))]

    def test_pago_ya_procesado(self, client):
        from main import app

        app.dependency_overrides[get_stripe_service] = StripeFalso
        creada = _crear_reserva(client)
        client.post(f"/api/pago-reserva/confirmar/{creada['pago']['id']}", headers=HEADERS_ADMIN)

        response = client.post(
            "/api/stripe/create-checkout-session",
            json={"reserva_id": creada["reserva"]["id"], "monto": "100.00", "pago_id": creada["pago"]["id"]},
            headers=HEADERS_USUARIO,
        )

        assert response.status_code == 409
