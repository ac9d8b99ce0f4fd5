"""
Pruebas de la API: flujo completo reserva -> pago -> factura -> descarga y
políticas de acceso por rol.
"""
from decimal import Decimal

from jose import jwt

from conftest import HEADERS_ADMIN, HEADERS_OTRO, HEADERS_SUPER, HEADERS_USUARIO

RESERVA = {"inicio": "2024-01-01T10:00:00", "fin": "2024-01-01T12:00:00"}


def _crear_area(client, **datos):
    body = {"nombre": "Salón de eventos", "capacidad": 40, "costo_hora": "50.00", **datos}
    response = client.post("/api/booking", json=body, headers=HEADERS_ADMIN)
    assert response.status_code == 201
    return response.json()


def _crear_reserva(client, area_id, headers=HEADERS_USUARIO, **datos):
    return client.post("/api/reserva", json={"area_id": area_id, **RESERVA, **datos}, headers=headers)


class TestFlujoCompleto:

    def test_reserva_pago_factura_y_descarga(self, client):
        area = _crear_area(client)

        response = _crear_reserva(client, area["id"])
        assert response.status_code == 201
        creada = response.json()
        assert Decimal(creada["reserva"]["costo"]) == Decimal("100")
        assert creada["pago"]["estado"] == "PENDING"
        assert creada["confirmacion"]["verificada"] == "PENDING"
        pago_id = creada["pago"]["id"]
        reserva_id = creada["reserva"]["id"]

        response = client.post(f"/api/pago-reserva/confirmar/{pago_id}", headers=HEADERS_ADMIN)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["estado"] == "ACCEPTED"
        assert body["factura"]["numero_factura"] == "FAC-00000001"

        response = client.get(f"/api/reserva/{reserva_id}", headers=HEADERS_USUARIO)
        assert response.json()["estado"] == "CONFIRMED"

        response = client.get(f"/api/reserva/{reserva_id}/with-factura", headers=HEADERS_USUARIO)
        assert response.status_code == 200
        factura = response.json()["factura"]
        assert Decimal(factura["total"]) == Decimal("100")

        detalle = client.get(f"/api/factura/{factura['id']}", headers=HEADERS_ADMIN).json()
        assert detalle["ruta_pdf"]

        response = client.get(f"/api/factura/{factura['id']}/descargar", headers=HEADERS_USUARIO)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "factura_FAC-00000001_" in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

        detalle = client.get(f"/api/factura/{factura['id']}", headers=HEADERS_ADMIN).json()
        assert detalle["cliente_nombre"] == "Ana Perez"
        assert detalle["cliente_documento"] == "7"

    def test_confirmar_dos_veces_emite_una_factura(self, client):
        area = _crear_area(client)
        pago_id = _crear_reserva(client, area["id"]).json()["pago"]["id"]

        primera = client.post(f"/api/pago-reserva/confirmar/{pago_id}", headers=HEADERS_ADMIN).json()
        segunda = client.post(f"/api/pago-reserva/confirmar/{pago_id}", headers=HEADERS_ADMIN).json()

        assert primera["factura"]["id"] == segunda["factura"]["id"]
        assert len(client.get("/api/factura", headers=HEADERS_ADMIN).json()) == 1

    def test_flujo_qr(self, client):
        area = _crear_area(client)
        reserva_id = _crear_reserva(client, area["id"]).json()["reserva"]["id"]

        response = client.post(f"/api/pago-reserva/qr/generar/{reserva_id}", headers=HEADERS_USUARIO)
        assert response.status_code == 201
        qr = response.json()
        assert qr["moneda"] == "BOB"
        assert qr["qr_imagen"].startswith("data:image/png;base64,")

        response = client.post(
            f"/api/pago-reserva/qr/confirmar/{qr['pago_id']}",
            json={"referencia_pago": "REF-123"},
            headers=HEADERS_USUARIO,
        )
        assert response.status_code == 200
        assert response.json()["data"]["referencia_pago"] == "REF-123"

        response = client.post(f"/api/pago-reserva/qr/confirmar/{qr['pago_id']}", headers=HEADERS_USUARIO)
        assert response.status_code == 409
        assert response.json()["success"] is False


class TestValidaciones:

    def test_horario_ocupado(self, client):
        area = _crear_area(client)
        assert _crear_reserva(client, area["id"]).status_code == 201

        response = _crear_reserva(client, area["id"], headers=HEADERS_OTRO)

        assert response.status_code == 409
        assert set(response.json()) == {"success", "message"}

    def test_fin_antes_de_inicio(self, client):
        area = _crear_area(client)
        response = _crear_reserva(client, area["id"], inicio="2024-01-01T12:00:00", fin="2024-01-01T10:00:00")
        assert response.status_code == 422

    def test_fechas_con_zona_horaria_se_guardan_en_utc(self, client):
        area = _crear_area(client)
        response = _crear_reserva(
            client, area["id"], inicio="2024-01-01T10:00:00-04:00", fin="2024-01-01T11:00:00-04:00"
        )
        assert response.status_code == 201
        assert response.json()["reserva"]["inicio"].startswith("2024-01-01T14:00:00")

    def test_reserva_inexistente(self, client):
        response = client.get("/api/reserva/999", headers=HEADERS_USUARIO)
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_area_con_reservas_no_se_elimina(self, client):
        area = _crear_area(client)
        _crear_reserva(client, area["id"])

        response = client.delete(f"/api/booking/{area['id']}", headers=HEADERS_ADMIN)

        assert response.status_code == 409


class TestPoliticasDeAcceso:

    def test_sin_identidad(self, client):
        response = client.get("/api/reserva")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_usuario_comun_no_crea_areas(self, client):
        response = client.post(
            "/api/booking",
            json={"nombre": "Terraza", "capacidad": 5, "costo_hora": "10.00"},
            headers=HEADERS_USUARIO,
        )
        assert response.status_code == 403

    def test_listado_filtrado_por_usuario(self, client):
        area = _crear_area(client)
        _crear_reserva(client, area["id"])
        _crear_reserva(client, area["id"], headers=HEADERS_OTRO, inicio="2024-01-02T10:00:00", fin="2024-01-02T11:00:00")

        propias = client.get("/api/reserva", headers=HEADERS_USUARIO).json()
        todas = client.get("/api/reserva", headers=HEADERS_ADMIN).json()

        assert [r["usuario_id"] for r in propias] == ["7"]
        assert len(todas) == 2

    def test_factura_de_reserva_ajena(self, client):
        area = _crear_area(client)
        reserva_id = _crear_reserva(client, area["id"]).json()["reserva"]["id"]

        response = client.get(f"/api/reserva/{reserva_id}/with-factura", headers=HEADERS_OTRO)

        assert response.status_code == 403

    def test_solo_super_usuario_elimina(self, client):
        area = _crear_area(client)
        creada = _crear_reserva(client, area["id"]).json()
        reserva_id = creada["reserva"]["id"]
        client.post(f"/api/pago-reserva/confirmar/{creada['pago']['id']}", headers=HEADERS_ADMIN)

        assert client.delete(f"/api/reserva/{reserva_id}", headers=HEADERS_ADMIN).status_code == 403

        response = client.delete(f"/api/reserva/{reserva_id}", headers=HEADERS_SUPER)
        assert response.status_code == 200
        assert response.json()["data"] == {"facturas": 1, "pagos": 1, "confirmaciones": 1}
        assert client.get(f"/api/reserva/{reserva_id}", headers=HEADERS_SUPER).status_code == 404

    def test_auditoria_registra_acciones(self, client):
        area = _crear_area(client)
        _crear_reserva(client, area["id"])

        response = client.get("/api/auditoria", params={"tabla": "reservas"}, headers=HEADERS_ADMIN)

        assert response.status_code == 200
        logs = response.json()
        assert logs[0]["accion"] == "CREATE"
        assert logs[0]["usuario_id"] == "7"
        assert client.get("/api/auditoria", headers=HEADERS_USUARIO).status_code == 403


class TestTokenJWT:

    def test_token_valido(self, client):
        token = jwt.encode(
            {"sub": "7", "firstName": "Ana", "role": "USER_CASUAL", "email": "ana@mail.com"},
            "clave-de-pruebas",
            algorithm="HS256",
        )
        area = _crear_area(client)

        response = _crear_reserva(client, area["id"], headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 201
        assert response.json()["reserva"]["usuario_id"] == "7"
        assert response.json()["reserva"]["usuario_nombre"] == "Ana"

    def test_token_con_otra_clave(self, client):
        token = jwt.encode({"sub": "7"}, "otra-clave", algorithm="HS256")
        response = client.get("/api/reserva", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["message"] == "Token inválido"

    def test_token_expirado(self, client):
        token = jwt.encode({"sub": "7", "exp": 1}, "clave-de-pruebas", algorithm="HS256")
        response = client.get("/api/reserva", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["message"] == "Token expirado"
