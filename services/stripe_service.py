"""
Integración con Stripe Checkout: sesiones de pago y webhook
"""
import logging
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

import stripe
from fastapi import status
from sqlalchemy.orm import Session

import config
from models.factura import Factura
from models.pago import MetodoPago, PagoReserva, PagoStatus
from repositories.pagos import PagoRepositorio
from repositories.reservas import ReservaRepositorio
from services.factura_service import FacturaService
from services.pago_service import PagoService
from utils.errors import ConflictoError, NoEncontradoError, ServicioExternoError
from utils.logging_utils import log_event

stripe.api_key = config.STRIPE_SECRET_KEY

NOMBRE_PRODUCTO = "Reserva de Área Común"


def _campo(objeto: Any, clave: str) -> Any:
    """Lectura tolerante para dicts y StripeObject"""
    if objeto is None:
        return None
    try:
        return objeto[clave]
    except (KeyError, TypeError):
        return None


def _a_centavos(monto: Decimal) -> int:
    return int((Decimal(str(monto)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _entero(valor: Any) -> Optional[int]:
    try:
        return int(valor)
    except (TypeError, ValueError):
        return None


def _error_stripe(e: "stripe.StripeError") -> ServicioExternoError:
    codigo = getattr(e, "code", None)
    mensaje = config.STRIPE_ERRORS.get(codigo) or getattr(e, "user_message", None) or str(e)
    return ServicioExternoError("stripe", mensaje)


class StripeService:
    """Envoltorio del SDK de Stripe más el procesamiento de sus eventos"""

    def __init__(self, webhook_secret: Optional[str] = None):
        self.webhook_secret = webhook_secret or config.STRIPE_WEBHOOK_SECRET

    # ========== LLAMADAS AL SDK ==========

    def crear_sesion(
        self,
        reserva_id: int,
        pago_id: int,
        monto: Decimal,
        descripcion: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Any:
        producto = {"name": NOMBRE_PRODUCTO}
        if descripcion:
            producto["description"] = descripcion

        parametros = {
            "payment_method_types": ["card"],
            "mode": "payment",
            "line_items": [{
                "price_data": {
                    "currency": config.STRIPE_CURRENCY,
                    "product_data": producto,
                    "unit_amount": _a_centavos(monto),
                },
                "quantity": 1,
            }],
            "success_url": f"{config.FRONTEND_URL}/reservas/pago-exitoso?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{config.FRONTEND_URL}/reservas/pago-cancelado?reserva_id={reserva_id}",
            "metadata": {"reservaId": str(reserva_id), "pagoId": str(pago_id)},
            "expires_at": int(time.time()) + config.STRIPE_SESSION_MINUTOS * 60,
        }
        if email:
            parametros["customer_email"] = email

        try:
            return stripe.checkout.Session.create(**parametros)
        except stripe.StripeError as e:
            log_event("stripe", email or "anonimo", "Error creando sesión", f"reserva={reserva_id} error={e}")
            raise _error_stripe(e)

    def obtener_sesion(self, session_id: str) -> Any:
        try:
            return stripe.checkout.Session.retrieve(session_id)
        except stripe.InvalidRequestError:
            raise NoEncontradoError("Sesión de Stripe", session_id)
        except stripe.StripeError as e:
            raise _error_stripe(e)

    def construir_evento(self, payload: bytes, firma: Optional[str]) -> Any:
        """
        Verifica la firma del webhook y retorna el evento verificado (stripe.Event).

        Raises:
            ServicioExternoError (400): payload inválido o firma incorrecta
        """
        if not firma:
            raise ServicioExternoError("stripe", "Falta el header stripe-signature", status.HTTP_400_BAD_REQUEST)
        try:
            evento = stripe.Webhook.construct_event(payload, firma, self.webhook_secret)
        except ValueError:
            log_event("stripe", "webhook", "Invalid payload", "ValueError")
            raise ServicioExternoError("stripe", "Payload inválido", status.HTTP_400_BAD_REQUEST)
        except stripe.SignatureVerificationError:
            log_event("stripe", "webhook", "Invalid signature", "SignatureVerificationError")
            raise ServicioExternoError("stripe", "Firma del webhook inválida", status.HTTP_400_BAD_REQUEST)
        log_event("stripe", "webhook", "Evento recibido", f"tipo={_campo(evento, 'type')} id={_campo(evento, 'id')}")
        return evento

    # ========== FLUJOS ==========

    def iniciar_checkout(
        self,
        db: Session,
        reserva_id: int,
        monto: Decimal,
        descripcion: Optional[str] = None,
        email: Optional[str] = None,
        pago_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Abre la sesión de pago para el pago indicado o el primer pago pendiente de la reserva"""
        if ReservaRepositorio(db).obtener(reserva_id) is None:
            raise NoEncontradoError("Reserva", reserva_id)

        pagos = PagoRepositorio(db)
        if pago_id is not None:
            pago = pagos.obtener(pago_id)
            if pago is None or pago.reserva_id != reserva_id:
                raise NoEncontradoError("Pago", pago_id)
        else:
            pago = pagos.primer_pendiente_por_reserva(reserva_id)
            if pago is None:
                pago = PagoService.crear(db, reserva_id, monto, metodo_pago=MetodoPago.STRIPE)
        if pago.estado != PagoStatus.PENDING:
            raise ConflictoError("El pago ya fue procesado")

        sesion = self.crear_sesion(reserva_id, pago.id, monto, descripcion, email)
        pago.metodo_pago = MetodoPago.STRIPE
        pago.stripe_session_id = _campo(sesion, "id")
        db.commit()

        log_event("stripe", email or "anonimo", "Sesión de checkout creada", f"reserva={reserva_id} pago={pago.id}")
        return {"session_id": _campo(sesion, "id"), "checkout_url": _campo(sesion, "url"), "pago_id": pago.id}

    def _pago_de_sesion(self, db: Session, sesion: Any) -> Optional[PagoReserva]:
        """
        El pago se toma de metadata.pagoId. Las sesiones creadas sin ese dato
        caen al primer pago pendiente de metadata.reservaId.
        """
        pagos = PagoRepositorio(db)
        metadata = _campo(sesion, "metadata")
        pago_id = _entero(_campo(metadata, "pagoId"))
        if pago_id is not None:
            return pagos.obtener(pago_id)

        session_id = _campo(sesion, "id")
        if session_id:
            pago = pagos.por_stripe_session(session_id)
            if pago is not None:
                return pago

        reserva_id = _entero(_campo(metadata, "reservaId"))
        if reserva_id is None:
            return None
        log_event(
            "stripe", "webhook", "Sesión sin pagoId, usando primer pago pendiente",
            f"reserva={reserva_id} session={session_id}", nivel=logging.WARNING,
        )
        return pagos.primer_pendiente_por_reserva(reserva_id)

    def procesar_evento(self, db: Session, evento: Any) -> Dict[str, Any]:
        tipo = _campo(evento, "type")
        objeto = _campo(_campo(evento, "data"), "object") or {}

        if tipo == "checkout.session.completed":
            pago = self._pago_de_sesion(db, objeto)
            if pago is None:
                log_event("stripe", "webhook", "Pago no encontrado para la sesión", f"session={_campo(objeto, 'id')}")
                return {"received": True, "processed": False}
            pago = PagoService.confirmar(
                db,
                pago.id,
                transaccion_id=_campo(objeto, "payment_intent") or _campo(objeto, "id"),
                stripe_session_id=_campo(objeto, "id"),
                usuario="stripe-webhook",
            )
            return {"received": True, "processed": True, "pago_id": pago.id}

        if tipo == "payment_intent.succeeded":
            log_event("stripe", "webhook", "PaymentIntent exitoso", f"id={_campo(objeto, 'id')}")
        else:
            log_event("stripe", "webhook", f"Unhandled event type: {tipo}")
        return {"received": True, "processed": False}

    def verificar_sesion(self, db: Session, session_id: str) -> Dict[str, Any]:
        sesion = self.obtener_sesion(session_id)
        pago = self._pago_de_sesion(db, sesion)
        monto_total = _campo(sesion, "amount_total")

        reserva = pago.reserva if pago else None
        factura = pago.factura if pago else None
        return {
            "session_id": session_id,
            "status": _campo(sesion, "status"),
            "payment_status": _campo(sesion, "payment_status"),
            "monto_total": Decimal(monto_total) / 100 if monto_total is not None else None,
            "pago": None if pago is None else {"id": pago.id, "estado": pago.estado, "monto": pago.monto},
            "reserva": None if reserva is None else {"id": reserva.id, "estado": reserva.estado},
            "factura": None if factura is None else {
                "id": factura.id,
                "numero_factura": factura.numero_factura,
                "estado": factura.estado,
            },
        }

    def facturar_sesion(self, db: Session, session_id: str) -> Factura:
        """Confirma el pago de una sesión pagada (si hacía falta) y retorna su factura"""
        sesion = self.obtener_sesion(session_id)
        if _campo(sesion, "payment_status") != "paid":
            raise ConflictoError("La sesión de Stripe todavía no está pagada")

        pago = self._pago_de_sesion(db, sesion)
        if pago is None:
            raise NoEncontradoError("Pago de la sesión", session_id)

        PagoService.confirmar(
            db,
            pago.id,
            transaccion_id=_campo(sesion, "payment_intent") or session_id,
            stripe_session_id=session_id,
            usuario="stripe",
        )
        return FacturaService.generar_automatica(db, pago.id)


def get_stripe_service() -> StripeService:
    return StripeService()
