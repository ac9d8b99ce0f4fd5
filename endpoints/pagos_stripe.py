from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from database import conexion
from schemas.auth import UsuarioToken
from schemas.facturas import FacturaRead
from schemas.checkout import CheckoutSessionRequest, CheckoutSessionResponse
from services.stripe_service import StripeService, get_stripe_service
from utils.dependencies import get_current_user
from utils.logging_utils import log_event
from utils.rate_limiter import limiter

router = APIRouter(prefix="/stripe", tags=["Stripe"])


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
def crear_checkout_session(
    datos: CheckoutSessionRequest,
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
):
    return stripe_service.iniciar_checkout(
        db,
        datos.reserva_id,
        datos.monto,
        descripcion=datos.descripcion,
        email=current_user.email,
        pago_id=datos.pago_id,
    )


@router.get("/verify-session/{session_id}")
def verificar_sesion(
    session_id: str,
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
):
    return {"success": True, "data": stripe_service.verificar_sesion(db, session_id)}


@router.post("/webhook")
@limiter.exempt
async def stripe_webhook(
    request: Request,
    db: Session = Depends(conexion.get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
):
    """
    Webhook de Stripe. Verifica la firma con STRIPE_WEBHOOK_SECRET y procesa:
    - checkout.session.completed: confirma el pago y emite la factura
    - payment_intent.succeeded: solo se registra
    """
    payload = await request.body()
    evento = stripe_service.construir_evento(payload, request.headers.get("stripe-signature"))
    return await run_in_threadpool(stripe_service.procesar_evento, db, evento)


@router.post("/generate-invoice/{session_id}", response_model=FacturaRead)
def generar_factura_sesion(
    session_id: str,
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
):
    return stripe_service.facturar_sesion(db, session_id)
