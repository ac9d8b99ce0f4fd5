from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session

from database import conexion
from schemas.auth import UsuarioToken
from schemas.facturas import FacturaResumen, ReservaConFactura
from schemas.reservas import (
    IngresoArea,
    ReservaCreadaResponse,
    ReservaCreate,
    ReservaDetalleRead,
    ReservaStripeCreate,
    ReservaStripeResponse,
    ReservaUpdate,
)
from services.auditoria_service import AuditoriaService
from services.reserva_service import ReservaService
from services.stripe_service import StripeService, get_stripe_service
from utils.dependencies import get_current_user, require_admin, require_super_user
from utils.logging_utils import log_event
from utils.timezone import to_utc_naive

router = APIRouter(prefix="/reserva", tags=["Reservas"])


def _respuesta_creada(reserva, confirmacion, pago) -> dict:
    return {"reserva": reserva, "confirmacion": confirmacion, "pago": pago}


@router.post("", response_model=ReservaCreadaResponse, status_code=status.HTTP_201_CREATED)
def crear_reserva(
    reserva: ReservaCreate,
    request: Request,
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    """
    Crea la reserva con su confirmación y su pago pendiente.
    Si no se envía costo se calcula con el costo por hora del área.
    """
    nueva, confirmacion, pago = ReservaService.crear(
        db, reserva.area_id, reserva.inicio, reserva.fin, current_user, costo=reserva.costo
    )
    AuditoriaService.registrar_accion(current_user, "CREATE", "reservas", nueva.id, None, reserva, request)
    return _respuesta_creada(nueva, confirmacion, pago)


@router.post("/with-stripe", response_model=ReservaStripeResponse, status_code=status.HTTP_201_CREATED)
def crear_reserva_con_stripe(
    reserva: ReservaStripeCreate,
    request: Request,
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
):
    """Crea la reserva y abre la sesión de Stripe Checkout para su pago"""
    nueva, confirmacion, pago = ReservaService.crear(
        db, reserva.area_id, reserva.inicio, reserva.fin, current_user, costo=reserva.costo
    )
    AuditoriaService.registrar_accion(current_user, "CREATE", "reservas", nueva.id, None, reserva, request)

    checkout = stripe_service.iniciar_checkout(
        db,
        nueva.id,
        pago.monto,
        descripcion=reserva.descripcion or f"Reserva #{nueva.id}",
        email=current_user.email,
        pago_id=pago.id,
    )
    db.refresh(pago)
    return {
        **_respuesta_creada(nueva, confirmacion, pago),
        "success": True,
        "message": "Reserva creada, complete el pago en Stripe",
        "stripe": checkout,
    }


@router.get("", response_model=List[ReservaDetalleRead])
def listar_reservas(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    return ReservaService.listar(db, current_user, skip=skip, limit=limit)


@router.get("/reportes/ingresos", response_model=List[IngresoArea])
def reporte_ingresos(
    fecha_inicio: Optional[datetime] = Query(None),
    fecha_fin: Optional[datetime] = Query(None),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    """Ingresos por área sobre pagos aceptados, filtrando por fecha de inicio de la reserva"""
    return ReservaService.reporte_ingresos(
        db,
        to_utc_naive(fecha_inicio) if fecha_inicio else None,
        to_utc_naive(fecha_fin) if fecha_fin else None,
    )


@router.get("/{reserva_id}", response_model=ReservaDetalleRead)
def obtener_reserva(
    reserva_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    return ReservaService.obtener(db, reserva_id)


@router.get("/{reserva_id}/with-factura", response_model=ReservaConFactura)
def obtener_reserva_con_factura(
    reserva_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    reserva, factura = ReservaService.obtener_con_factura(db, reserva_id, current_user)
    return {
        "reserva": reserva,
        "factura": FacturaResumen.model_validate(factura) if factura else None,
    }


@router.put("/{reserva_id}", response_model=ReservaDetalleRead)
def actualizar_reserva(
    datos: ReservaUpdate,
    request: Request,
    reserva_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    cambios = datos.model_dump(exclude_unset=True)
    reserva = ReservaService.actualizar(db, reserva_id, dict(cambios))
    log_event("reservas", current_user.nombre, "Reserva actualizada", f"id={reserva_id} campos={list(cambios)}")
    AuditoriaService.registrar_accion(current_user, "UPDATE", "reservas", reserva_id, None, cambios, request)
    return reserva


@router.delete("/{reserva_id}")
def eliminar_reserva(
    request: Request,
    reserva_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_super_user),
    db: Session = Depends(conexion.get_db),
):
    """Elimina la reserva con sus facturas, pagos y confirmación"""
    resumen = ReservaService.eliminar_en_cascada(db, reserva_id)
    log_event("reservas", current_user.nombre, "Reserva eliminada", f"id={reserva_id}")
    AuditoriaService.registrar_accion(current_user, "DELETE", "reservas", reserva_id, None, resumen, request)
    return {
        "success": True,
        "message": f"Reserva {reserva_id} eliminada junto con sus registros asociados",
        "data": resumen,
    }
