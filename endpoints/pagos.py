from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Request, Response, status
from sqlalchemy.orm import Session

from database import conexion
from schemas.auth import UsuarioToken
from schemas.facturas import FacturaResumen
from schemas.pagos import (
    ConfirmarPagoQRRequest,
    ConfirmarPagoRequest,
    PagoCreate,
    PagoQRResponse,
    PagoRead,
    PagoUpdate,
)
from services.auditoria_service import AuditoriaService
from services.pago_service import PagoService
from utils.dependencies import get_current_user, require_admin

router = APIRouter(prefix="/pago-reserva", tags=["Pagos"])


def _respuesta_confirmacion(pago, mensaje: str) -> dict:
    return {
        "success": True,
        "message": mensaje,
        "data": PagoRead.model_validate(pago),
        "factura": FacturaResumen.model_validate(pago.factura) if pago.factura else None,
    }


# ========== CREACIÓN ==========

@router.post("", response_model=PagoRead, status_code=status.HTTP_201_CREATED)
def crear_pago(
    datos: PagoCreate,
    request: Request,
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    pago = PagoService.crear(
        db,
        datos.reserva_id,
        datos.monto,
        metodo_pago=datos.metodo_pago,
        referencia_pago=datos.referencia_pago,
        transaccion_id=datos.transaccion_id,
        usuario=current_user,
    )
    AuditoriaService.registrar_accion(current_user, "CREATE", "pagos_reserva", pago.id, None, datos, request)
    return pago


@router.post("/automatico/{reserva_id}/{monto}", response_model=PagoRead, status_code=status.HTTP_201_CREATED)
def crear_pago_automatico(
    request: Request,
    reserva_id: int = Path(..., gt=0),
    monto: Decimal = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    pago = PagoService.crear_automatico(db, reserva_id, monto)
    AuditoriaService.registrar_accion(
        current_user, "CREATE", "pagos_reserva", pago.id, None, {"reserva_id": reserva_id, "monto": monto}, request
    )
    return pago


# ========== CONFIRMACIÓN ==========

@router.post("/confirmar/{pago_id}")
def confirmar_pago(
    request: Request,
    pago_id: int = Path(..., gt=0),
    datos: Optional[ConfirmarPagoRequest] = Body(None),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    """Marca el pago como aceptado, confirma la reserva y emite la factura"""
    pago = PagoService.confirmar(
        db, pago_id, transaccion_id=datos.transaccion_id if datos else None, usuario=current_user.nombre
    )
    AuditoriaService.registrar_accion(
        current_user, "CONFIRM", "pagos_reserva", pago_id, None, {"estado": pago.estado}, request
    )
    return _respuesta_confirmacion(pago, "Pago confirmado")


@router.post("/qr/generar/{reserva_id}", response_model=PagoQRResponse, status_code=status.HTTP_201_CREATED)
def generar_qr_pago(
    request: Request,
    reserva_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    datos = PagoService.generar_qr_pago(db, reserva_id, current_user)
    AuditoriaService.registrar_accion(
        current_user, "CREATE", "pagos_reserva", datos["pago_id"], None,
        {"reserva_id": reserva_id, "metodo": "QR_CODE"}, request,
    )
    return datos


@router.post("/qr/confirmar/{pago_id}")
def confirmar_pago_qr(
    request: Request,
    pago_id: int = Path(..., gt=0),
    datos: Optional[ConfirmarPagoQRRequest] = Body(None),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    pago = PagoService.confirmar_pago_qr(
        db, pago_id, datos.referencia_pago if datos else None, current_user
    )
    AuditoriaService.registrar_accion(
        current_user, "CONFIRM", "pagos_reserva", pago_id, None,
        {"referencia_pago": pago.referencia_pago}, request,
    )
    return _respuesta_confirmacion(pago, "Pago QR confirmado")


# ========== CONSULTAS ==========

@router.get("", response_model=List[PagoRead])
def listar_pagos(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    return PagoService.listar(db, skip=skip, limit=limit)


@router.get("/reserva/{reserva_id}", response_model=PagoRead)
def obtener_pago_por_reserva(
    reserva_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    return PagoService.obtener_por_reserva(db, reserva_id)


@router.get("/{pago_id}", response_model=PagoRead)
def obtener_pago(
    pago_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    return PagoService.obtener(db, pago_id)


@router.get("/{pago_id}/estado")
def estado_pago(
    pago_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    estado = PagoService.estado(db, pago_id)
    estado["pago"] = PagoRead.model_validate(estado["pago"])
    return {"success": True, "data": estado}


# ========== MODIFICACIÓN ==========

@router.patch("/{pago_id}", response_model=PagoRead)
def actualizar_pago(
    datos: PagoUpdate,
    request: Request,
    pago_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    cambios = datos.model_dump(exclude_unset=True, exclude_none=True)
    pago = PagoService.actualizar(db, pago_id, cambios)
    AuditoriaService.registrar_accion(current_user, "UPDATE", "pagos_reserva", pago_id, None, cambios, request)
    return pago


@router.delete("/{pago_id}", status_code=status.HTTP_204_NO_CONTENT)
def eliminar_pago(
    request: Request,
    pago_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    PagoService.eliminar(db, pago_id)
    AuditoriaService.registrar_accion(current_user, "DELETE", "pagos_reserva", pago_id, None, None, request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
