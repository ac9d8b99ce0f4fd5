import time
from typing import List

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status
from sqlalchemy.orm import Session

from database import conexion
from models.reserva import Verificacion
from repositories.reservas import ConfirmacionRepositorio, ReservaRepositorio
from schemas.auth import UsuarioToken
from schemas.confirmacion import ConfirmacionCreate, ConfirmacionRead, ConfirmacionUpdate
from services.auditoria_service import AuditoriaService
from utils.dependencies import get_current_user, require_admin
from utils.errors import ConflictoError, NoEncontradoError
from utils.logging_utils import log_event

router = APIRouter(prefix="/confirmacion", tags=["Confirmaciones"])


def _obtener_confirmacion(db: Session, confirmacion_id: int):
    confirmacion = ConfirmacionRepositorio(db).obtener(confirmacion_id)
    if confirmacion is None:
        raise NoEncontradoError("Confirmación", confirmacion_id)
    return confirmacion


def _cambiar_verificacion(
    db: Session, confirmacion_id: int, estado: Verificacion, usuario: UsuarioToken, request: Request
):
    confirmacion = _obtener_confirmacion(db, confirmacion_id)
    anterior = confirmacion.verificada
    confirmacion.verificada = estado
    db.commit()
    db.refresh(confirmacion)

    log_event("confirmaciones", usuario.nombre, f"Confirmación {estado.value}", f"id={confirmacion_id}")
    AuditoriaService.registrar_accion(
        usuario, "UPDATE", "confirmaciones", confirmacion_id,
        {"verificada": anterior}, {"verificada": estado}, request,
    )
    return confirmacion


@router.post("", response_model=ConfirmacionRead, status_code=status.HTTP_201_CREATED)
def crear_confirmacion(
    datos: ConfirmacionCreate,
    request: Request,
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    if ReservaRepositorio(db).obtener(datos.reserva_id) is None:
        raise NoEncontradoError("Reserva", datos.reserva_id)
    repo = ConfirmacionRepositorio(db)
    if repo.por_reserva(datos.reserva_id) is not None:
        raise ConflictoError("La reserva ya tiene una confirmación")

    confirmacion = repo.crear(
        reserva_id=datos.reserva_id,
        codigo_qr=datos.codigo_qr or f"QR-{datos.reserva_id}-{int(time.time() * 1000)}",
        verificada=datos.verificada,
    )
    db.commit()
    db.refresh(confirmacion)
    AuditoriaService.registrar_accion(current_user, "CREATE", "confirmaciones", confirmacion.id, None, datos, request)
    return confirmacion


@router.get("", response_model=List[ConfirmacionRead])
def listar_confirmaciones(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(conexion.get_db),
):
    return ConfirmacionRepositorio(db).listar(skip=skip, limit=limit)


@router.get("/{confirmacion_id}", response_model=ConfirmacionRead)
def obtener_confirmacion(confirmacion_id: int = Path(..., gt=0), db: Session = Depends(conexion.get_db)):
    return _obtener_confirmacion(db, confirmacion_id)


@router.put("/{confirmacion_id}", response_model=ConfirmacionRead)
def actualizar_confirmacion(
    datos: ConfirmacionUpdate,
    request: Request,
    confirmacion_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    confirmacion = _obtener_confirmacion(db, confirmacion_id)
    cambios = datos.model_dump(exclude_unset=True, exclude_none=True)
    ConfirmacionRepositorio(db).actualizar(confirmacion, cambios)
    db.commit()
    db.refresh(confirmacion)
    AuditoriaService.registrar_accion(current_user, "UPDATE", "confirmaciones", confirmacion_id, None, cambios, request)
    return confirmacion


@router.put("/{confirmacion_id}/verificar", response_model=ConfirmacionRead)
def verificar_confirmacion(
    request: Request,
    confirmacion_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    return _cambiar_verificacion(db, confirmacion_id, Verificacion.ACCEPTED, current_user, request)


@router.put("/{confirmacion_id}/cancelar", response_model=ConfirmacionRead)
def cancelar_confirmacion(
    request: Request,
    confirmacion_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(get_current_user),
    db: Session = Depends(conexion.get_db),
):
    return _cambiar_verificacion(db, confirmacion_id, Verificacion.CANCELLED, current_user, request)


@router.delete("/{confirmacion_id}", status_code=status.HTTP_204_NO_CONTENT)
def eliminar_confirmacion(
    request: Request,
    confirmacion_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    confirmacion = _obtener_confirmacion(db, confirmacion_id)
    ConfirmacionRepositorio(db).eliminar(confirmacion)
    db.commit()
    AuditoriaService.registrar_accion(current_user, "DELETE", "confirmaciones", confirmacion_id, None, None, request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
