from typing import List

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status
from sqlalchemy.orm import Session

from database import conexion
from repositories.areas import AreaRepositorio, BloqueoRepositorio
from schemas.auth import UsuarioToken
from schemas.bloqueo import BloqueoCreate, BloqueoRead, BloqueoUpdate
from services.auditoria_service import AuditoriaService
from utils.dependencies import require_admin
from utils.errors import NoEncontradoError, ValidacionError
from utils.logging_utils import log_event

router = APIRouter(prefix="/bloqueo", tags=["Bloqueos"])


def _obtener_bloqueo(db: Session, bloqueo_id: int):
    bloqueo = BloqueoRepositorio(db).obtener(bloqueo_id)
    if bloqueo is None:
        raise NoEncontradoError("Bloqueo", bloqueo_id)
    return bloqueo


@router.post("", response_model=BloqueoRead, status_code=status.HTTP_201_CREATED)
def crear_bloqueo(
    bloqueo: BloqueoCreate,
    request: Request,
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    if AreaRepositorio(db).obtener(bloqueo.area_id) is None:
        raise NoEncontradoError("Área", bloqueo.area_id)

    nuevo = BloqueoRepositorio(db).crear(**bloqueo.model_dump())
    db.commit()
    db.refresh(nuevo)

    log_event("bloqueos", current_user.nombre, "Bloqueo creado", f"id={nuevo.id} area={nuevo.area_id}")
    AuditoriaService.registrar_accion(current_user, "CREATE", "bloqueos", nuevo.id, None, bloqueo, request)
    return nuevo


@router.get("", response_model=List[BloqueoRead])
def listar_bloqueos(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(conexion.get_db),
):
    return BloqueoRepositorio(db).listar(skip=skip, limit=limit)


@router.get("/{bloqueo_id}", response_model=BloqueoRead)
def obtener_bloqueo(bloqueo_id: int = Path(..., gt=0), db: Session = Depends(conexion.get_db)):
    return _obtener_bloqueo(db, bloqueo_id)


@router.put("/{bloqueo_id}", response_model=BloqueoRead)
def actualizar_bloqueo(
    datos: BloqueoUpdate,
    request: Request,
    bloqueo_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    bloqueo = _obtener_bloqueo(db, bloqueo_id)
    cambios = datos.model_dump(exclude_unset=True)
    inicio = cambios.get("inicio") or bloqueo.inicio
    fin = cambios.get("fin") or bloqueo.fin
    if fin <= inicio:
        raise ValidacionError("fin debe ser posterior a inicio")

    BloqueoRepositorio(db).actualizar(bloqueo, cambios)
    db.commit()
    db.refresh(bloqueo)

    log_event("bloqueos", current_user.nombre, "Bloqueo actualizado", f"id={bloqueo_id}")
    AuditoriaService.registrar_accion(current_user, "UPDATE", "bloqueos", bloqueo_id, None, cambios, request)
    return bloqueo


@router.delete("/{bloqueo_id}", status_code=status.HTTP_204_NO_CONTENT)
def eliminar_bloqueo(
    request: Request,
    bloqueo_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    bloqueo = _obtener_bloqueo(db, bloqueo_id)
    BloqueoRepositorio(db).eliminar(bloqueo)
    db.commit()

    log_event("bloqueos", current_user.nombre, "Bloqueo eliminado", f"id={bloqueo_id}")
    AuditoriaService.registrar_accion(current_user, "DELETE", "bloqueos", bloqueo_id, None, None, request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
