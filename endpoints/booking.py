from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response, status
from sqlalchemy.orm import Session

from database import conexion
from repositories.areas import AreaRepositorio
from repositories.reservas import ReservaRepositorio
from schemas.auth import UsuarioToken
from schemas.booking import AreaCreate, AreaRead, AreaUpdate
from services.auditoria_service import AuditoriaService
from utils.dependencies import require_admin
from utils.errors import ConflictoError, NoEncontradoError, ReservasError
from utils.logging_utils import log_event

router = APIRouter(prefix="/booking", tags=["Areas comunes"])


def _obtener_area(db: Session, area_id: int):
    area = AreaRepositorio(db).obtener(area_id)
    if area is None:
        raise NoEncontradoError("Área", area_id)
    return area


@router.post("", response_model=AreaRead, status_code=status.HTTP_201_CREATED)
def crear_area(
    area: AreaCreate,
    request: Request,
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    try:
        nueva = AreaRepositorio(db).crear(**area.model_dump())
        db.commit()
        db.refresh(nueva)
    except ReservasError:
        raise
    except Exception as e:
        db.rollback()
        log_event("areas", current_user.nombre, "Error al crear área", f"error={e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error al crear área")

    log_event("areas", current_user.nombre, "Área creada", f"id={nueva.id} nombre={nueva.nombre}")
    AuditoriaService.registrar_accion(current_user, "CREATE", "areas_comunes", nueva.id, None, area, request)
    return nueva


@router.get("", response_model=List[AreaRead])
def listar_areas(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    solo_activas: bool = Query(False),
    db: Session = Depends(conexion.get_db),
):
    areas = AreaRepositorio(db).listar(skip=skip, limit=limit)
    if solo_activas:
        areas = [a for a in areas if a.activa]
    return areas


@router.get("/{area_id}", response_model=AreaRead)
def obtener_area(area_id: int = Path(..., gt=0), db: Session = Depends(conexion.get_db)):
    return _obtener_area(db, area_id)


@router.put("/{area_id}", response_model=AreaRead)
def actualizar_area(
    datos: AreaUpdate,
    request: Request,
    area_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    area = _obtener_area(db, area_id)
    anterior = AreaRead.model_validate(area)
    cambios = datos.model_dump(exclude_unset=True)
    AreaRepositorio(db).actualizar(area, cambios)
    db.commit()
    db.refresh(area)

    log_event("areas", current_user.nombre, "Área actualizada", f"id={area_id} campos={list(cambios)}")
    AuditoriaService.registrar_accion(current_user, "UPDATE", "areas_comunes", area_id, anterior, cambios, request)
    return area


@router.delete("/{area_id}", status_code=status.HTTP_204_NO_CONTENT)
def eliminar_area(
    request: Request,
    area_id: int = Path(..., gt=0),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    area = _obtener_area(db, area_id)
    if ReservaRepositorio(db).contar_por_area(area_id):
        raise ConflictoError("El área tiene reservas asociadas; desactívela en lugar de eliminarla")

    anterior = AreaRead.model_validate(area)
    AreaRepositorio(db).eliminar(area)
    db.commit()

    log_event("areas", current_user.nombre, "Área eliminada", f"id={area_id}")
    AuditoriaService.registrar_accion(current_user, "DELETE", "areas_comunes", area_id, anterior, None, request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
