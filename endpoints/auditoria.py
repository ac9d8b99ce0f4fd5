from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import conexion
from schemas.auditoria import AuditoriaRead
from schemas.auth import UsuarioToken
from services.auditoria_service import AuditoriaService
from utils.dependencies import require_admin
from utils.timezone import to_utc_naive

router = APIRouter(prefix="/auditoria", tags=["Auditoria"])


@router.get("", response_model=List[AuditoriaRead])
def obtener_logs(
    usuario_id: Optional[str] = Query(None),
    tabla: Optional[str] = Query(None),
    accion: Optional[str] = Query(None),
    fecha_desde: Optional[datetime] = Query(None),
    fecha_hasta: Optional[datetime] = Query(None),
    limite: int = Query(100, ge=1, le=500),
    current_user: UsuarioToken = Depends(require_admin),
    db: Session = Depends(conexion.get_db),
):
    return AuditoriaService.obtener_logs(
        db,
        usuario_id=usuario_id,
        tabla=tabla,
        accion=accion,
        fecha_desde=to_utc_naive(fecha_desde) if fecha_desde else None,
        fecha_hasta=to_utc_naive(fecha_hasta) if fecha_hasta else None,
        limite=limite,
    )
