"""
Auditoría de acciones: registro best-effort y consultas
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database.conexion import SessionLocal
from models.auditoria import AuditoriaLog
from repositories.auditoria import AuditoriaRepositorio
from schemas.auth import UsuarioToken
from utils.logging_utils import log_event


def contexto_request(request: Optional[Request]) -> Dict[str, Optional[str]]:
    if request is None:
        return {}
    return {
        "ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
        "endpoint": request.url.path,
        "metodo": request.method,
    }


class AuditoriaService:
    """Las fallas de auditoría se registran en el log y nunca cortan la operación principal"""

    @staticmethod
    def registrar_accion(
        usuario: Optional[UsuarioToken],
        accion: str,
        tabla: str,
        registro_id: Any = None,
        datos_anteriores: Any = None,
        datos_nuevos: Any = None,
        request: Optional[Request] = None,
    ) -> None:
        # Sesión propia: un rollback de la auditoría no afecta la transacción del negocio
        db = SessionLocal()
        try:
            AuditoriaRepositorio(db).crear(
                usuario_id=usuario.id if usuario else None,
                usuario_nombre=usuario.nombre if usuario else None,
                usuario_rol=usuario.rol if usuario else None,
                accion=accion,
                tabla=tabla,
                registro_id=str(registro_id) if registro_id is not None else None,
                datos_anteriores=jsonable_encoder(datos_anteriores) if datos_anteriores is not None else None,
                datos_nuevos=jsonable_encoder(datos_nuevos) if datos_nuevos is not None else None,
                **contexto_request(request),
            )
            db.commit()
        except (SQLAlchemyError, ValueError, TypeError) as e:
            db.rollback()
            log_event(
                "auditoria",
                usuario.nombre if usuario else "sistema",
                "Error registrando auditoría",
                f"accion={accion} tabla={tabla} registro={registro_id} error={e}",
                nivel=logging.WARNING,
            )
        finally:
            db.close()

    @staticmethod
    def obtener_logs(
        db: Session,
        usuario_id: Optional[str] = None,
        tabla: Optional[str] = None,
        accion: Optional[str] = None,
        fecha_desde: Optional[datetime] = None,
        fecha_hasta: Optional[datetime] = None,
        limite: int = 100,
    ) -> List[AuditoriaLog]:
        return AuditoriaRepositorio(db).buscar(
            usuario_id=usuario_id,
            tabla=tabla,
            accion=accion,
            fecha_desde=fecha_desde,
            fecha_hasta=fecha_hasta,
            limite=limite,
        )
