from datetime import datetime
from typing import List, Optional

from models.auditoria import AuditoriaLog
from repositories.base import Repositorio


class AuditoriaRepositorio(Repositorio[AuditoriaLog]):
    modelo = AuditoriaLog

    def buscar(
        self,
        usuario_id: Optional[str] = None,
        tabla: Optional[str] = None,
        accion: Optional[str] = None,
        fecha_desde: Optional[datetime] = None,
        fecha_hasta: Optional[datetime] = None,
        limite: int = 100,
    ) -> List[AuditoriaLog]:
        query = self._query()
        if usuario_id:
            query = query.filter(AuditoriaLog.usuario_id == usuario_id)
        if tabla:
            query = query.filter(AuditoriaLog.tabla == tabla)
        if accion:
            query = query.filter(AuditoriaLog.accion == accion)
        if fecha_desde:
            query = query.filter(AuditoriaLog.fecha_hora >= fecha_desde)
        if fecha_hasta:
            query = query.filter(AuditoriaLog.fecha_hora <= fecha_hasta)
        return query.order_by(AuditoriaLog.fecha_hora.desc(), AuditoriaLog.id.desc()).limit(limite).all()
