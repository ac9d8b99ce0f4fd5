from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import selectinload

from models.area import AreaComun, Bloqueo
from repositories.base import Repositorio


class AreaRepositorio(Repositorio[AreaComun]):
    modelo = AreaComun


class BloqueoRepositorio(Repositorio[Bloqueo]):
    modelo = Bloqueo

    def listar(self, skip: int = 0, limit: int = 100) -> List[Bloqueo]:
        return (
            self._query()
            .options(selectinload(Bloqueo.area))
            .order_by(Bloqueo.inicio)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def solapado(self, area_id: int, inicio: datetime, fin: datetime) -> Optional[Bloqueo]:
        # Hay solapamiento si existente.inicio < nuevo.fin AND existente.fin > nuevo.inicio
        return (
            self._query()
            .filter(
                Bloqueo.area_id == area_id,
                Bloqueo.inicio < fin,
                Bloqueo.fin > inicio,
            )
            .first()
        )
