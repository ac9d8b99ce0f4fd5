from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import selectinload

from models.area import AreaComun
from models.pago import PagoReserva, PagoStatus
from models.reserva import Confirmacion, Reserva
from repositories.base import Repositorio


class ReservaRepositorio(Repositorio[Reserva]):
    modelo = Reserva

    def _query(self):
        return self.db.query(Reserva).options(
            selectinload(Reserva.area),
            selectinload(Reserva.confirmacion),
            selectinload(Reserva.pagos),
        )

    def obtener(self, id: int) -> Optional[Reserva]:
        return self._query().filter(Reserva.id == id).first()

    def listar(self, skip: int = 0, limit: int = 100, usuario_id: Optional[str] = None) -> List[Reserva]:
        query = self._query()
        if usuario_id is not None:
            query = query.filter(Reserva.usuario_id == usuario_id)
        return query.order_by(Reserva.inicio.desc()).offset(skip).limit(limit).all()

    def solapada(
        self, area_id: int, inicio: datetime, fin: datetime, excluir_id: Optional[int] = None
    ) -> Optional[Reserva]:
        query = self.db.query(Reserva).filter(
            Reserva.area_id == area_id,
            Reserva.inicio < fin,
            Reserva.fin > inicio,
        )
        if excluir_id is not None:
            query = query.filter(Reserva.id != excluir_id)
        return query.first()

    def eliminar_por_id(self, id: int) -> int:
        return self.db.query(Reserva).filter(Reserva.id == id).delete(synchronize_session=False)

    def contar_por_area(self, area_id: int) -> int:
        return self.db.query(func.count(Reserva.id)).filter(Reserva.area_id == area_id).scalar()

    def ingresos_por_area(
        self, fecha_inicio: Optional[datetime] = None, fecha_fin: Optional[datetime] = None
    ):
        """Suma de pagos aceptados agrupada por área"""
        query = (
            self.db.query(
                AreaComun.id.label("area_id"),
                AreaComun.nombre.label("nombre"),
                func.coalesce(func.sum(PagoReserva.monto), 0).label("total_ingresos"),
                func.count(func.distinct(Reserva.id)).label("cantidad_reservas"),
            )
            .join(Reserva, Reserva.area_id == AreaComun.id)
            .join(PagoReserva, PagoReserva.reserva_id == Reserva.id)
            .filter(PagoReserva.estado == PagoStatus.ACCEPTED)
        )
        if fecha_inicio is not None:
            query = query.filter(Reserva.inicio >= fecha_inicio)
        if fecha_fin is not None:
            query = query.filter(Reserva.inicio <= fecha_fin)
        return query.group_by(AreaComun.id, AreaComun.nombre).order_by(AreaComun.nombre).all()


class ConfirmacionRepositorio(Repositorio[Confirmacion]):
    modelo = Confirmacion

    def por_reserva(self, reserva_id: int) -> Optional[Confirmacion]:
        return self._query().filter(Confirmacion.reserva_id == reserva_id).first()

    def eliminar_por_reserva(self, reserva_id: int) -> int:
        return (
            self.db.query(Confirmacion)
            .filter(Confirmacion.reserva_id == reserva_id)
            .delete(synchronize_session=False)
        )
