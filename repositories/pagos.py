from typing import List, Optional

from sqlalchemy.orm import selectinload

from models.pago import PagoReserva, PagoStatus
from models.reserva import Reserva
from repositories.base import Repositorio


class PagoRepositorio(Repositorio[PagoReserva]):
    modelo = PagoReserva

    def _query(self):
        return self.db.query(PagoReserva).options(
            selectinload(PagoReserva.reserva).selectinload(Reserva.area),
            selectinload(PagoReserva.factura),
        )

    def obtener(self, id: int) -> Optional[PagoReserva]:
        return self._query().filter(PagoReserva.id == id).first()

    def obtener_para_actualizar(self, id: int) -> Optional[PagoReserva]:
        """Relee el pago bloqueando la fila hasta el commit"""
        return (
            self.db.query(PagoReserva)
            .filter(PagoReserva.id == id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def por_reserva(self, reserva_id: int) -> List[PagoReserva]:
        return self._query().filter(PagoReserva.reserva_id == reserva_id).order_by(PagoReserva.id).all()

    def ultimo_por_reserva(self, reserva_id: int) -> Optional[PagoReserva]:
        return (
            self._query()
            .filter(PagoReserva.reserva_id == reserva_id)
            .order_by(PagoReserva.fecha_creacion.desc(), PagoReserva.id.desc())
            .first()
        )

    def primer_pendiente_por_reserva(self, reserva_id: int) -> Optional[PagoReserva]:
        return (
            self._query()
            .filter(PagoReserva.reserva_id == reserva_id, PagoReserva.estado == PagoStatus.PENDING)
            .order_by(PagoReserva.id)
            .first()
        )

    def eliminar_por_reserva(self, reserva_id: int) -> int:
        return (
            self.db.query(PagoReserva)
            .filter(PagoReserva.reserva_id == reserva_id)
            .delete(synchronize_session=False)
        )

    def por_stripe_session(self, session_id: str) -> Optional[PagoReserva]:
        return self._query().filter(PagoReserva.stripe_session_id == session_id).first()
