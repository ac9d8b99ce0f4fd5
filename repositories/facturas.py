from typing import List, Optional

from sqlalchemy.orm import selectinload

from models.factura import Factura
from models.pago import PagoReserva
from models.reserva import Reserva
from repositories.base import Repositorio


class FacturaRepositorio(Repositorio[Factura]):
    modelo = Factura

    def _query(self):
        return self.db.query(Factura).options(
            selectinload(Factura.pago)
            .selectinload(PagoReserva.reserva)
            .selectinload(Reserva.area)
        )

    def obtener(self, id: int) -> Optional[Factura]:
        return self._query().filter(Factura.id == id).first()

    def listar(self, skip: int = 0, limit: int = 100) -> List[Factura]:
        return self._query().order_by(Factura.fecha_emision.desc(), Factura.id.desc()).offset(skip).limit(limit).all()

    def por_pago(self, pago_id: int) -> Optional[Factura]:
        return self._query().filter(Factura.pago_reserva_id == pago_id).first()

    def por_pagos(self, pago_ids: List[int]) -> List[Factura]:
        if not pago_ids:
            return []
        return self._query().filter(Factura.pago_reserva_id.in_(pago_ids)).order_by(Factura.id).all()

    def eliminar_por_pagos(self, pago_ids: List[int]) -> int:
        if not pago_ids:
            return 0
        return (
            self.db.query(Factura)
            .filter(Factura.pago_reserva_id.in_(pago_ids))
            .delete(synchronize_session=False)
        )

    def ultimo_numero(self) -> Optional[str]:
        ultima = self.db.query(Factura.numero_factura).order_by(Factura.id.desc()).first()
        return ultima[0] if ultima else None
