"""
Pagos asociados a reservas
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Numeric, Text, Index, Enum as SQLEnum
)
from sqlalchemy.orm import relationship

from database.conexion import Base


class PagoStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"


class MetodoPago(str, Enum):
    QR_CODE = "QR_CODE"
    STRIPE = "STRIPE"
    TARJETA = "TARJETA"
    EFECTIVO = "EFECTIVO"
    TRANSFERENCIA = "TRANSFERENCIA"


class PagoReserva(Base):
    __tablename__ = "pagos_reserva"
    __table_args__ = (
        Index("idx_pago_reserva_estado", "reserva_id", "estado"),
        Index("idx_pago_stripe_session", "stripe_session_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    reserva_id = Column(Integer, ForeignKey("reservas.id"), nullable=False)
    metodo_pago = Column(SQLEnum(MetodoPago), nullable=False, default=MetodoPago.QR_CODE)
    monto = Column(Numeric(12, 2), nullable=False)
    estado = Column(SQLEnum(PagoStatus), nullable=False, default=PagoStatus.PENDING)

    fecha_creacion = Column(DateTime, nullable=False, default=datetime.utcnow)
    fecha_pago = Column(DateTime, nullable=True)
    transaccion_id = Column(String(100), nullable=True)
    referencia_pago = Column(String(100), nullable=True)

    usuario_id = Column(String(64), nullable=True)
    usuario_nombre = Column(String(150), nullable=True)

    # Pago por QR
    codigo_qr = Column(Text, nullable=True)
    url_qr = Column(String(255), nullable=True)

    # Pago por Stripe Checkout
    stripe_session_id = Column(String(255), nullable=True)

    reserva = relationship("Reserva", back_populates="pagos")
    factura = relationship("Factura", back_populates="pago", uselist=False)
