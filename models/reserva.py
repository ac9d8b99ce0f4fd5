"""
Modelos de Reserva y Confirmación
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Numeric, Index, Enum as SQLEnum
)
from sqlalchemy.orm import relationship

from database.conexion import Base


# ========================================================================
# ENUMS
# ========================================================================

class EstadoReserva(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"


class Verificacion(str, Enum):
    """Estado de verificación del código QR de la reserva"""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    CANCELLED = "CANCELLED"


# ----------- RESERVA -----------
class Reserva(Base):
    __tablename__ = "reservas"
    __table_args__ = (
        Index("idx_reserva_area_fechas", "area_id", "inicio", "fin"),
        Index("idx_reserva_usuario", "usuario_id"),
        Index("idx_reserva_estado", "estado"),
    )

    id = Column(Integer, primary_key=True, index=True)
    area_id = Column(Integer, ForeignKey("areas_comunes.id"), nullable=False)

    # Snapshot del dueño al momento de reservar
    usuario_id = Column(String(64), nullable=False)
    usuario_nombre = Column(String(150), nullable=True)
    usuario_rol = Column(String(50), nullable=True)

    inicio = Column(DateTime, nullable=False)
    fin = Column(DateTime, nullable=False)
    costo = Column(Numeric(12, 2), nullable=False, default=0)
    estado = Column(SQLEnum(EstadoReserva), nullable=False, default=EstadoReserva.PENDING)

    creado_en = Column(DateTime, nullable=False, default=datetime.utcnow)
    actualizado_en = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    area = relationship("AreaComun", back_populates="reservas")
    confirmacion = relationship("Confirmacion", back_populates="reserva", uselist=False)
    pagos = relationship("PagoReserva", back_populates="reserva", order_by="PagoReserva.id")


# ----------- CONFIRMACION -----------
class Confirmacion(Base):
    __tablename__ = "confirmaciones"

    id = Column(Integer, primary_key=True, index=True)
    reserva_id = Column(Integer, ForeignKey("reservas.id"), nullable=False, unique=True)
    codigo_qr = Column(String(100), nullable=False)
    fecha = Column(DateTime, nullable=False, default=datetime.utcnow)
    verificada = Column(SQLEnum(Verificacion), nullable=False, default=Verificacion.PENDING)

    reserva = relationship("Reserva", back_populates="confirmacion")
