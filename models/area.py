"""
Áreas comunes reservables y sus bloqueos administrativos
"""

from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Numeric, DateTime, ForeignKey, Index
)
from sqlalchemy.orm import relationship

from database.conexion import Base


class AreaComun(Base):
    __tablename__ = "areas_comunes"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(100), nullable=False)
    descripcion = Column(Text, nullable=True)
    capacidad = Column(Integer, nullable=False, default=1)
    costo_hora = Column(Numeric(12, 2), nullable=False, default=0)
    activa = Column(Boolean, nullable=False, default=True)
    creado_en = Column(DateTime, nullable=False, default=datetime.utcnow)
    actualizado_en = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    reservas = relationship("Reserva", back_populates="area")
    bloqueos = relationship("Bloqueo", back_populates="area", cascade="all, delete-orphan")


class Bloqueo(Base):
    """Ventana en la que el área no está disponible, independiente de las reservas"""
    __tablename__ = "bloqueos"
    __table_args__ = (
        Index("idx_bloqueo_area_fechas", "area_id", "inicio", "fin"),
    )

    id = Column(Integer, primary_key=True, index=True)
    area_id = Column(Integer, ForeignKey("areas_comunes.id"), nullable=False)
    inicio = Column(DateTime, nullable=False)
    fin = Column(DateTime, nullable=False)
    motivo = Column(String(255), nullable=True)
    creado_en = Column(DateTime, nullable=False, default=datetime.utcnow)

    area = relationship("AreaComun", back_populates="bloqueos")
