"""
Factura fiscal boliviana emitida al aceptar un pago
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Numeric, Text, Index, Enum as SQLEnum
)
from sqlalchemy.orm import relationship

from database.conexion import Base


class EstadoFactura(str, Enum):
    GENERADA = "GENERADA"
    ENVIADA = "ENVIADA"


class Factura(Base):
    __tablename__ = "facturas"
    __table_args__ = (
        Index("idx_factura_fecha_emision", "fecha_emision"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # Una factura por pago; el unique evita duplicados bajo concurrencia
    pago_reserva_id = Column(Integer, ForeignKey("pagos_reserva.id"), nullable=False, unique=True)
    numero_factura = Column(String(30), nullable=False, unique=True)

    # Datos fiscales del emisor
    nit = Column(String(30), nullable=False)
    razon_social = Column(String(255), nullable=False)
    numero_autorizacion = Column(String(50), nullable=False)
    codigo_control = Column(String(32), nullable=False)
    fecha_emision = Column(DateTime, nullable=False, default=datetime.utcnow)
    fecha_limite_emision = Column(DateTime, nullable=False)

    # Cliente
    cliente_nombre = Column(String(255), nullable=False)
    cliente_email = Column(String(255), nullable=True)
    cliente_documento = Column(String(50), nullable=True)
    cliente_complemento = Column(String(50), nullable=True)

    # Emisor (contacto)
    empresa_nombre = Column(String(255), nullable=False)
    empresa_nit = Column(String(30), nullable=False)
    empresa_direccion = Column(String(255), nullable=True)
    empresa_telefono = Column(String(50), nullable=True)
    empresa_email = Column(String(255), nullable=True)
    sucursal = Column(String(100), nullable=False, default="Casa Matriz")
    municipio = Column(String(100), nullable=True)
    actividad_economica = Column(String(255), nullable=True)

    # Montos
    subtotal = Column(Numeric(12, 2), nullable=False)
    descuento = Column(Numeric(12, 2), nullable=False, default=0)
    monto_gift_card = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)
    moneda = Column(String(10), nullable=False, default="BOB")
    tipo_cambio = Column(Numeric(10, 4), nullable=False, default=1)

    leyenda = Column(Text, nullable=False)
    usuario = Column(String(100), nullable=False, default="SISTEMA")

    qr_fiscal = Column(Text, nullable=True)
    url_verificacion = Column(String(500), nullable=True)
    ruta_pdf = Column(String(500), nullable=True)
    hash_archivo = Column(String(64), nullable=True)

    estado = Column(SQLEnum(EstadoFactura), nullable=False, default=EstadoFactura.GENERADA)
    creado_en = Column(DateTime, nullable=False, default=datetime.utcnow)
    actualizado_en = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    pago = relationship("PagoReserva", back_populates="factura")
