"""
Archivo de inicialización del paquete models.
Expone todas las clases de los diferentes archivos para que
SQLAlchemy (Base.metadata) las detecte al importar 'models'.
"""

# 1. Áreas comunes y bloqueos
from .area import AreaComun, Bloqueo

# 2. Reservas y confirmaciones
from .reserva import Reserva, Confirmacion, EstadoReserva, Verificacion

# 3. Pagos
from .pago import PagoReserva, PagoStatus, MetodoPago

# 4. Facturación
from .factura import Factura, EstadoFactura

# 5. Auditoría
from .auditoria import AuditoriaLog

__all__ = [
    "AreaComun", "Bloqueo",
    "Reserva", "Confirmacion", "EstadoReserva", "Verificacion",
    "PagoReserva", "PagoStatus", "MetodoPago",
    "Factura", "EstadoFactura",
    "AuditoriaLog",
]
