"""
Servicios de negocio: reservas, pagos, facturación, Stripe y auditoría
"""

from .auditoria_service import AuditoriaService
from .factura_service import FacturaService
from .pago_service import PagoService
from .reserva_service import ReservaService, calcular_costo
from .stripe_service import StripeService, get_stripe_service

__all__ = [
    "AuditoriaService",
    "FacturaService",
    "PagoService",
    "ReservaService",
    "calcular_costo",
    "StripeService",
    "get_stripe_service",
]
