"""
Repositorios de acceso a datos
"""

from .base import Repositorio
from .areas import AreaRepositorio, BloqueoRepositorio
from .reservas import ReservaRepositorio, ConfirmacionRepositorio
from .pagos import PagoRepositorio
from .facturas import FacturaRepositorio
from .auditoria import AuditoriaRepositorio

__all__ = [
    "Repositorio",
    "AreaRepositorio",
    "BloqueoRepositorio",
    "ReservaRepositorio",
    "ConfirmacionRepositorio",
    "PagoRepositorio",
    "FacturaRepositorio",
    "AuditoriaRepositorio",
]
