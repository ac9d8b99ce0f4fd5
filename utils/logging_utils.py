import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

_LOGGER_NAME = "backend_reservas"
_LOG_FILE = Path(os.getenv("LOG_FILE", "reservas_logs.txt"))
_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def _configure_logger() -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    logger.propagate = False
    formatter = logging.Formatter(_LOG_FORMAT)

    try:
        archivo = RotatingFileHandler(_LOG_FILE, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        archivo.setFormatter(formatter)
        logger.addHandler(archivo)
    except OSError:
        pass

    # Advertencias y errores también a consola (y todo si no hay archivo)
    consola = logging.StreamHandler()
    consola.setLevel(logging.WARNING if logger.handlers else logging.DEBUG)
    consola.setFormatter(formatter)
    logger.addHandler(consola)
    return logger


_logger = _configure_logger()


def log_event(area: str, usuario: str, accion: str, detalle: str = "", nivel: int = logging.INFO) -> None:
    """AREA | Usuario | Accion | Detalle, con el nivel indicado"""
    message = f"{area.upper()} | Usuario: {usuario} | Accion: {accion}"
    if detalle:
        message += f" | Detalle: {detalle}"
    _logger.log(nivel, message)
