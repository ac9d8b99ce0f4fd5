"""
Errores de dominio del backend de reservas.

Los servicios lanzan estas excepciones sin conocer FastAPI; main.py las
traduce a respuestas {"success": false, "message": ...} con el status HTTP
de cada clase.
"""

from fastapi import status


class ReservasError(Exception):
    """Error base del dominio."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Error interno") -> None:
        self.message = message
        super().__init__(message)


class NoEncontradoError(ReservasError):
    """El recurso solicitado no existe."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, recurso: str, identificador=None) -> None:
        self.recurso = recurso
        self.identificador = identificador
        if identificador is None:
            message = f"{recurso} no encontrado"
        else:
            message = f"{recurso} con ID {identificador} no encontrado"
        super().__init__(message)


class ValidacionError(ReservasError):
    """Regla de negocio violada por los datos recibidos."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictoError(ValidacionError):
    """La operación choca con el estado actual (solapamiento, ya procesado...)."""

    status_code = status.HTTP_409_CONFLICT


class NoAutorizadoError(ReservasError):
    """Credencial ausente, inválida o expirada."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "No se pudo validar las credenciales") -> None:
        super().__init__(message)


class PermisoDenegadoError(ReservasError):
    """El usuario está autenticado pero su rol no permite la acción."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Acceso denegado") -> None:
        super().__init__(message)


class ServicioExternoError(ReservasError):
    """Falla de Stripe o del motor de renderizado."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, servicio: str, message: str, status_code: int = None) -> None:
        self.servicio = servicio
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ArchivoError(ReservasError):
    """Directorio inexistente, ruta no escribible o archivo incompleto."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


__all__ = [
    "ReservasError",
    "NoEncontradoError",
    "ValidacionError",
    "ConflictoError",
    "NoAutorizadoError",
    "PermisoDenegadoError",
    "ServicioExternoError",
    "ArchivoError",
]
