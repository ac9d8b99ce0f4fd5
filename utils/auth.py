"""
Utilidades para verificar tokens JWT emitidos por el servicio de usuarios
"""
from jose import ExpiredSignatureError, JWTError, jwt

from config import JWT_ALGORITHM, JWT_SECRET
from schemas.auth import UsuarioToken
from utils.errors import NoAutorizadoError


# ========== FUNCIONES DE JWT ==========

def verify_token(token: str) -> dict:
    """
    Verifica firma y expiración del token y retorna el payload

    Raises:
        NoAutorizadoError: token inválido o expirado
    """
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise NoAutorizadoError("Token expirado")
    except JWTError:
        raise NoAutorizadoError("Token inválido")


def usuario_desde_payload(payload: dict) -> UsuarioToken:
    """
    Construye la identidad a partir de los claims.
    El nombre puede venir como name, firstName o username según el emisor.
    """
    usuario_id = payload.get("sub")
    if usuario_id is None:
        raise NoAutorizadoError("Token sin identificador de usuario")

    nombre = payload.get("name") or payload.get("firstName") or payload.get("username")
    return UsuarioToken(
        id=str(usuario_id),
        nombre=nombre or "Usuario",
        email=payload.get("email"),
        rol=payload.get("role") or "USER_CASUAL",
    )
