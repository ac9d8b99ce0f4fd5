"""
Dependencias de autenticación y autorización
"""
from typing import List, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import TRUST_GATEWAY_HEADERS
from schemas.auth import UsuarioToken
from utils.auth import usuario_desde_payload, verify_token
from utils.errors import NoAutorizadoError, PermisoDenegadoError
from utils.logging_utils import log_event


bearer_scheme = HTTPBearer(auto_error=False)

ROL_USUARIO = "USER_CASUAL"
ROL_ADMIN = "ADMIN"
ROL_SUPER = "SUPER_USER"


def _usuario_desde_headers(request: Request) -> Optional[UsuarioToken]:
    usuario_id = request.headers.get("x-user-id")
    if not usuario_id:
        return None
    return UsuarioToken(
        id=usuario_id,
        nombre=request.headers.get("x-user-name") or "Usuario",
        rol=request.headers.get("x-user-role") or ROL_USUARIO,
        email=request.headers.get("x-user-email"),
    )


# ========== DEPENDENCIAS DE AUTENTICACIÓN ==========

def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[UsuarioToken]:
    """
    Identidad del llamador si existe: primero el token Bearer y, si el
    despliegue confía en el gateway, los headers x-user-*.
    Un token presente pero inválido siempre es un error.
    """
    if credentials is not None:
        payload = verify_token(credentials.credentials)
        return usuario_desde_payload(payload)

    if TRUST_GATEWAY_HEADERS:
        return _usuario_desde_headers(request)
    return None


def get_current_user(
    usuario: Optional[UsuarioToken] = Depends(get_current_user_optional),
) -> UsuarioToken:
    """
    Obtiene el usuario actual

    Raises:
        NoAutorizadoError: si no llegó ninguna identidad
    """
    if usuario is None:
        raise NoAutorizadoError("Se requiere autenticación")
    return usuario


# ========== DEPENDENCIAS DE AUTORIZACIÓN ==========

def require_roles(roles_permitidos: List[str]):
    """
    Dependencia para requerir roles específicos

    Args:
        roles_permitidos: Lista de roles que tienen acceso (ej: ["ADMIN", "SUPER_USER"])
    """
    def check_role(current_user: UsuarioToken = Depends(get_current_user)) -> UsuarioToken:
        if current_user.rol not in roles_permitidos:
            log_event(
                "auth",
                current_user.nombre,
                "Intento de acceso no autorizado",
                f"rol={current_user.rol} roles_requeridos={roles_permitidos}"
            )
            raise PermisoDenegadoError(
                f"Acceso denegado. Roles permitidos: {', '.join(roles_permitidos)}"
            )
        return current_user

    return check_role


require_admin = require_roles([ROL_ADMIN, ROL_SUPER])
require_super_user = require_roles([ROL_SUPER])
