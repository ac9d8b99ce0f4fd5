from typing import Optional
from pydantic import BaseModel


class UsuarioToken(BaseModel):
    """Identidad del llamador (token JWT o headers del gateway)"""
    id: str
    nombre: str
    rol: str
    email: Optional[str] = None
