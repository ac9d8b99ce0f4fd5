from typing import Optional, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class AuditoriaRead(BaseModel):
    id: int
    usuario_id: Optional[str] = None
    usuario_nombre: Optional[str] = None
    usuario_rol: Optional[str] = None
    accion: str
    tabla: str
    registro_id: Optional[str] = None
    datos_anteriores: Optional[Any] = None
    datos_nuevos: Optional[Any] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    endpoint: Optional[str] = None
    metodo: Optional[str] = None
    fecha_hora: datetime

    model_config = ConfigDict(from_attributes=True)
