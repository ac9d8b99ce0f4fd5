from typing import Optional
from datetime import datetime
from pydantic import BaseModel, constr, ConfigDict

from models.reserva import Verificacion


class ConfirmacionCreate(BaseModel):
    reserva_id: int
    codigo_qr: Optional[constr(strip_whitespace=True, min_length=1, max_length=100)] = None
    verificada: Verificacion = Verificacion.PENDING


class ConfirmacionUpdate(BaseModel):
    codigo_qr: Optional[constr(strip_whitespace=True, min_length=1, max_length=100)] = None
    verificada: Optional[Verificacion] = None


class ConfirmacionRead(BaseModel):
    id: int
    reserva_id: int
    codigo_qr: str
    fecha: datetime
    verificada: Verificacion

    model_config = ConfigDict(from_attributes=True)
