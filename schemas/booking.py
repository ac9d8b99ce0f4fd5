from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, constr, condecimal, ConfigDict


class AreaBase(BaseModel):
    nombre: constr(strip_whitespace=True, min_length=1, max_length=100)
    descripcion: Optional[str] = None
    capacidad: int = Field(..., gt=0)
    costo_hora: condecimal(ge=0, max_digits=12, decimal_places=2)
    activa: bool = True


class AreaCreate(AreaBase):
    pass


class AreaUpdate(BaseModel):
    nombre: Optional[constr(strip_whitespace=True, min_length=1, max_length=100)] = None
    descripcion: Optional[str] = None
    capacidad: Optional[int] = Field(None, gt=0)
    costo_hora: Optional[condecimal(ge=0, max_digits=12, decimal_places=2)] = None
    activa: Optional[bool] = None


class AreaRead(AreaBase):
    id: int
    creado_en: datetime

    model_config = ConfigDict(from_attributes=True)
