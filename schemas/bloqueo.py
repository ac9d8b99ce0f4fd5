from typing import Optional
from datetime import datetime
from pydantic import BaseModel, constr, field_validator, model_validator, ConfigDict

from schemas.booking import AreaRead
from utils.timezone import to_utc_naive


class BloqueoBase(BaseModel):
    area_id: int
    inicio: datetime
    fin: datetime
    motivo: Optional[constr(strip_whitespace=True, max_length=255)] = None

    @field_validator("inicio", "fin")
    @classmethod
    def normalizar_fecha(cls, valor: datetime) -> datetime:
        return to_utc_naive(valor)


class BloqueoCreate(BloqueoBase):
    @model_validator(mode="after")
    def validar_rango(self):
        if self.fin <= self.inicio:
            raise ValueError("fin debe ser posterior a inicio")
        return self


class BloqueoUpdate(BaseModel):
    inicio: Optional[datetime] = None
    fin: Optional[datetime] = None
    motivo: Optional[constr(strip_whitespace=True, max_length=255)] = None

    @field_validator("inicio", "fin")
    @classmethod
    def normalizar_fecha(cls, valor: Optional[datetime]) -> Optional[datetime]:
        return to_utc_naive(valor) if valor else valor


class BloqueoRead(BloqueoBase):
    id: int
    creado_en: datetime
    area: Optional[AreaRead] = None

    model_config = ConfigDict(from_attributes=True)
