from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, condecimal, field_validator, model_validator, ConfigDict

from models.reserva import EstadoReserva
from schemas.booking import AreaRead
from schemas.confirmacion import ConfirmacionRead
from schemas.pagos import PagoRead
from utils.timezone import to_utc_naive


class ReservaBase(BaseModel):
    area_id: int
    inicio: datetime
    fin: datetime

    @field_validator("inicio", "fin")
    @classmethod
    def normalizar_fecha(cls, valor: datetime) -> datetime:
        return to_utc_naive(valor)


class ReservaCreate(ReservaBase):
    # Si no se envía se calcula como costo_hora * horas
    costo: Optional[condecimal(ge=0, max_digits=12, decimal_places=2)] = None

    @model_validator(mode="after")
    def validar_reserva(self):
        if self.fin <= self.inicio:
            raise ValueError("fin debe ser posterior a inicio")
        return self


class ReservaUpdate(BaseModel):
    inicio: Optional[datetime] = None
    fin: Optional[datetime] = None
    costo: Optional[condecimal(ge=0, max_digits=12, decimal_places=2)] = None
    estado: Optional[EstadoReserva] = None

    @field_validator("inicio", "fin")
    @classmethod
    def normalizar_fecha(cls, valor: Optional[datetime]) -> Optional[datetime]:
        return to_utc_naive(valor) if valor else valor


class ReservaRead(ReservaBase):
    id: int
    usuario_id: str
    usuario_nombre: Optional[str] = None
    usuario_rol: Optional[str] = None
    costo: Decimal
    estado: EstadoReserva
    creado_en: datetime

    model_config = ConfigDict(from_attributes=True)


class ReservaConAreaRead(ReservaRead):
    area: Optional[AreaRead] = None


class ReservaDetalleRead(ReservaConAreaRead):
    confirmacion: Optional[ConfirmacionRead] = None
    pagos: List[PagoRead] = []


class ReservaCreadaResponse(BaseModel):
    reserva: ReservaConAreaRead
    confirmacion: ConfirmacionRead
    pago: PagoRead


class IngresoArea(BaseModel):
    area_id: int
    nombre: str
    total_ingresos: Decimal
    cantidad_reservas: int
    ingreso_promedio: Decimal


class ReservaStripeCreate(ReservaCreate):
    descripcion: Optional[str] = None


class CheckoutInfo(BaseModel):
    session_id: Optional[str] = None
    checkout_url: Optional[str] = None


class ReservaStripeResponse(ReservaCreadaResponse):
    success: bool = True
    message: str
    stripe: CheckoutInfo
