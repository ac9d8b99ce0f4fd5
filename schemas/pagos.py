from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, constr, condecimal, ConfigDict

from models.pago import MetodoPago, PagoStatus


class PagoCreate(BaseModel):
    reserva_id: int
    monto: condecimal(gt=0, max_digits=12, decimal_places=2)
    metodo_pago: MetodoPago = MetodoPago.QR_CODE
    referencia_pago: Optional[constr(strip_whitespace=True, max_length=100)] = None
    transaccion_id: Optional[constr(strip_whitespace=True, max_length=100)] = None


class PagoUpdate(BaseModel):
    metodo_pago: Optional[MetodoPago] = None
    monto: Optional[condecimal(gt=0, max_digits=12, decimal_places=2)] = None
    referencia_pago: Optional[constr(strip_whitespace=True, max_length=100)] = None
    transaccion_id: Optional[constr(strip_whitespace=True, max_length=100)] = None


class PagoRead(BaseModel):
    id: int
    reserva_id: int
    metodo_pago: MetodoPago
    monto: Decimal
    estado: PagoStatus
    fecha_creacion: datetime
    fecha_pago: Optional[datetime] = None
    transaccion_id: Optional[str] = None
    referencia_pago: Optional[str] = None
    usuario_id: Optional[str] = None
    usuario_nombre: Optional[str] = None
    codigo_qr: Optional[str] = None
    url_qr: Optional[str] = None
    stripe_session_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ConfirmarPagoRequest(BaseModel):
    transaccion_id: Optional[constr(strip_whitespace=True, max_length=100)] = None


class ConfirmarPagoQRRequest(BaseModel):
    referencia_pago: Optional[constr(strip_whitespace=True, max_length=100)] = None


class DatosBancoQR(BaseModel):
    banco: str
    numero_cuenta: str
    titular: str
    nit: str


class PagoQRResponse(BaseModel):
    pago_id: int
    reserva_id: int
    monto: Decimal
    moneda: str
    codigo_qr: str
    url_qr: str
    referencia_pago: str
    qr_imagen: str
    datos_bancarios: DatosBancoQR
    instrucciones: List[str]
    fecha_limite: datetime
