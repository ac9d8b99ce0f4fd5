from typing import Optional
from pydantic import BaseModel, constr, condecimal


class CheckoutSessionRequest(BaseModel):
    reserva_id: int
    monto: condecimal(gt=0, max_digits=12, decimal_places=2)
    descripcion: Optional[constr(strip_whitespace=True, max_length=255)] = None
    pago_id: Optional[int] = None


class CheckoutSessionResponse(BaseModel):
    session_id: str
    checkout_url: Optional[str] = None
    pago_id: int
