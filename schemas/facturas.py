from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, EmailStr, constr, ConfigDict

from models.factura import EstadoFactura
from schemas.pagos import PagoRead
from schemas.reservas import ReservaConAreaRead


class DatosCliente(BaseModel):
    nombre: constr(strip_whitespace=True, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    documento: Optional[constr(strip_whitespace=True, max_length=50)] = None
    complemento: Optional[constr(strip_whitespace=True, max_length=50)] = None


class DatosEmpresa(BaseModel):
    nombre: constr(strip_whitespace=True, min_length=1, max_length=255)
    nit: constr(strip_whitespace=True, min_length=1, max_length=30)
    razon_social: Optional[str] = None
    numero_autorizacion: Optional[str] = None
    direccion: Optional[str] = None
    telefono: Optional[str] = None
    email: Optional[str] = None
    sucursal: Optional[str] = None
    municipio: Optional[str] = None
    actividad_economica: Optional[str] = None


class GenerarFacturaRequest(BaseModel):
    datos_cliente: DatosCliente
    datos_empresa: Optional[DatosEmpresa] = None


class PagoConReservaRead(PagoRead):
    reserva: Optional[ReservaConAreaRead] = None


class FacturaRead(BaseModel):
    id: int
    pago_reserva_id: int
    numero_factura: str
    nit: str
    razon_social: str
    numero_autorizacion: str
    codigo_control: str
    fecha_emision: datetime
    fecha_limite_emision: datetime

    cliente_nombre: str
    cliente_email: Optional[str] = None
    cliente_documento: Optional[str] = None
    cliente_complemento: Optional[str] = None

    empresa_nombre: str
    empresa_nit: str
    empresa_direccion: Optional[str] = None
    empresa_telefono: Optional[str] = None
    empresa_email: Optional[str] = None
    sucursal: str
    municipio: Optional[str] = None
    actividad_economica: Optional[str] = None

    subtotal: Decimal
    descuento: Decimal
    monto_gift_card: Decimal
    total: Decimal
    moneda: str
    tipo_cambio: Decimal
    leyenda: str
    usuario: str

    qr_fiscal: Optional[str] = None
    url_verificacion: Optional[str] = None
    ruta_pdf: Optional[str] = None
    hash_archivo: Optional[str] = None
    estado: EstadoFactura

    pago: Optional[PagoConReservaRead] = None

    model_config = ConfigDict(from_attributes=True)


class FacturaResumen(BaseModel):
    id: int
    numero_factura: str
    total: Decimal
    estado: EstadoFactura
    ruta_pdf: Optional[str] = None
    fecha_emision: datetime

    model_config = ConfigDict(from_attributes=True)


class ArchivoPDFInfo(BaseModel):
    nombre: str
    tamano: int
    creado: datetime
    modificado: datetime


class FacturaArchivoInfo(BaseModel):
    id: int
    numero_factura: str
    ruta_pdf: Optional[str] = None
    ruta_absoluta: Optional[str] = None
    archivo_existe: bool


class ListaArchivosPDF(BaseModel):
    directorio: str
    total: int
    archivos: List[ArchivoPDFInfo]


class ReservaConFactura(BaseModel):
    reserva: ReservaConAreaRead
    factura: Optional[FacturaResumen] = None
