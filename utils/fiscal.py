"""
Cálculos fiscales de la factura: numeración, código de control, leyenda y QR
"""
import base64
import hashlib
import io
import re
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlencode

import qrcode
from PIL import Image

from config import FACTURA_PREFIJO, LEYENDA_UMBRAL, URL_VERIFICACION_SIN
from utils.errors import ValidacionError

DIGITOS_NUMERO = 8
QR_ANCHO_PX = 200

LEYENDA_DESARROLLO = (
    "ESTA FACTURA CONTRIBUYE AL DESARROLLO DEL PAÍS, EL USO ILÍCITO SERÁ "
    "SANCIONADO PENALMENTE DE ACUERDO A LEY"
)
LEYENDA_LEY_453 = "Ley N° 453: El proveedor debe habilitar medios electrónicos de pago"

Monto = Union[Decimal, int, float, str]


def _a_decimal(monto: Monto) -> Decimal:
    return Decimal(str(monto)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def formatear_monto(monto: Monto) -> str:
    """Siempre dos decimales"""
    return f"{_a_decimal(monto):.2f}"


# ========== NUMERACIÓN ==========

def siguiente_numero(ultimo: Optional[str], prefijo: str = FACTURA_PREFIJO) -> str:
    """
    Siguiente número correlativo a partir del último emitido.

    Un número guardado que no respeta PREFIJO-######## detiene la emisión:
    reiniciar la secuencia produciría números repetidos.
    """
    if not ultimo:
        return f"{prefijo}-{1:0{DIGITOS_NUMERO}d}"

    match = re.fullmatch(rf"{re.escape(prefijo)}-(\d+)", ultimo.strip())
    if match is None:
        raise ValidacionError(f"Número de factura almacenado inválido: {ultimo!r}")
    return f"{prefijo}-{int(match.group(1)) + 1:0{DIGITOS_NUMERO}d}"


# ========== CÓDIGO DE CONTROL ==========

def generar_codigo_control(numero: str, nit: str, fecha: Union[date, datetime], monto: Monto) -> str:
    """
    SHA-256 de {numero}{nit}{AAAAMMDD}{centavos con 12 dígitos},
    primeros 16 caracteres hexadecimales en mayúscula.
    """
    centavos = int(_a_decimal(monto) * 100)
    base = f"{numero}{nit}{fecha.strftime('%Y%m%d')}{centavos:012d}"
    return hashlib.sha256(base.encode("utf-8")).hexdigest()[:16].upper()


def obtener_leyenda(monto: Monto) -> str:
    if _a_decimal(monto) > LEYENDA_UMBRAL:
        return LEYENDA_DESARROLLO
    return LEYENDA_LEY_453


def construir_url_verificacion(nit: str, codigo_control: str, numero: str) -> str:
    params = urlencode({"nit": nit, "cuf": codigo_control, "numero": numero, "t": 2})
    return f"{URL_VERIFICACION_SIN}?{params}"


# ========== QR ==========

def construir_texto_qr(
    nit: str,
    numero: str,
    autorizacion: str,
    fecha_emision: Union[date, datetime],
    total: Monto,
    codigo_control: str,
) -> str:
    """nit|numero|autorizacion|AAAA-MM-DD|total|codigo"""
    return "|".join([
        nit,
        numero,
        autorizacion,
        fecha_emision.strftime("%Y-%m-%d"),
        formatear_monto(total),
        codigo_control,
    ])


def generar_qr_png(texto: str, ancho: int = QR_ANCHO_PX) -> bytes:
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=1,
    )
    qr.add_data(texto)
    qr.make(fit=True)

    buffer = io.BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(buffer, format="PNG")
    buffer.seek(0)

    imagen = Image.open(buffer).convert("RGB").resize((ancho, ancho), Image.NEAREST)
    salida = io.BytesIO()
    imagen.save(salida, format="PNG")
    return salida.getvalue()


def generar_qr_data_url(texto: str, ancho: int = QR_ANCHO_PX) -> str:
    png = generar_qr_png(texto, ancho)
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


def qr_data_url_a_png(data_url: str) -> bytes:
    _, _, contenido = data_url.partition("base64,")
    return base64.b64decode(contenido)


# ========== ARCHIVOS ==========

def hash_archivo(ruta: Union[str, Path]) -> str:
    sha = hashlib.sha256()
    with open(ruta, "rb") as archivo:
        for bloque in iter(lambda: archivo.read(65536), b""):
            sha.update(bloque)
    return sha.hexdigest()
