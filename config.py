"""
Configuración general: Stripe, datos fiscales del emisor y rutas de archivos
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# API
API_PREFIX = os.getenv("API_PREFIX", "/api")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
GATEWAY_URL = os.getenv("GATEWAY_URL", "http://localhost:3000")
CORS_ORIGINS = [
    origen.strip()
    for origen in os.getenv("CORS_ORIGINS", f"{FRONTEND_URL},{GATEWAY_URL}").split(",")
    if origen.strip()
]

# Autenticación
JWT_SECRET = os.getenv("JWT_SECRET", "clave-secreta-desarrollo-cambiar-en-produccion")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
# El gateway valida el token y reenvía la identidad en headers x-user-*
TRUST_GATEWAY_HEADERS = os.getenv("TRUST_GATEWAY_HEADERS", "true").lower() == "true"

# Stripe Configuration
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "sk_test_dummy_key_for_development")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "whsec_test_dummy_secret")
STRIPE_CURRENCY = os.getenv("STRIPE_CURRENCY", "usd")
STRIPE_SESSION_MINUTOS = int(os.getenv("STRIPE_SESSION_MINUTOS", "30"))

# Stripe Error Messages
STRIPE_ERRORS = {
    "card_declined": "Tarjeta rechazada. Por favor intenta con otra.",
    "expired_card": "Tarjeta expirada.",
    "incorrect_cvc": "CVC incorrecto.",
    "processing_error": "Error procesando pago. Intenta de nuevo.",
    "rate_limit": "Demasiados intentos. Por favor espera e intenta nuevamente.",
    "authentication_error": "Error de autenticación. Verifica tus credenciales.",
}

# Facturación
FACTURAS_DIR = Path(os.getenv("FACTURAS_DIR", "facturas"))
FACTURA_PREFIJO = os.getenv("FACTURA_PREFIJO", "FAC")
FACTURA_MONEDA = "BOB"
LEYENDA_UMBRAL = 50000
URL_VERIFICACION_SIN = os.getenv(
    "URL_VERIFICACION_SIN",
    "https://pilotosiat.impuestos.gob.bo/consulta/QR",
)

EMPRESA = {
    "nombre": os.getenv("EMPRESA_NOMBRE", "CITYLIGHTS S.R.L."),
    "nit": os.getenv("EMPRESA_NIT", "1234567890"),
    "razon_social": os.getenv("EMPRESA_RAZON_SOCIAL", "CITYLIGHTS SOCIEDAD DE RESPONSABILIDAD LIMITADA"),
    "numero_autorizacion": os.getenv("EMPRESA_AUTORIZACION", "29040011007"),
    "direccion": os.getenv("EMPRESA_DIRECCION", "Av. Principal #123, Zona Central"),
    "telefono": os.getenv("EMPRESA_TELEFONO", "+591 2 1234567"),
    "email": os.getenv("EMPRESA_EMAIL", "facturacion@citylights.com"),
    "sucursal": os.getenv("EMPRESA_SUCURSAL", "Casa Matriz"),
    "municipio": os.getenv("EMPRESA_MUNICIPIO", "La Paz"),
    "actividad_economica": os.getenv("EMPRESA_ACTIVIDAD", "Alquiler de áreas comunes"),
}

CLIENTE_GENERAL = {
    "nombre": "Cliente General",
    "email": "cliente@citylights.com",
    "documento": "0000000",
    "complemento": "",
}

# Pago por QR (simulado)
QR_BANCO = {
    "banco": "Banco Nacional de Bolivia",
    "numero_cuenta": "1001234567",
    "titular": "CITYLIGHTS SRL",
}
QR_PAGO_BASE_URL = os.getenv("QR_PAGO_BASE_URL", "https://qr-demo.citylights.bo/pago")
QR_PAGO_MINUTOS = 30
