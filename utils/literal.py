"""
Conversión de montos a literal en español para facturas

    monto_a_literal(Decimal("150.50")) -> "CIENTO CINCUENTA BOLIVIANOS CON 50/100"
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

MONTO_MAXIMO = 1_000_000

UNIDADES = ["", "UNO", "DOS", "TRES", "CUATRO", "CINCO", "SEIS", "SIETE", "OCHO", "NUEVE"]
ESPECIALES = [
    "DIEZ", "ONCE", "DOCE", "TRECE", "CATORCE",
    "QUINCE", "DIECISÉIS", "DIECISIETE", "DIECIOCHO", "DIECINUEVE",
]
VEINTIS = [
    "VEINTE", "VEINTIUNO", "VEINTIDÓS", "VEINTITRÉS", "VEINTICUATRO",
    "VEINTICINCO", "VEINTISÉIS", "VEINTISIETE", "VEINTIOCHO", "VEINTINUEVE",
]
DECENAS = ["", "", "", "TREINTA", "CUARENTA", "CINCUENTA", "SESENTA", "SETENTA", "OCHENTA", "NOVENTA"]
CENTENAS = [
    "", "CIENTO", "DOSCIENTOS", "TRESCIENTOS", "CUATROCIENTOS",
    "QUINIENTOS", "SEISCIENTOS", "SETECIENTOS", "OCHOCIENTOS", "NOVECIENTOS",
]


def _decenas(numero: int) -> str:
    if numero < 10:
        return UNIDADES[numero]
    if numero < 20:
        return ESPECIALES[numero - 10]
    if numero < 30:
        return VEINTIS[numero - 20]
    decena, unidad = divmod(numero, 10)
    if unidad == 0:
        return DECENAS[decena]
    return f"{DECENAS[decena]} Y {UNIDADES[unidad]}"


def _centenas(numero: int) -> str:
    """0 <= numero <= 999"""
    if numero == 100:
        return "CIEN"
    centena, resto = divmod(numero, 100)
    partes = [CENTENAS[centena], _decenas(resto)]
    return " ".join(p for p in partes if p)


def _apocope(palabras: str) -> str:
    # "VEINTIUNO MIL" -> "VEINTIUN MIL", "TREINTA Y UNO MIL" -> "TREINTA Y UN MIL"
    if palabras.endswith("UNO"):
        return palabras[:-1]
    return palabras


def entero_a_palabras(numero: int) -> str:
    """Entero en [0, 999999] a palabras en mayúsculas"""
    if numero < 0 or numero >= MONTO_MAXIMO:
        raise ValueError(f"Monto fuera de rango para literal: {numero}")
    if numero == 0:
        return "CERO"
    if numero == 1:
        return "UN"

    miles, resto = divmod(numero, 1000)
    partes = []
    if miles == 1:
        partes.append("MIL")
    elif miles > 1:
        partes.append(f"{_apocope(_centenas(miles))} MIL")
    if resto:
        partes.append(_centenas(resto))
    return " ".join(partes)


def monto_a_literal(monto: Union[Decimal, int, float, str], moneda: str = "BOLIVIANO") -> str:
    valor = Decimal(str(monto)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if valor < 0:
        raise ValueError("El monto no puede ser negativo")

    entero = int(valor)
    centavos = int((valor - entero) * 100)

    literal = f"{entero_a_palabras(entero)} {moneda}"
    if entero != 1:
        literal += "S"
    if centavos > 0:
        literal += f" CON {centavos:02d}/100"
    return literal
