from datetime import datetime
import pytz

# Zona horaria fiscal: las fechas de emisión y del código de control son bolivianas
BOLIVIA_TIMEZONE_STR = "America/La_Paz"
BOLIVIA_TZ = pytz.timezone(BOLIVIA_TIMEZONE_STR)


def to_bolivia_time(dt: datetime) -> datetime:
    """Convierte un datetime a hora de Bolivia (naive se asume UTC)"""
    if dt.tzinfo is None:
        return pytz.utc.localize(dt).astimezone(BOLIVIA_TZ)
    return dt.astimezone(BOLIVIA_TZ)


def to_utc_naive(dt: datetime) -> datetime:
    """Normaliza a UTC sin tzinfo, que es como se guardan las fechas en la base"""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(pytz.utc).replace(tzinfo=None)
