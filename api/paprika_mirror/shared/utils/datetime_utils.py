"""
Utilidades puras para manejo de fechas y horas.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    SQLite devuelve datetimes naive aunque la columna sea timezone-aware;
    normalizamos para comparar/almacenar de forma consistente.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_source_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parsea fechas de Paprika ("2021-07-30 04:10:40", a veces con 'Z' u offset).

    Retorna None para valores vacios. Las fechas sin zona se asumen UTC.
    """
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    raw = raw.replace("Z", "+00:00")
    return ensure_utc(datetime.fromisoformat(raw))
