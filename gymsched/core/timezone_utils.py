"""
Utilidades para el manejo de zonas horarias y de fechas/horas de los horarios.

Los horarios se reciben como fecha `YYYY-MM-DD` y horas `HH:MM` en la hora
local del gimnasio y se almacenan como instantes UTC.
"""
import re
from datetime import date, datetime, time, timezone
from typing import Optional

import pytz

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Devuelve `dt` como aware en UTC; un datetime naive se interpreta como UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def convert_naive_to_gym_timezone(naive_dt: datetime, gym_timezone: str) -> datetime:
    """
    Interpreta un datetime naive como hora local del gimnasio.

    Args:
        naive_dt: Datetime naive que representa la hora local del gimnasio
        gym_timezone: Zona horaria del gimnasio (ej: 'America/Mexico_City')

    Returns:
        Datetime aware en la zona horaria del gimnasio
    """
    if naive_dt.tzinfo is not None:
        raise ValueError("El datetime debe ser naive (sin timezone)")

    tz = pytz.timezone(gym_timezone)
    return tz.localize(naive_dt)


def convert_gym_time_to_utc(naive_dt: datetime, gym_timezone: str) -> datetime:
    gym_aware = convert_naive_to_gym_timezone(naive_dt, gym_timezone)
    return gym_aware.astimezone(timezone.utc)


def convert_utc_to_local(utc_dt: datetime, gym_timezone: str) -> datetime:
    """
    Convierte un datetime UTC a hora local del gimnasio.

    Args:
        utc_dt: Datetime en UTC (si es naive se asume UTC)
        gym_timezone: Zona horaria del gimnasio

    Returns:
        Datetime aware en la zona horaria del gimnasio
    """
    tz = pytz.timezone(gym_timezone)
    return ensure_utc(utc_dt).astimezone(tz)


def parse_schedule_date(value: str) -> date:
    """Parsea una fecha `YYYY-MM-DD`. Lanza ValueError si el formato no es válido."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValueError(f"Fecha inválida '{value}', se esperaba YYYY-MM-DD")
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_wall_clock(value: str) -> time:
    """Parsea una hora `HH:MM`. Lanza ValueError si el formato no es válido."""
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValueError(f"Hora inválida '{value}', se esperaba HH:MM")
    return datetime.strptime(value, "%H:%M").time()


def combine_local_to_utc(day: date, wall_clock: time, gym_timezone: str) -> datetime:
    """Combina fecha y hora locales del gimnasio en un instante UTC."""
    return convert_gym_time_to_utc(datetime.combine(day, wall_clock), gym_timezone)


def local_wall_clock(utc_dt: datetime, gym_timezone: str) -> str:
    """Hora local `HH:MM` de un instante UTC."""
    return convert_utc_to_local(utc_dt, gym_timezone).strftime("%H:%M")
