"""
Prueba de solapamiento de franjas horarias.

Las franjas son semiabiertas `[start, end)`: una clase que termina a las 10:00
no choca con otra que empieza a las 10:00.
"""
from datetime import datetime
from typing import Iterable, Optional, TypeVar

T = TypeVar("T")


def intervals_overlap(
    start: datetime,
    end: datetime,
    other_start: datetime,
    other_end: datetime
) -> bool:
    """
    Prueba de tres vías: el inicio cae dentro de la otra franja, el fin cae
    dentro, o la franja contiene por completo a la otra.
    """
    start_inside = other_start <= start < other_end
    end_inside = other_start < end <= other_end
    contains = start <= other_start and other_end <= end
    return start_inside or end_inside or contains


def first_overlap(start: datetime, end: datetime, candidates: Iterable[T]) -> Optional[T]:
    """Primer elemento (con `start_time`/`end_time`) que se solapa con `[start, end)`."""
    for candidate in candidates:
        if intervals_overlap(start, end, candidate.start_time, candidate.end_time):
            return candidate
    return None
