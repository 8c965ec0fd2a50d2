# backend/trainbook/utils/dates.py
"""Whole-day date helpers shared by the calendar and booking services."""

from datetime import date, timedelta
from typing import Iterable, Iterator, List, Optional


def iter_days(start: date, end: Optional[date] = None) -> Iterator[date]:
    """Yield every day in the inclusive range [start, end or start]."""
    last = end or start
    current = start
    while current <= last:
        yield current
        current += timedelta(days=1)


def day_span(start: date, end: Optional[date] = None) -> int:
    """Number of whole days between start and end (0 for a single day)."""
    return ((end or start) - start).days


def day_of_week(value: date) -> int:
    """Weekday number with 0 = Sunday .. 6 = Saturday."""
    return (value.weekday() + 1) % 7


def normalize_days_of_week(days: Iterable[object]) -> List[int]:
    """Keep integers 0-6 only, de-duplicated and sorted."""
    kept = set()
    for day in days:
        if isinstance(day, bool) or not isinstance(day, int):
            continue
        if 0 <= day <= 6:
            kept.add(day)
    return sorted(kept)
