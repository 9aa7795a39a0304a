"""Arithmetic on "HH:MM" wall-clock strings used by the lesson calendar."""

from __future__ import annotations

from datetime import time, timedelta
from typing import Any, Optional

from ..core.constants import DEFAULT_LESSON_MINUTES, LUNCH_BREAK_TIME


def to_minutes(hhmm: str) -> int:
    h, m = hhmm.split(":")[:2]
    return int(h) * 60 + int(m)


def to_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes(hhmm: str, delta: int) -> str:
    return to_hhmm(to_minutes(hhmm) + delta)


def floor_to_hour(hhmm: str) -> str:
    return f"{hhmm.split(':')[0]}:00"


def round_to_quarter(hhmm: str) -> str:
    return to_hhmm(round(to_minutes(hhmm) / 15) * 15)


def floor_to_quarter(hhmm: str) -> str:
    return to_hhmm(to_minutes(hhmm) // 15 * 15)


def ranges_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Half-open overlap: touching ranges (10:00-11:00, 11:00-12:00) do not overlap."""
    return to_minutes(a_start) < to_minutes(b_end) and to_minutes(a_end) > to_minutes(b_start)


def crosses_lunch(start: str, end: str, *, lunch: str = LUNCH_BREAK_TIME) -> bool:
    lunch_min = to_minutes(lunch)
    return to_minutes(start) < lunch_min < to_minutes(end)


def duration_minutes(start: str, end: Optional[str]) -> int:
    if not end:
        return DEFAULT_LESSON_MINUTES
    return to_minutes(end) - to_minutes(start)


def normalize_hhmm(value: Any) -> Optional[str]:
    """Normalize MySQL TIME values (time, timedelta, 'HH:MM:SS') into 'HH:MM'."""

    if value is None:
        return None
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, timedelta):
        total_minutes = int(value.total_seconds()) // 60 % (24 * 60)
        return to_hhmm(total_minutes)
    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        return f"{int(parts[0]):02d}:{int(parts[1]):02d}"
    raise TypeError(f"Unsupported TIME value type: {type(value)!r}")
