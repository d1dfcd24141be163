"""Arithmetic over "HH:MM" wall-clock strings.

Intervals are half-open: ``09:00-10:00`` and ``10:00-11:00`` touch but do not
overlap. Nothing here wraps past midnight, so ``23:59-00:01`` is an interval
with a negative duration and callers must reject it.
"""

from __future__ import annotations

import re
from datetime import date

from app.core.enums import DayOfWeekEnum

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

_WEEKDAYS = tuple(DayOfWeekEnum)


def is_valid_time(value: str) -> bool:
    return isinstance(value, str) and TIME_PATTERN.match(value) is not None


def to_minutes(value: str) -> int:
    """Return minutes from midnight for an "HH:MM" string."""
    if not is_valid_time(value):
        raise ValueError(f"Invalid time format: {value!r} (expected HH:MM)")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def normalize_time(value: str) -> str:
    """Zero-pad an "H:MM" string so stored values sort lexicographically."""
    total = to_minutes(value)
    return f"{total // 60:02d}:{total % 60:02d}"


def duration_minutes(start: str, end: str) -> int:
    return to_minutes(end) - to_minutes(start)


def intervals_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    return to_minutes(a_start) < to_minutes(b_end) and to_minutes(a_end) > to_minutes(b_start)


def interval_contains(container_start: str, container_end: str, start: str, end: str) -> bool:
    """Return True if [start, end] lies entirely inside the container interval."""
    return to_minutes(start) >= to_minutes(container_start) and to_minutes(end) <= to_minutes(container_end)


def day_of_week(value: date) -> DayOfWeekEnum:
    return _WEEKDAYS[value.weekday()]
