"""Schedule invariants as plain functions over schedule-like objects."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from typing import Protocol, TypeVar
from uuid import UUID

from app.shared.exceptions import CapacityException, ValidationException
from app.shared.time_intervals import duration_minutes, interval_contains, intervals_overlap

MIN_BREAK_MINUTES = 5
MAX_BREAK_MINUTES = 60


class TimeWindow(Protocol):
    start_time: str
    end_time: str


class SpecialDate(Protocol):
    on_date: date
    is_available: bool


class ScheduleLike(Protocol):
    id: UUID
    start_time: str
    end_time: str
    is_available: bool
    max_students: int
    current_bookings: int
    effective_from: date
    effective_until: date | None
    breaks: Sequence[TimeWindow]
    special_dates: Sequence[SpecialDate]


S = TypeVar("S", bound=ScheduleLike)


def validate_window(start_time: str, end_time: str) -> None:
    if duration_minutes(start_time, end_time) <= 0:
        raise ValidationException("End time must be after start time")


def validate_breaks(start_time: str, end_time: str, breaks: Sequence[tuple[str, str]]) -> None:
    """Every break lies inside the window, lasts 5-60 minutes and overlaps no other break."""
    for index, (break_start, break_end) in enumerate(breaks):
        length = duration_minutes(break_start, break_end)
        if length <= 0:
            raise ValidationException("Break end time must be after break start time")
        if not MIN_BREAK_MINUTES <= length <= MAX_BREAK_MINUTES:
            raise ValidationException(
                f"Break duration must be between {MIN_BREAK_MINUTES} and {MAX_BREAK_MINUTES} minutes",
            )
        if not interval_contains(start_time, end_time, break_start, break_end):
            raise ValidationException("Break time must be within schedule time")
        for other_start, other_end in breaks[index + 1 :]:
            if intervals_overlap(break_start, break_end, other_start, other_end):
                raise ValidationException("Breaks must not overlap each other")


def is_time_slot_available(schedule: ScheduleLike, start_time: str, end_time: str) -> bool:
    if not schedule.is_available:
        return False
    if not interval_contains(schedule.start_time, schedule.end_time, start_time, end_time):
        return False
    return not any(
        intervals_overlap(start_time, end_time, item.start_time, item.end_time) for item in schedule.breaks
    )


def is_open_on(schedule: ScheduleLike, on_date: date) -> bool:
    """A special date for the day wins over the effective range."""
    if on_date < schedule.effective_from:
        return False
    if schedule.effective_until is not None and on_date > schedule.effective_until:
        return False
    for special in schedule.special_dates:
        if special.on_date == on_date:
            return special.is_available
    return True


def ensure_can_increment(schedule: ScheduleLike) -> None:
    if schedule.current_bookings >= schedule.max_students:
        raise CapacityException("Schedule is fully booked")


def ensure_can_decrement(schedule: ScheduleLike) -> None:
    if schedule.current_bookings <= 0:
        raise CapacityException("No bookings to decrement")


def overlapping(
    schedules: Iterable[S],
    start_time: str,
    end_time: str,
    exclude_id: UUID | None = None,
) -> list[S]:
    """Return the schedules, other than exclude_id, whose window overlaps the interval."""
    return [
        schedule
        for schedule in schedules
        if schedule.id != exclude_id
        and intervals_overlap(start_time, end_time, schedule.start_time, schedule.end_time)
    ]
