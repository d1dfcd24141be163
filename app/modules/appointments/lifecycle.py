"""Appointment status machine and interval rules.

Forward chain: available -> booked -> confirmed -> in-progress -> completed.
``cancelled`` and ``rescheduled`` are side exits from any open status. Once an
appointment is cancelled, completed or rescheduled it accepts no further
status change, cancellation or reschedule.

A "booked" appointment always carries booking attribution (who and when);
the attribution is cleared as soon as the status moves anywhere else.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol, TypeVar
from uuid import UUID

from app.core.enums import AppointmentStatusEnum, AttendanceEnum, CompletionStatusEnum
from app.shared.exceptions import StateTransitionException, ValidationException
from app.shared.time_intervals import duration_minutes, intervals_overlap, is_valid_time

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480

FORWARD_CHAIN = (
    AppointmentStatusEnum.AVAILABLE,
    AppointmentStatusEnum.BOOKED,
    AppointmentStatusEnum.CONFIRMED,
    AppointmentStatusEnum.IN_PROGRESS,
    AppointmentStatusEnum.COMPLETED,
)
SIDE_EXITS = frozenset({AppointmentStatusEnum.CANCELLED, AppointmentStatusEnum.RESCHEDULED})
CLOSED_STATUSES = frozenset(
    {
        AppointmentStatusEnum.CANCELLED,
        AppointmentStatusEnum.COMPLETED,
        AppointmentStatusEnum.RESCHEDULED,
    },
)
# statuses that never block a teacher's calendar
INACTIVE_STATUSES = frozenset({AppointmentStatusEnum.CANCELLED, AppointmentStatusEnum.RESCHEDULED})
# statuses that occupy a seat on the linked schedule
CAPACITY_STATUSES = frozenset(
    {
        AppointmentStatusEnum.BOOKED,
        AppointmentStatusEnum.CONFIRMED,
        AppointmentStatusEnum.IN_PROGRESS,
    },
)


class AppointmentLike(Protocol):
    id: UUID
    status: AppointmentStatusEnum
    start_time: str
    end_time: str
    student_id: UUID | None
    schedule_id: UUID | None
    booked_by_id: UUID | None
    booked_at: datetime | None
    attendance: AttendanceEnum
    completion_status: CompletionStatusEnum


A = TypeVar("A", bound=AppointmentLike)


def compute_duration(start_time: str, end_time: str) -> int:
    """Derive duration in minutes, enforcing format, ordering and the 15-480 range."""
    if not is_valid_time(start_time) or not is_valid_time(end_time):
        raise ValidationException("Duration cannot be calculated with invalid time format")
    duration = duration_minutes(start_time, end_time)
    if duration <= 0:
        raise ValidationException("End time must be after start time")
    if duration < MIN_DURATION_MINUTES:
        raise ValidationException("Duration must be at least 15 minutes")
    if duration > MAX_DURATION_MINUTES:
        raise ValidationException("Duration cannot exceed 8 hours")
    return duration


def can_transition(current: AppointmentStatusEnum, new: AppointmentStatusEnum) -> bool:
    if current in CLOSED_STATUSES:
        return False
    if new == current or new in SIDE_EXITS:
        return True
    return FORWARD_CHAIN.index(new) > FORWARD_CHAIN.index(current)


def apply_status(
    appointment: AppointmentLike,
    new_status: AppointmentStatusEnum,
    *,
    now: datetime,
    booked_by: UUID | None = None,
) -> None:
    """Move appointment to new_status, keeping attribution and outcome fields consistent."""
    current = appointment.status
    if current in CLOSED_STATUSES:
        raise StateTransitionException(f"Cannot change status of a {current} appointment")
    if not can_transition(current, new_status):
        raise StateTransitionException(f"Cannot change status from {current} to {new_status}")

    if new_status == AppointmentStatusEnum.BOOKED:
        booker = booked_by or appointment.booked_by_id
        if booker is None:
            raise ValidationException('bookedBy is required when status is "booked"')
        appointment.booked_by_id = booker
        appointment.booked_at = appointment.booked_at if current == new_status and appointment.booked_at else now
    else:
        appointment.booked_by_id = None
        appointment.booked_at = None

    if new_status == AppointmentStatusEnum.CANCELLED:
        appointment.attendance = AttendanceEnum.CANCELLED
        appointment.completion_status = CompletionStatusEnum.CANCELLED

    appointment.status = new_status


def ensure_cancellable(appointment: AppointmentLike) -> None:
    if appointment.status in (AppointmentStatusEnum.CANCELLED, AppointmentStatusEnum.COMPLETED):
        raise StateTransitionException("Appointment is already cancelled or completed")
    if appointment.status in CLOSED_STATUSES:
        raise StateTransitionException(f"Cannot cancel a {appointment.status} appointment")


def ensure_reschedulable(appointment: AppointmentLike) -> None:
    if appointment.status in CLOSED_STATUSES:
        raise StateTransitionException(f"Cannot reschedule a {appointment.status} appointment")


def status_after_reschedule(current: AppointmentStatusEnum) -> AppointmentStatusEnum:
    """Status given to the replacement appointment; a running session restarts as confirmed."""
    if current == AppointmentStatusEnum.IN_PROGRESS:
        return AppointmentStatusEnum.CONFIRMED
    return current


def holds_capacity(appointment: AppointmentLike) -> bool:
    return appointment.schedule_id is not None and appointment.status in CAPACITY_STATUSES


def overlapping(
    appointments: Iterable[A],
    start_time: str,
    end_time: str,
    exclude_id: UUID | None = None,
) -> list[A]:
    """Return the active appointments, other than exclude_id, overlapping the interval."""
    return [
        appointment
        for appointment in appointments
        if appointment.id != exclude_id
        and appointment.status not in INACTIVE_STATUSES
        and intervals_overlap(start_time, end_time, appointment.start_time, appointment.end_time)
    ]


def describe_conflicts(appointments: Iterable[AppointmentLike]) -> list[dict[str, Any]]:
    """Shape blocking appointments for the error payload."""
    return [
        {
            "id": str(appointment.id),
            "startTime": appointment.start_time,
            "endTime": appointment.end_time,
            "student": str(appointment.student_id) if appointment.student_id else None,
        }
        for appointment in appointments
    ]
