from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from app.core.enums import AppointmentStatusEnum, AttendanceEnum, CompletionStatusEnum
from app.modules.appointments import lifecycle
from app.shared.exceptions import StateTransitionException, ValidationException

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=UTC)


@dataclass
class FakeAppointment:
    id: UUID
    status: AppointmentStatusEnum
    start_time: str = "09:00"
    end_time: str = "10:00"
    student_id: UUID | None = None
    schedule_id: UUID | None = None
    booked_by_id: UUID | None = None
    booked_at: datetime | None = None
    attendance: AttendanceEnum = AttendanceEnum.PRESENT
    completion_status: CompletionStatusEnum = CompletionStatusEnum.NOT_STARTED


def make_appointment(status: AppointmentStatusEnum, **fields) -> FakeAppointment:
    return FakeAppointment(id=uuid4(), status=status, **fields)


@pytest.mark.parametrize(
    ("start", "end", "expected"),
    [("09:00", "09:15", 15), ("09:00", "17:00", 480), ("9:00", "10:30", 90)],
)
def test_compute_duration_accepts_range_boundaries(start: str, end: str, expected: int) -> None:
    assert lifecycle.compute_duration(start, end) == expected


@pytest.mark.parametrize(
    ("start", "end", "message"),
    [
        ("09:00", "09:10", "at least 15 minutes"),
        ("08:00", "16:01", "cannot exceed 8 hours"),
        ("10:00", "09:00", "End time must be after start time"),
        ("10:00", "10:00", "End time must be after start time"),
        ("23:59", "00:01", "End time must be after start time"),
        ("25:00", "26:00", "invalid time format"),
    ],
)
def test_compute_duration_rejects_out_of_range(start: str, end: str, message: str) -> None:
    with pytest.raises(ValidationException, match=message):
        lifecycle.compute_duration(start, end)


def test_forward_chain_allows_skipping_ahead_but_not_back() -> None:
    assert lifecycle.can_transition(AppointmentStatusEnum.AVAILABLE, AppointmentStatusEnum.CONFIRMED) is True
    assert lifecycle.can_transition(AppointmentStatusEnum.CONFIRMED, AppointmentStatusEnum.BOOKED) is False
    assert lifecycle.can_transition(AppointmentStatusEnum.BOOKED, AppointmentStatusEnum.CANCELLED) is True


@pytest.mark.parametrize("closed", sorted(lifecycle.CLOSED_STATUSES))
def test_closed_statuses_accept_no_change(closed: AppointmentStatusEnum) -> None:
    appointment = make_appointment(closed)

    with pytest.raises(StateTransitionException):
        lifecycle.apply_status(appointment, AppointmentStatusEnum.CONFIRMED, now=NOW)


def test_booking_requires_booker_and_stamps_time() -> None:
    appointment = make_appointment(AppointmentStatusEnum.AVAILABLE)

    with pytest.raises(ValidationException, match="bookedBy is required"):
        lifecycle.apply_status(appointment, AppointmentStatusEnum.BOOKED, now=NOW)

    parent_id = uuid4()
    lifecycle.apply_status(appointment, AppointmentStatusEnum.BOOKED, now=NOW, booked_by=parent_id)

    assert appointment.status == AppointmentStatusEnum.BOOKED
    assert appointment.booked_by_id == parent_id
    assert appointment.booked_at == NOW


def test_leaving_booked_clears_attribution() -> None:
    appointment = make_appointment(AppointmentStatusEnum.BOOKED, booked_by_id=uuid4(), booked_at=NOW)

    lifecycle.apply_status(appointment, AppointmentStatusEnum.CONFIRMED, now=NOW)

    assert appointment.booked_by_id is None
    assert appointment.booked_at is None


def test_cancel_marks_attendance_and_completion() -> None:
    appointment = make_appointment(AppointmentStatusEnum.CONFIRMED)

    lifecycle.apply_status(appointment, AppointmentStatusEnum.CANCELLED, now=NOW)

    assert appointment.status == AppointmentStatusEnum.CANCELLED
    assert appointment.attendance == AttendanceEnum.CANCELLED
    assert appointment.completion_status == CompletionStatusEnum.CANCELLED


def test_cancellable_and_reschedulable_guards() -> None:
    with pytest.raises(StateTransitionException, match="already cancelled or completed"):
        lifecycle.ensure_cancellable(make_appointment(AppointmentStatusEnum.COMPLETED))
    with pytest.raises(StateTransitionException, match="rescheduled"):
        lifecycle.ensure_cancellable(make_appointment(AppointmentStatusEnum.RESCHEDULED))
    with pytest.raises(StateTransitionException, match="Cannot reschedule a cancelled appointment"):
        lifecycle.ensure_reschedulable(make_appointment(AppointmentStatusEnum.CANCELLED))

    lifecycle.ensure_cancellable(make_appointment(AppointmentStatusEnum.BOOKED))
    lifecycle.ensure_reschedulable(make_appointment(AppointmentStatusEnum.IN_PROGRESS))


def test_status_after_reschedule_restarts_running_session() -> None:
    assert lifecycle.status_after_reschedule(AppointmentStatusEnum.IN_PROGRESS) == AppointmentStatusEnum.CONFIRMED
    assert lifecycle.status_after_reschedule(AppointmentStatusEnum.BOOKED) == AppointmentStatusEnum.BOOKED


def test_holds_capacity_needs_schedule_and_active_booking() -> None:
    schedule_id = uuid4()

    assert lifecycle.holds_capacity(make_appointment(AppointmentStatusEnum.BOOKED, schedule_id=schedule_id))
    assert not lifecycle.holds_capacity(make_appointment(AppointmentStatusEnum.BOOKED))
    assert not lifecycle.holds_capacity(make_appointment(AppointmentStatusEnum.AVAILABLE, schedule_id=schedule_id))


def test_overlapping_ignores_inactive_excluded_and_touching() -> None:
    active = make_appointment(AppointmentStatusEnum.BOOKED, start_time="09:00", end_time="10:00")
    cancelled = make_appointment(AppointmentStatusEnum.CANCELLED, start_time="09:00", end_time="10:00")
    touching = make_appointment(AppointmentStatusEnum.AVAILABLE, start_time="10:00", end_time="11:00")
    excluded = make_appointment(AppointmentStatusEnum.CONFIRMED, start_time="09:30", end_time="10:30")

    result = lifecycle.overlapping([active, cancelled, touching, excluded], "09:30", "10:00", excluded.id)

    assert result == [active]
    described = lifecycle.describe_conflicts(result)
    assert described == [{"id": str(active.id), "startTime": "09:00", "endTime": "10:00", "student": None}]
