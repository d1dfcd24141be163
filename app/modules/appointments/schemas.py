"""Appointments schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from app.core.enums import (
    AppointmentStatusEnum,
    AttendanceEnum,
    CompletionStatusEnum,
    LocationEnum,
    RecurrenceFrequencyEnum,
    RoleEnum,
)
from app.modules.identity.schemas import UserSummary
from app.modules.students.schemas import StudentSummary
from app.shared.schemas import CamelModel
from app.shared.validators import validate_interval, validate_time


class _TimeFields(CamelModel):
    @field_validator("start_time", "end_time", check_fields=False)
    @classmethod
    def check_time(cls, value: str | None) -> str | None:
        return validate_time(value)

    @model_validator(mode="after")
    def check_order(self):
        validate_interval(getattr(self, "start_time", None), getattr(self, "end_time", None))
        return self


class AppointmentCreate(_TimeFields):
    """Create appointment request (admin)."""

    student_id: UUID | None = Field(default=None, alias="student")
    teacher_id: UUID = Field(alias="teacher")
    subject: str = Field(min_length=1, max_length=100)
    scheduled_date: date
    start_time: str
    end_time: str
    location: LocationEnum = LocationEnum.IN_PERSON
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("subject", mode="before")
    @classmethod
    def strip_subject(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class AppointmentUpdate(_TimeFields):
    """Partial appointment update; which fields a caller may send depends on role."""

    student_id: UUID | None = Field(default=None, alias="student")
    teacher_id: UUID | None = Field(default=None, alias="teacher")
    subject: str | None = Field(default=None, min_length=1, max_length=100)
    scheduled_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    status: AppointmentStatusEnum | None = None
    location: LocationEnum | None = None
    notes: str | None = Field(default=None, max_length=500)
    teacher_notes: str | None = Field(default=None, max_length=500)
    parent_notes: str | None = Field(default=None, max_length=500)
    attendance: AttendanceEnum | None = None
    completion_status: CompletionStatusEnum | None = None
    is_paid: bool | None = None
    payment_amount: Decimal | None = Field(default=None, ge=0)
    is_recurring: bool | None = None
    recurring_frequency: RecurrenceFrequencyEnum | None = None
    recurring_end_date: date | None = None


class AppointmentStatusUpdate(CamelModel):
    status: AppointmentStatusEnum


class RescheduleRequest(CamelModel):
    """Move an appointment to a new date and time."""

    new_date: date
    new_start_time: str
    new_end_time: str
    reason: str = Field(min_length=5, max_length=200)

    @field_validator("new_start_time", "new_end_time")
    @classmethod
    def check_time(cls, value: str) -> str:
        return validate_time(value)

    @field_validator("reason", mode="before")
    @classmethod
    def strip_reason(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def check_order(self) -> "RescheduleRequest":
        validate_interval(self.new_start_time, self.new_end_time)
        return self


class AppointmentLink(CamelModel):
    """Compact pointer to a related appointment."""

    id: UUID
    scheduled_date: date
    start_time: str
    end_time: str
    status: AppointmentStatusEnum


class AppointmentRead(CamelModel):
    """Appointment response schema."""

    id: UUID
    student: StudentSummary | None
    teacher: UserSummary
    schedule_id: UUID | None
    subject: str
    scheduled_date: date
    start_time: str
    end_time: str
    duration: int
    status: AppointmentStatusEnum
    location: LocationEnum
    notes: str | None
    teacher_notes: str | None
    parent_notes: str | None
    booked_by: UserSummary | None
    booked_at: datetime | None
    original_appointment: AppointmentLink | None
    reschedule_reason: str | None
    reschedule_requested_by: RoleEnum | None
    reschedule_requested_at: datetime | None
    attendance: AttendanceEnum
    completion_status: CompletionStatusEnum
    is_paid: bool
    payment_amount: Decimal | None
    is_recurring: bool
    recurring_frequency: RecurrenceFrequencyEnum | None
    recurring_end_date: date | None
    is_past: bool
    is_today: bool
    created_at: datetime
    updated_at: datetime


class RescheduleResult(CamelModel):
    new_appointment: AppointmentRead
    original_appointment: AppointmentRead


class ConflictEntry(CamelModel):
    id: UUID
    start_time: str
    end_time: str
    student: UUID | None = None
    subject: str
    status: AppointmentStatusEnum


class ConflictCheckRead(CamelModel):
    """Result of a conflict probe."""

    conflicts: list[ConflictEntry]
    has_conflicts: bool
