"""Scheduling schemas."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from app.core.enums import AppointmentStatusEnum, DayOfWeekEnum
from app.modules.identity.schemas import UserSummary
from app.shared.schemas import CamelModel
from app.shared.validators import clean_subjects, validate_interval, validate_time


class BreakCreate(CamelModel):
    """Break interval inside a schedule window."""

    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value: str) -> str:
        return validate_time(value)

    @model_validator(mode="after")
    def check_order(self) -> "BreakCreate":
        validate_interval(self.start_time, self.end_time, "Break end time")
        return self


class BreakRead(CamelModel):
    id: UUID
    start_time: str
    end_time: str
    duration: int


class SpecialDateCreate(CamelModel):
    """Date-specific override request."""

    on_date: date = Field(alias="date")
    is_available: bool = False
    reason: str | None = Field(default=None, max_length=100)


class SpecialDateRead(CamelModel):
    id: UUID
    on_date: date = Field(alias="date")
    is_available: bool
    reason: str | None


class _WindowFields(CamelModel):
    @field_validator("start_time", "end_time", check_fields=False)
    @classmethod
    def check_time(cls, value: str | None) -> str | None:
        return validate_time(value)

    @field_validator("subjects", check_fields=False)
    @classmethod
    def normalize_subjects(cls, value: list[str] | None) -> list[str] | None:
        return clean_subjects(value)


class ScheduleCreate(_WindowFields):
    """Create schedule request; teacher defaults to the caller."""

    teacher_id: UUID | None = Field(default=None, alias="teacher")
    day_of_week: DayOfWeekEnum
    start_time: str
    end_time: str
    is_available: bool = True
    subjects: list[str] = Field(default_factory=list, max_length=30)
    max_students: int = Field(default=1, ge=1, le=10)
    breaks: list[BreakCreate] = Field(default_factory=list, max_length=20)
    is_recurring: bool = True
    effective_from: date | None = None
    effective_until: date | None = None
    notes: str | None = Field(default=None, max_length=200)

    @model_validator(mode="after")
    def check_ranges(self) -> "ScheduleCreate":
        validate_interval(self.start_time, self.end_time)
        if self.effective_from and self.effective_until and self.effective_until < self.effective_from:
            raise ValueError("effectiveUntil must not be before effectiveFrom")
        return self


class ScheduleUpdate(_WindowFields):
    """Partial schedule update."""

    day_of_week: DayOfWeekEnum | None = None
    start_time: str | None = None
    end_time: str | None = None
    is_available: bool | None = None
    subjects: list[str] | None = Field(default=None, max_length=30)
    max_students: int | None = Field(default=None, ge=1, le=10)
    breaks: list[BreakCreate] | None = Field(default=None, max_length=20)
    is_recurring: bool | None = None
    effective_from: date | None = None
    effective_until: date | None = None
    notes: str | None = Field(default=None, max_length=200)


class ScheduleRead(CamelModel):
    """Schedule response schema."""

    id: UUID
    teacher: UserSummary
    day_of_week: DayOfWeekEnum
    start_time: str
    end_time: str
    duration: int
    is_available: bool
    subjects: list[str]
    max_students: int
    current_bookings: int
    available_capacity: int
    is_fully_booked: bool
    breaks: list[BreakRead]
    special_dates: list[SpecialDateRead]
    is_recurring: bool
    effective_from: date
    effective_until: date | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class DailyStudentEntry(CamelModel):
    """Booked student shown inside a daily schedule window."""

    appointment_id: UUID
    student_id: UUID | None
    first_name: str | None
    last_name: str | None
    grade: str | None
    subject: str
    start_time: str
    end_time: str
    status: AppointmentStatusEnum
    notes: str | None


class DailyScheduleEntry(ScheduleRead):
    students: list[DailyStudentEntry]
    total_booked: int
    available_slots: int


class DailyScheduleRead(CamelModel):
    """A teacher's windows for one date with the appointments inside them."""

    scheduled_date: date = Field(alias="date")
    day_of_week: DayOfWeekEnum
    schedules: list[DailyScheduleEntry]
    total_appointments: int
