"""Booking schemas."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from app.core.enums import LocationEnum
from app.shared.schemas import CamelModel
from app.shared.validators import validate_interval, validate_time


class BookAppointmentRequest(CamelModel):
    """Claim an open appointment for one of the caller's children."""

    appointment_id: UUID
    student_id: UUID = Field(alias="student")
    notes: str | None = Field(default=None, max_length=500)


class ScheduleBookingRequest(CamelModel):
    """Book a session inside a teacher's weekly schedule window."""

    student_id: UUID = Field(alias="student")
    teacher_id: UUID = Field(alias="teacher")
    subject: str = Field(min_length=1, max_length=100)
    scheduled_date: date
    start_time: str
    end_time: str
    location: LocationEnum = LocationEnum.IN_PERSON
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value: str) -> str:
        return validate_time(value)

    @field_validator("subject", mode="before")
    @classmethod
    def strip_subject(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def check_order(self) -> "ScheduleBookingRequest":
        validate_interval(self.start_time, self.end_time)
        return self
