"""Teachers schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from app.core.enums import DayOfWeekEnum
from app.modules.identity.schemas import UserSummary
from app.shared.schemas import CamelModel
from app.shared.validators import clean_subjects, validate_interval, validate_time


class AvailabilityWindow(CamelModel):
    """Weekly availability entry."""

    day_of_week: DayOfWeekEnum
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value: str) -> str:
        return validate_time(value)

    @model_validator(mode="after")
    def check_order(self) -> "AvailabilityWindow":
        validate_interval(self.start_time, self.end_time)
        return self


class TeacherProfileUpsert(CamelModel):
    """Create-or-update teacher profile request."""

    subjects: list[str] = Field(default_factory=list, max_length=30)
    qualifications: list[str] = Field(default_factory=list, max_length=20)
    bio: str = Field(default="", max_length=2000)
    experience_years: int = Field(default=0, ge=0, le=80)
    hourly_rate: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    availability: list[AvailabilityWindow] = Field(default_factory=list, max_length=50)

    @field_validator("subjects")
    @classmethod
    def normalize_subjects(cls, value: list[str]) -> list[str]:
        return clean_subjects(value) or []


class TeacherProfileRead(CamelModel):
    """Teacher profile response schema."""

    id: UUID
    user_id: UUID
    subjects: list[str]
    qualifications: list[str]
    bio: str
    experience_years: int
    hourly_rate: Decimal | None
    availability: list[AvailabilityWindow]
    created_at: datetime
    updated_at: datetime


class TeacherRead(UserSummary):
    """Public teacher listing entry."""

    subjects: list[str] = Field(default_factory=list)
    experience_years: int = 0
