"""Students schemas."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from app.core.enums import DayOfWeekEnum, LearningStyleEnum
from app.modules.identity.schemas import UserSummary
from app.shared.schemas import CamelModel
from app.shared.utils import utc_today
from app.shared.validators import (
    clean_subjects,
    validate_interval,
    validate_past_date,
    validate_phone,
    validate_time,
)


class PreferredTime(CamelModel):
    """Weekly window the family prefers for sessions."""

    day: DayOfWeekEnum
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value: str) -> str:
        return validate_time(value)

    @model_validator(mode="after")
    def check_order(self) -> "PreferredTime":
        validate_interval(self.start_time, self.end_time)
        return self


class EmergencyContact(CamelModel):
    """Who to call when the parent is unreachable."""

    name: str = Field(min_length=2, max_length=50)
    phone: str
    relationship: str = Field(min_length=2, max_length=30)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        return validate_phone(value)


class _StudentFields(CamelModel):
    @field_validator("first_name", "last_name", "grade", mode="before", check_fields=False)
    @classmethod
    def strip_text(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("date_of_birth", check_fields=False)
    @classmethod
    def check_birth_date(cls, value: date | None) -> date | None:
        return validate_past_date(value, utc_today())

    @field_validator("subjects", check_fields=False)
    @classmethod
    def normalize_subjects(cls, value: list[str] | None) -> list[str] | None:
        return clean_subjects(value)


class StudentCreate(_StudentFields):
    """Create student request."""

    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    date_of_birth: date
    grade: str = Field(min_length=1, max_length=20)
    subjects: list[str] = Field(default_factory=list, max_length=30)
    parent_id: UUID | None = Field(default=None, alias="parent")
    notes: str | None = Field(default=None, max_length=500)
    emergency_contact: EmergencyContact | None = None
    learning_style: LearningStyleEnum = LearningStyleEnum.MIXED
    preferred_times: list[PreferredTime] = Field(default_factory=list, max_length=21)


class StudentUpdate(_StudentFields):
    """Partial student update."""

    first_name: str | None = Field(default=None, min_length=2, max_length=50)
    last_name: str | None = Field(default=None, min_length=2, max_length=50)
    date_of_birth: date | None = None
    grade: str | None = Field(default=None, min_length=1, max_length=20)
    subjects: list[str] | None = Field(default=None, max_length=30)
    notes: str | None = Field(default=None, max_length=500)
    emergency_contact: EmergencyContact | None = None
    learning_style: LearningStyleEnum | None = None
    preferred_times: list[PreferredTime] | None = Field(default=None, max_length=21)


class StudentSummary(CamelModel):
    """Compact student reference embedded in other payloads."""

    id: UUID
    first_name: str
    last_name: str
    grade: str


class StudentRead(CamelModel):
    """Student response schema."""

    id: UUID
    first_name: str
    last_name: str
    full_name: str
    date_of_birth: date
    current_age: int
    grade: str
    subjects: list[str]
    parent: UserSummary
    is_active: bool
    notes: str | None
    emergency_contact: EmergencyContact | None
    learning_style: LearningStyleEnum
    preferred_times: list[PreferredTime]
    created_at: datetime
    updated_at: datetime
