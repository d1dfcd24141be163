"""Identity schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from app.core.enums import RoleEnum
from app.shared.schemas import CamelModel
from app.shared.validators import validate_phone


class _NameFields(CamelModel):
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    phone: str | None = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str | None) -> str | None:
        return validate_phone(value)


class RegisterRequest(_NameFields):
    """Self-registration request; always creates a parent account."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class UserCreate(RegisterRequest):
    """Admin-side user creation request."""

    role: RoleEnum = RoleEnum.PARENT


class UserUpdate(CamelModel):
    """Partial profile update."""

    first_name: str | None = Field(default=None, min_length=2, max_length=50)
    last_name: str | None = Field(default=None, min_length=2, max_length=50)
    phone: str | None = None
    is_active: bool | None = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str | None) -> str | None:
        return validate_phone(value)


class LoginRequest(CamelModel):
    """Credentials for login."""

    email: EmailStr
    password: str


class UserRead(CamelModel):
    """User output schema."""

    id: UUID
    email: EmailStr
    first_name: str
    last_name: str
    full_name: str
    phone: str | None
    role: RoleEnum
    is_active: bool
    last_login: datetime | None
    created_at: datetime
    updated_at: datetime

    @field_validator("role", mode="before")
    @classmethod
    def flatten_role(cls, value: object) -> object:
        return getattr(value, "name", value)


class UserSummary(CamelModel):
    """Compact user reference embedded in other payloads."""

    id: UUID
    first_name: str
    last_name: str
    email: str


class TokenResponse(CamelModel):
    """Access token plus the signed-in profile."""

    token: str
    token_type: str = "bearer"
    user: UserRead
