"""Teachers ORM models."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin, enum_column
from app.core.enums import DayOfWeekEnum


class TeacherProfile(BaseModelMixin, Base):
    """Teaching details linked to a teacher account."""

    __tablename__ = "teacher_profiles"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    subjects: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    qualifications: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    bio: Mapped[str] = mapped_column(Text, default="", nullable=False)
    experience_years: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    user = relationship("User", back_populates="teacher_profile")
    availability: Mapped[list["TeacherAvailability"]] = relationship(
        back_populates="profile",
        cascade="all, delete-orphan",
        order_by="TeacherAvailability.start_time",
    )


class TeacherAvailability(BaseModelMixin, Base):
    """Weekly window in which a teacher is generally available."""

    __tablename__ = "teacher_availability"

    profile_id: Mapped[UUID] = mapped_column(
        ForeignKey("teacher_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    day_of_week: Mapped[DayOfWeekEnum] = mapped_column(enum_column(DayOfWeekEnum, "day_of_week_enum"), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)

    profile: Mapped[TeacherProfile] = relationship(back_populates="availability")
