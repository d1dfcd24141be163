"""Scheduling ORM models."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin, enum_column
from app.core.enums import DayOfWeekEnum
from app.modules.scheduling import rules
from app.shared.time_intervals import duration_minutes
from app.shared.utils import utc_today

if TYPE_CHECKING:
    from app.modules.identity.models import User


class Schedule(BaseModelMixin, Base):
    """Recurring weekly availability window of a teacher."""

    __tablename__ = "schedules"
    __table_args__ = (
        CheckConstraint("current_bookings >= 0", name="current_bookings_non_negative"),
        CheckConstraint("current_bookings <= max_students", name="current_bookings_within_capacity"),
        CheckConstraint("max_students BETWEEN 1 AND 10", name="max_students_range"),
        Index("ix_schedules_teacher_day", "teacher_id", "day_of_week"),
        Index("ix_schedules_day_start", "day_of_week", "start_time"),
    )

    teacher_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    day_of_week: Mapped[DayOfWeekEnum] = mapped_column(enum_column(DayOfWeekEnum, "day_of_week_enum"), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    subjects: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    max_students: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    current_bookings: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, default=utc_today, nullable=False)
    effective_until: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(String(200), nullable=True)

    teacher: Mapped["User"] = relationship()
    breaks: Mapped[list["ScheduleBreak"]] = relationship(
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="ScheduleBreak.start_time",
    )
    special_dates: Mapped[list["ScheduleSpecialDate"]] = relationship(
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="ScheduleSpecialDate.on_date",
    )

    @property
    def duration(self) -> int:
        return duration_minutes(self.start_time, self.end_time)

    @property
    def available_capacity(self) -> int:
        return max(0, self.max_students - self.current_bookings)

    @property
    def is_fully_booked(self) -> bool:
        return self.current_bookings >= self.max_students

    def is_time_slot_available(self, start_time: str, end_time: str) -> bool:
        """Return True if the interval fits inside the window and avoids every break."""
        return rules.is_time_slot_available(self, start_time, end_time)

    def is_open_on(self, on_date: date) -> bool:
        """Return True if the weekly window applies on a concrete date."""
        return rules.is_open_on(self, on_date)


class ScheduleBreak(BaseModelMixin, Base):
    """Unbookable pause inside a schedule window."""

    __tablename__ = "schedule_breaks"

    schedule_id: Mapped[UUID] = mapped_column(
        ForeignKey("schedules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)

    schedule: Mapped[Schedule] = relationship(back_populates="breaks")

    @property
    def duration(self) -> int:
        return duration_minutes(self.start_time, self.end_time)


class ScheduleSpecialDate(BaseModelMixin, Base):
    """Date-specific override such as a holiday."""

    __tablename__ = "schedule_special_dates"

    schedule_id: Mapped[UUID] = mapped_column(
        ForeignKey("schedules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    on_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(100), nullable=True)

    schedule: Mapped[Schedule] = relationship(back_populates="special_dates")
