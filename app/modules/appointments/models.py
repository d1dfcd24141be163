"""Appointments ORM models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin, enum_column
from app.core.enums import (
    AppointmentStatusEnum,
    AttendanceEnum,
    CompletionStatusEnum,
    LocationEnum,
    RecurrenceFrequencyEnum,
    RoleEnum,
)
from app.shared.utils import utc_today

if TYPE_CHECKING:
    from app.modules.identity.models import User
    from app.modules.scheduling.models import Schedule
    from app.modules.students.models import Student


class Appointment(BaseModelMixin, Base):
    """One concrete session: an open bookable slot or a filled booking."""

    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("duration BETWEEN 15 AND 480", name="duration_range"),
        CheckConstraint("end_time > start_time", name="end_after_start"),
        Index("ix_appointments_teacher_date", "teacher_id", "scheduled_date"),
        Index("ix_appointments_student_date", "student_id", "scheduled_date"),
        Index("ix_appointments_status_date", "status", "scheduled_date"),
    )

    student_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("students.id", ondelete="SET NULL"),
        nullable=True,
    )
    teacher_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    schedule_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("schedules.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    subject: Mapped[str] = mapped_column(String(100), nullable=False)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[AppointmentStatusEnum] = mapped_column(
        enum_column(AppointmentStatusEnum, "appointment_status_enum"),
        default=AppointmentStatusEnum.AVAILABLE,
        nullable=False,
    )
    location: Mapped[LocationEnum] = mapped_column(
        enum_column(LocationEnum, "location_enum"),
        default=LocationEnum.IN_PERSON,
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    teacher_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    booked_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    booked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    original_appointment_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("appointments.id", ondelete="SET NULL"),
        nullable=True,
    )
    reschedule_reason: Mapped[str | None] = mapped_column(String(200), nullable=True)
    reschedule_requested_by: Mapped[RoleEnum | None] = mapped_column(
        enum_column(RoleEnum, "role_enum"),
        nullable=True,
    )
    reschedule_requested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    attendance: Mapped[AttendanceEnum] = mapped_column(
        enum_column(AttendanceEnum, "attendance_enum"),
        default=AttendanceEnum.PRESENT,
        nullable=False,
    )
    completion_status: Mapped[CompletionStatusEnum] = mapped_column(
        enum_column(CompletionStatusEnum, "completion_status_enum"),
        default=CompletionStatusEnum.NOT_STARTED,
        nullable=False,
    )

    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    payment_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurring_frequency: Mapped[RecurrenceFrequencyEnum | None] = mapped_column(
        enum_column(RecurrenceFrequencyEnum, "recurrence_frequency_enum"),
        nullable=True,
    )
    recurring_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    next_appointment_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("appointments.id", ondelete="SET NULL"),
        nullable=True,
    )

    student: Mapped["Student | None"] = relationship()
    teacher: Mapped["User"] = relationship(foreign_keys=[teacher_id])
    booked_by: Mapped["User | None"] = relationship(foreign_keys=[booked_by_id])
    schedule: Mapped["Schedule | None"] = relationship()
    original_appointment: Mapped["Appointment | None"] = relationship(
        remote_side="Appointment.id",
        foreign_keys=[original_appointment_id],
    )

    @property
    def is_past(self) -> bool:
        return self.scheduled_date < utc_today()

    @property
    def is_today(self) -> bool:
        return self.scheduled_date == utc_today()
