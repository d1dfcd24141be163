"""Appointments repository layer."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.enums import AppointmentStatusEnum
from app.modules.appointments import lifecycle
from app.modules.appointments.models import Appointment
from app.modules.students.models import Student


class AppointmentsRepository:
    """DB operations for appointments domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _with_related(stmt: Select[tuple[Appointment]]) -> Select[tuple[Appointment]]:
        return stmt.options(
            selectinload(Appointment.student),
            selectinload(Appointment.teacher),
            selectinload(Appointment.booked_by),
            selectinload(Appointment.original_appointment),
        )

    @staticmethod
    def _chronological(stmt: Select[tuple[Appointment]]) -> Select[tuple[Appointment]]:
        return stmt.order_by(Appointment.scheduled_date.asc(), Appointment.start_time.asc())

    async def create_appointment(self, **fields) -> Appointment:
        appointment = Appointment(**fields)
        self.session.add(appointment)
        await self.session.flush()
        return await self.get_appointment_by_id(appointment.id)

    async def get_appointment_by_id(self, appointment_id: UUID) -> Appointment | None:
        stmt = self._with_related(select(Appointment)).where(Appointment.id == appointment_id)
        return await self.session.scalar(stmt)

    async def get_for_update(self, appointment_id: UUID) -> Appointment | None:
        """Load the appointment with its row locked until the transaction ends."""
        stmt = (
            self._with_related(select(Appointment))
            .where(Appointment.id == appointment_id)
            .with_for_update(of=Appointment)
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def list_appointments(
        self,
        *,
        teacher_scope: UUID | None,
        parent_scope: UUID | None,
        status: AppointmentStatusEnum | None,
        start_date: date | None,
        end_date: date | None,
        teacher_id: UUID | None,
        student_id: UUID | None,
        subject: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Appointment], int]:
        base_stmt: Select[tuple[Appointment]] = select(Appointment)
        if teacher_scope is not None:
            base_stmt = base_stmt.where(Appointment.teacher_id == teacher_scope)
        if parent_scope is not None:
            children = select(Student.id).where(Student.parent_id == parent_scope)
            base_stmt = base_stmt.where(Appointment.student_id.in_(children))

        if status is not None:
            base_stmt = base_stmt.where(Appointment.status == status)
        if teacher_id is not None:
            base_stmt = base_stmt.where(Appointment.teacher_id == teacher_id)
        if student_id is not None:
            base_stmt = base_stmt.where(Appointment.student_id == student_id)
        if subject:
            base_stmt = base_stmt.where(Appointment.subject.ilike(f"%{subject}%"))
        if start_date is not None:
            base_stmt = base_stmt.where(Appointment.scheduled_date >= start_date)
        if end_date is not None:
            base_stmt = base_stmt.where(Appointment.scheduled_date <= end_date)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = self._chronological(self._with_related(base_stmt)).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def list_for_teacher_on(self, teacher_id: UUID, on_date: date) -> list[Appointment]:
        """Return the teacher's calendar-blocking appointments for a date."""
        stmt = self._with_related(
            select(Appointment).where(
                Appointment.teacher_id == teacher_id,
                Appointment.scheduled_date == on_date,
                Appointment.status.not_in(lifecycle.INACTIVE_STATUSES),
            ),
        )
        return (await self.session.scalars(stmt.order_by(Appointment.start_time.asc()))).all()

    async def find_conflicts(
        self,
        teacher_id: UUID,
        on_date: date,
        start_time: str,
        end_time: str,
        exclude_id: UUID | None = None,
    ) -> list[Appointment]:
        candidates = await self.list_for_teacher_on(teacher_id, on_date)
        return lifecycle.overlapping(candidates, start_time, end_time, exclude_id)

    async def list_available(self, from_date: date) -> list[Appointment]:
        stmt = self._with_related(
            select(Appointment).where(
                Appointment.status == AppointmentStatusEnum.AVAILABLE,
                Appointment.scheduled_date >= from_date,
            ),
        )
        return (await self.session.scalars(self._chronological(stmt))).all()

    async def list_for_teacher(self, teacher_id: UUID) -> list[Appointment]:
        stmt = self._with_related(select(Appointment).where(Appointment.teacher_id == teacher_id))
        return (await self.session.scalars(self._chronological(stmt))).all()

    async def list_upcoming(
        self,
        from_date: date,
        limit: int,
        teacher_id: UUID | None = None,
        parent_id: UUID | None = None,
    ) -> list[Appointment]:
        stmt = select(Appointment).where(
            Appointment.scheduled_date >= from_date,
            Appointment.status.not_in(lifecycle.CLOSED_STATUSES),
        )
        if teacher_id is not None:
            stmt = stmt.where(Appointment.teacher_id == teacher_id)
        if parent_id is not None:
            children = select(Student.id).where(Student.parent_id == parent_id)
            stmt = stmt.where(Appointment.student_id.in_(children))
        stmt = self._chronological(self._with_related(stmt)).limit(limit)
        return (await self.session.scalars(stmt)).all()

    async def list_for_student(self, student_id: UUID, teacher_id: UUID | None = None) -> list[Appointment]:
        stmt = select(Appointment).where(
            Appointment.student_id == student_id,
            Appointment.status != AppointmentStatusEnum.CANCELLED,
        )
        if teacher_id is not None:
            stmt = stmt.where(Appointment.teacher_id == teacher_id)
        stmt = self._with_related(stmt).order_by(
            Appointment.scheduled_date.desc(),
            Appointment.start_time.desc(),
        )
        return (await self.session.scalars(stmt)).all()

    async def reload(self, appointment: Appointment) -> Appointment:
        """Re-read an appointment so relationships reflect flushed foreign keys."""
        await self.session.flush()
        stmt = (
            self._with_related(select(Appointment))
            .where(Appointment.id == appointment.id)
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def delete_appointment(self, appointment: Appointment) -> None:
        await self.session.delete(appointment)
        await self.session.flush()
