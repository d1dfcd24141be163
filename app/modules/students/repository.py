"""Students repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.modules.appointments.models import Appointment
from app.modules.students.models import Student


class StudentsRepository:
    """DB operations for students domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_student(self, **fields) -> Student:
        student = Student(**fields)
        self.session.add(student)
        await self.session.flush()
        await self.session.refresh(student, attribute_names=["parent"])
        return student

    async def get_student_by_id(self, student_id: UUID) -> Student | None:
        stmt = select(Student).options(selectinload(Student.parent)).where(Student.id == student_id)
        return await self.session.scalar(stmt)

    async def list_students(
        self,
        parent_id: UUID | None,
        teacher_id: UUID | None,
        search: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Student], int]:
        base_stmt: Select[tuple[Student]] = (
            select(Student).options(selectinload(Student.parent)).where(Student.is_active.is_(True))
        )
        if parent_id is not None:
            base_stmt = base_stmt.where(Student.parent_id == parent_id)
        if teacher_id is not None:
            assigned = select(Appointment.student_id).where(Appointment.teacher_id == teacher_id)
            base_stmt = base_stmt.where(Student.id.in_(assigned))
        if search:
            pattern = f"%{search.strip()}%"
            base_stmt = base_stmt.where(or_(Student.first_name.ilike(pattern), Student.last_name.ilike(pattern)))

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Student.last_name.asc(), Student.first_name.asc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def is_assigned_to_teacher(self, student_id: UUID, teacher_id: UUID) -> bool:
        stmt = select(
            select(Appointment.id)
            .where(Appointment.student_id == student_id, Appointment.teacher_id == teacher_id)
            .exists(),
        )
        return bool(await self.session.scalar(stmt))

    async def update_student(self, student: Student, **changes) -> Student:
        for key, value in changes.items():
            setattr(student, key, value)
        await self.session.flush()
        return student
