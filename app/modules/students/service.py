"""Students business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access_policy import Action, Resource, ensure_permitted, has_any_grant
from app.core.database import get_db_session
from app.core.enums import RoleEnum
from app.modules.appointments.models import Appointment
from app.modules.appointments.repository import AppointmentsRepository
from app.modules.identity.models import User
from app.modules.identity.repository import IdentityRepository
from app.modules.students.models import Student
from app.modules.students.repository import StudentsRepository
from app.modules.students.schemas import StudentCreate, StudentUpdate
from app.shared.exceptions import NotFoundException, UnauthorizedException, ValidationException

_REQUIRED_FIELDS = ("first_name", "last_name", "date_of_birth", "grade", "subjects", "learning_style", "preferred_times")


class StudentsService:
    """Students domain service."""

    def __init__(
        self,
        repository: StudentsRepository,
        identity_repository: IdentityRepository,
        appointments_repository: AppointmentsRepository,
    ) -> None:
        self.repository = repository
        self.identity_repository = identity_repository
        self.appointments_repository = appointments_repository

    async def _is_owner(self, student: Student, actor: User) -> bool:
        if actor.role.name == RoleEnum.PARENT:
            return student.parent_id == actor.id
        if actor.role.name == RoleEnum.TEACHER:
            return await self.repository.is_assigned_to_teacher(student.id, actor.id)
        return False

    async def list_students(
        self,
        actor: User,
        search: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Student], int]:
        """List active students in the caller's scope."""
        role = actor.role.name
        if not has_any_grant(role, Resource.STUDENTS, Action.READ):
            raise UnauthorizedException("Access denied")
        parent_id = actor.id if role == RoleEnum.PARENT else None
        teacher_id = actor.id if role == RoleEnum.TEACHER else None
        return await self.repository.list_students(parent_id, teacher_id, search, limit, offset)

    async def get_student(self, student_id: UUID, actor: User) -> Student:
        """Return a student; students outside the caller's scope look missing."""
        student = await self.repository.get_student_by_id(student_id)
        if student is None:
            raise NotFoundException("Student not found")
        if actor.role.name != RoleEnum.ADMIN and not await self._is_owner(student, actor):
            raise NotFoundException("Student not found")
        return student

    async def _get_for_mutation(self, student_id: UUID, actor: User, action: Action) -> Student:
        student = await self.repository.get_student_by_id(student_id)
        if student is None:
            raise NotFoundException("Student not found")
        ensure_permitted(
            actor.role.name,
            Resource.STUDENTS,
            action,
            "Access denied",
            is_owner=await self._is_owner(student, actor),
        )
        return student

    async def create_student(self, payload: StudentCreate, actor: User) -> Student:
        """Create a student for a parent (admin) or for the calling parent."""
        parent_id = payload.parent_id
        if actor.role.name == RoleEnum.PARENT:
            parent_id = parent_id or actor.id
        ensure_permitted(
            actor.role.name,
            Resource.STUDENTS,
            Action.CREATE,
            "Access denied",
            is_owner=parent_id == actor.id,
        )
        if parent_id is None:
            raise ValidationException("Parent is required")

        parent = await self.identity_repository.get_user_by_id(parent_id)
        if parent is None:
            raise NotFoundException("Parent not found")
        if parent.role.name != RoleEnum.PARENT or not parent.is_active:
            raise ValidationException("Parent must be an active parent account")

        fields = payload.model_dump(exclude={"parent_id"})
        return await self.repository.create_student(parent_id=parent_id, **fields)

    async def update_student(self, student_id: UUID, payload: StudentUpdate, actor: User) -> Student:
        """Update student (admin or owning parent)."""
        student = await self._get_for_mutation(student_id, actor, Action.UPDATE)
        changes = payload.model_dump(exclude_unset=True)
        for key in _REQUIRED_FIELDS:
            if key in changes and changes[key] is None:
                raise ValidationException(f"{key} cannot be null")
        return await self.repository.update_student(student, **changes)

    async def deactivate_student(self, student_id: UUID, actor: User) -> Student:
        """Soft-delete student (admin or owning parent)."""
        student = await self._get_for_mutation(student_id, actor, Action.DELETE)
        return await self.repository.update_student(student, is_active=False)

    async def list_student_appointments(self, student_id: UUID, actor: User) -> list[Appointment]:
        """Return the student's non-cancelled appointments, newest first."""
        student = await self.get_student(student_id, actor)
        teacher_id = actor.id if actor.role.name == RoleEnum.TEACHER else None
        return await self.appointments_repository.list_for_student(student.id, teacher_id=teacher_id)


async def get_students_service(session: AsyncSession = Depends(get_db_session)) -> StudentsService:
    """Dependency provider for students service."""
    return StudentsService(
        StudentsRepository(session),
        IdentityRepository(session),
        AppointmentsRepository(session),
    )
