"""Teachers business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import DayOfWeekEnum, RoleEnum
from app.modules.identity.models import User
from app.modules.identity.repository import IdentityRepository
from app.modules.teachers.models import TeacherProfile
from app.modules.teachers.repository import TeachersRepository
from app.modules.teachers.schemas import TeacherProfileUpsert
from app.shared.exceptions import NotFoundException, UnauthorizedException, ValidationException
from app.shared.time_intervals import intervals_overlap


class TeachersService:
    """Teachers domain service."""

    def __init__(self, repository: TeachersRepository, identity_repository: IdentityRepository) -> None:
        self.repository = repository
        self.identity_repository = identity_repository

    async def _get_teacher(self, user_id: UUID) -> User:
        user = await self.identity_repository.get_user_by_id(user_id)
        if user is None or user.role.name != RoleEnum.TEACHER:
            raise NotFoundException("Teacher not found")
        return user

    async def get_profile(self, user_id: UUID) -> TeacherProfile:
        """Return a teacher's profile."""
        await self._get_teacher(user_id)
        profile = await self.repository.get_profile_by_user_id(user_id)
        if profile is None:
            raise NotFoundException("Teacher profile not found")
        return profile

    async def upsert_profile(self, user_id: UUID, payload: TeacherProfileUpsert, actor: User) -> TeacherProfile:
        """Create or replace teacher profile (admin or the teacher)."""
        if actor.role.name != RoleEnum.ADMIN and actor.id != user_id:
            raise UnauthorizedException("Only admin or owner can update profile")
        await self._get_teacher(user_id)

        windows = [(item.day_of_week, item.start_time, item.end_time) for item in payload.availability]
        self._ensure_windows_disjoint(windows)

        fields = payload.model_dump(exclude={"availability"})
        profile = await self.repository.get_profile_by_user_id(user_id)
        if profile is None:
            profile = await self.repository.create_profile(user_id, **fields)
        else:
            profile = await self.repository.update_profile(profile, **fields)
        return await self.repository.replace_availability(profile, windows)

    @staticmethod
    def _ensure_windows_disjoint(windows: list[tuple[DayOfWeekEnum, str, str]]) -> None:
        for index, (day, start, end) in enumerate(windows):
            for other_day, other_start, other_end in windows[index + 1 :]:
                if day == other_day and intervals_overlap(start, end, other_start, other_end):
                    raise ValidationException(f"Availability windows overlap on {day}")

    async def list_teachers(
        self,
        subject: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[tuple[User, TeacherProfile | None]], int]:
        """List active teachers."""
        return await self.repository.list_teachers(subject=subject, limit=limit, offset=offset)

    async def find_available_teachers(
        self,
        actor: User,
        subject: str | None,
        day_of_week: DayOfWeekEnum | None,
        start_time: str | None,
        end_time: str | None,
    ) -> list[tuple[User, TeacherProfile | None]]:
        """Search teachers whose weekly availability covers the requested window."""
        if actor.role.name not in {RoleEnum.ADMIN, RoleEnum.TEACHER}:
            raise UnauthorizedException("Access denied")
        if (start_time or end_time) and day_of_week is None:
            raise ValidationException("dayOfWeek is required when filtering by time")
        return await self.repository.find_available_teachers(subject, day_of_week, start_time, end_time)


async def get_teachers_service(session: AsyncSession = Depends(get_db_session)) -> TeachersService:
    """Dependency provider for teachers service."""
    return TeachersService(TeachersRepository(session), IdentityRepository(session))
