"""Teachers repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.enums import DayOfWeekEnum, RoleEnum
from app.modules.identity.models import Role, User
from app.modules.teachers.models import TeacherAvailability, TeacherProfile


class TeachersRepository:
    """DB operations for teachers domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_profile_by_user_id(self, user_id: UUID) -> TeacherProfile | None:
        stmt = (
            select(TeacherProfile)
            .options(selectinload(TeacherProfile.availability))
            .where(TeacherProfile.user_id == user_id)
        )
        return await self.session.scalar(stmt)

    async def create_profile(self, user_id: UUID, **fields) -> TeacherProfile:
        profile = TeacherProfile(user_id=user_id, **fields)
        self.session.add(profile)
        await self.session.flush()
        await self.session.refresh(profile, attribute_names=["availability"])
        return profile

    async def update_profile(self, profile: TeacherProfile, **changes) -> TeacherProfile:
        for key, value in changes.items():
            setattr(profile, key, value)
        await self.session.flush()
        return profile

    async def replace_availability(
        self,
        profile: TeacherProfile,
        windows: list[tuple[DayOfWeekEnum, str, str]],
    ) -> TeacherProfile:
        profile.availability.clear()
        for day, start_time, end_time in windows:
            profile.availability.append(
                TeacherAvailability(day_of_week=day, start_time=start_time, end_time=end_time),
            )
        await self.session.flush()
        return profile

    def _active_teachers(self) -> Select[tuple[User, TeacherProfile | None]]:
        return (
            select(User, TeacherProfile)
            .join(User.role)
            .outerjoin(TeacherProfile, TeacherProfile.user_id == User.id)
            .where(Role.name == RoleEnum.TEACHER, User.is_active.is_(True))
        )

    async def list_teachers(
        self,
        subject: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[tuple[User, TeacherProfile | None]], int]:
        base_stmt = self._active_teachers()
        if subject:
            base_stmt = base_stmt.where(TeacherProfile.subjects.contains([subject]))

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(User.last_name.asc(), User.first_name.asc()).limit(limit).offset(offset)
        rows = (await self.session.execute(stmt)).all()
        return [(row[0], row[1]) for row in rows], total

    async def find_available_teachers(
        self,
        subject: str | None,
        day_of_week: DayOfWeekEnum | None,
        start_time: str | None,
        end_time: str | None,
    ) -> list[tuple[User, TeacherProfile | None]]:
        stmt = self._active_teachers()
        if subject:
            stmt = stmt.where(TeacherProfile.subjects.contains([subject]))
        if day_of_week is not None:
            window = select(TeacherAvailability.id).where(
                TeacherAvailability.profile_id == TeacherProfile.id,
                TeacherAvailability.day_of_week == day_of_week,
            )
            # zero-padded HH:MM strings compare in time order
            if start_time is not None:
                window = window.where(TeacherAvailability.start_time <= start_time)
            if end_time is not None:
                window = window.where(TeacherAvailability.end_time >= end_time)
            stmt = stmt.where(window.exists())
        stmt = stmt.order_by(User.last_name.asc(), User.first_name.asc())
        rows = (await self.session.execute(stmt)).all()
        return [(row[0], row[1]) for row in rows]
