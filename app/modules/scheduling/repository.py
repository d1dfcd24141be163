"""Scheduling repository layer."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import Select, case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.enums import DayOfWeekEnum
from app.modules.scheduling import rules
from app.modules.scheduling.models import Schedule, ScheduleBreak, ScheduleSpecialDate

_DAY_ORDER = case({day: index for index, day in enumerate(DayOfWeekEnum)}, value=Schedule.day_of_week)


class SchedulingRepository:
    """DB access for scheduling domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _with_children(stmt: Select[tuple[Schedule]]) -> Select[tuple[Schedule]]:
        return stmt.options(
            selectinload(Schedule.teacher),
            selectinload(Schedule.breaks),
            selectinload(Schedule.special_dates),
        )

    async def create_schedule(
        self,
        teacher_id: UUID,
        breaks: list[tuple[str, str]],
        **fields,
    ) -> Schedule:
        schedule = Schedule(teacher_id=teacher_id, **fields)
        schedule.breaks = [ScheduleBreak(start_time=start, end_time=end) for start, end in breaks]
        schedule.special_dates = []
        self.session.add(schedule)
        await self.session.flush()
        return await self.get_schedule_by_id(schedule.id)

    async def get_schedule_by_id(self, schedule_id: UUID) -> Schedule | None:
        stmt = self._with_children(select(Schedule)).where(Schedule.id == schedule_id)
        return await self.session.scalar(stmt)

    async def list_schedules(
        self,
        teacher_id: UUID | None,
        day_of_week: DayOfWeekEnum | None,
        is_available: bool | None,
        subject: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Schedule], int]:
        base_stmt: Select[tuple[Schedule]] = select(Schedule)
        if teacher_id is not None:
            base_stmt = base_stmt.where(Schedule.teacher_id == teacher_id)
        if day_of_week is not None:
            base_stmt = base_stmt.where(Schedule.day_of_week == day_of_week)
        if is_available is not None:
            base_stmt = base_stmt.where(Schedule.is_available.is_(is_available))
        if subject:
            base_stmt = base_stmt.where(Schedule.subjects.contains([subject]))

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = (
            self._with_children(base_stmt)
            .order_by(_DAY_ORDER, Schedule.start_time.asc())
            .limit(limit)
            .offset(offset)
        )
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def list_for_teacher(
        self,
        teacher_id: UUID,
        day_of_week: DayOfWeekEnum | None = None,
        is_available: bool | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Schedule]:
        stmt = select(Schedule).where(Schedule.teacher_id == teacher_id)
        if day_of_week is not None:
            stmt = stmt.where(Schedule.day_of_week == day_of_week)
        if is_available is not None:
            stmt = stmt.where(Schedule.is_available.is_(is_available))
        if end_date is not None:
            stmt = stmt.where(Schedule.effective_from <= end_date)
        if start_date is not None:
            stmt = stmt.where(or_(Schedule.effective_until.is_(None), Schedule.effective_until >= start_date))
        stmt = self._with_children(stmt).order_by(_DAY_ORDER, Schedule.start_time.asc())
        return (await self.session.scalars(stmt)).all()

    async def find_conflicts(
        self,
        teacher_id: UUID,
        day_of_week: DayOfWeekEnum,
        start_time: str,
        end_time: str,
        exclude_id: UUID | None = None,
    ) -> list[Schedule]:
        candidates = await self.list_for_teacher(teacher_id, day_of_week=day_of_week, is_available=True)
        return rules.overlapping(candidates, start_time, end_time, exclude_id)

    async def find_available(
        self,
        subject: str,
        day_of_week: DayOfWeekEnum,
        start_time: str,
        end_time: str,
    ) -> list[Schedule]:
        stmt = self._with_children(
            select(Schedule).where(
                Schedule.day_of_week == day_of_week,
                Schedule.is_available.is_(True),
                # zero-padded HH:MM strings compare in time order
                Schedule.start_time <= start_time,
                Schedule.end_time >= end_time,
                Schedule.subjects.contains([subject]),
                Schedule.current_bookings < Schedule.max_students,
            ),
        ).order_by(Schedule.start_time.asc())
        return (await self.session.scalars(stmt)).all()

    async def update_schedule(self, schedule: Schedule, **changes) -> Schedule:
        for key, value in changes.items():
            setattr(schedule, key, value)
        await self.session.flush()
        return schedule

    async def delete_schedule(self, schedule: Schedule) -> None:
        await self.session.delete(schedule)
        await self.session.flush()

    async def add_break(self, schedule: Schedule, start_time: str, end_time: str) -> Schedule:
        schedule.breaks.append(ScheduleBreak(start_time=start_time, end_time=end_time))
        await self.session.flush()
        return schedule

    async def replace_breaks(self, schedule: Schedule, breaks: list[tuple[str, str]]) -> Schedule:
        schedule.breaks = [ScheduleBreak(start_time=start, end_time=end) for start, end in breaks]
        await self.session.flush()
        return schedule

    async def remove_break(self, schedule: Schedule, item: ScheduleBreak) -> Schedule:
        schedule.breaks.remove(item)
        await self.session.flush()
        return schedule

    async def add_special_date(
        self,
        schedule: Schedule,
        on_date: date,
        is_available: bool,
        reason: str | None,
    ) -> Schedule:
        schedule.special_dates.append(
            ScheduleSpecialDate(on_date=on_date, is_available=is_available, reason=reason),
        )
        await self.session.flush()
        return schedule

    async def remove_special_date(self, schedule: Schedule, item: ScheduleSpecialDate) -> Schedule:
        schedule.special_dates.remove(item)
        await self.session.flush()
        return schedule

    async def increment_bookings(self, schedule: Schedule) -> bool:
        """Add one booking unless the schedule is full; False when the guard fails."""
        stmt = (
            update(Schedule)
            .where(Schedule.id == schedule.id, Schedule.current_bookings < Schedule.max_students)
            .values(current_bookings=Schedule.current_bookings + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.refresh(schedule, attribute_names=["current_bookings"])
        return result.rowcount == 1

    async def decrement_bookings(self, schedule: Schedule) -> bool:
        """Remove one booking unless the counter is already zero."""
        stmt = (
            update(Schedule)
            .where(Schedule.id == schedule.id, Schedule.current_bookings > 0)
            .values(current_bookings=Schedule.current_bookings - 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.refresh(schedule, attribute_names=["current_bookings"])
        return result.rowcount == 1
