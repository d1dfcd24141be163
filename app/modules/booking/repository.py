"""Booking repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.enums import DayOfWeekEnum
from app.modules.scheduling.models import Schedule


class BookingRepository:
    """DB operations backing the booking flows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_bookable_schedules(
        self,
        teacher_id: UUID,
        day_of_week: DayOfWeekEnum,
        subject: str,
        start_time: str,
        end_time: str,
    ) -> list[Schedule]:
        """Lock and return the teacher's open windows on day that cover the interval for subject."""
        stmt = (
            select(Schedule)
            .options(
                selectinload(Schedule.teacher),
                selectinload(Schedule.breaks),
                selectinload(Schedule.special_dates),
            )
            .where(
                Schedule.teacher_id == teacher_id,
                Schedule.day_of_week == day_of_week,
                Schedule.is_available.is_(True),
                Schedule.start_time <= start_time,
                Schedule.end_time >= end_time,
                Schedule.subjects.contains([subject]),
                Schedule.current_bookings < Schedule.max_students,
            )
            .order_by(Schedule.start_time.asc())
            .with_for_update(of=Schedule)
            .execution_options(populate_existing=True)
        )
        return (await self.session.scalars(stmt)).all()
