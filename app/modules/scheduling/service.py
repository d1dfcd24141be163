"""Scheduling business logic layer."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access_policy import Action, Resource, ensure_permitted, has_any_grant
from app.core.database import get_db_session
from app.core.enums import DayOfWeekEnum, RoleEnum
from app.modules.appointments.repository import AppointmentsRepository
from app.modules.identity.models import User
from app.modules.identity.repository import IdentityRepository
from app.modules.scheduling import rules
from app.modules.scheduling.models import Schedule
from app.modules.scheduling.repository import SchedulingRepository
from app.modules.scheduling.schemas import (
    BreakCreate,
    DailyScheduleEntry,
    DailyScheduleRead,
    DailyStudentEntry,
    ScheduleCreate,
    ScheduleRead,
    ScheduleUpdate,
    SpecialDateCreate,
)
from app.shared.exceptions import (
    BusinessRuleException,
    CapacityException,
    ConflictException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from app.shared.time_intervals import day_of_week, interval_contains

logger = logging.getLogger(__name__)


def _describe_conflicts(schedules: list[Schedule]) -> list[dict[str, str]]:
    return [
        {
            "id": str(item.id),
            "dayOfWeek": str(item.day_of_week),
            "startTime": item.start_time,
            "endTime": item.end_time,
        }
        for item in schedules
    ]


class SchedulingService:
    """Scheduling domain service."""

    def __init__(
        self,
        repository: SchedulingRepository,
        identity_repository: IdentityRepository,
        appointments_repository: AppointmentsRepository,
    ) -> None:
        self.repository = repository
        self.identity_repository = identity_repository
        self.appointments_repository = appointments_repository

    async def _ensure_no_conflict(
        self,
        teacher_id: UUID,
        day: DayOfWeekEnum,
        start_time: str,
        end_time: str,
        exclude_id: UUID | None = None,
    ) -> None:
        conflicts = await self.repository.find_conflicts(teacher_id, day, start_time, end_time, exclude_id)
        if conflicts:
            raise ConflictException("Schedule conflict detected", _describe_conflicts(conflicts))

    async def _get_for_mutation(self, schedule_id: UUID, actor: User, action: Action) -> Schedule:
        schedule = await self.repository.get_schedule_by_id(schedule_id)
        if schedule is None:
            raise NotFoundException("Schedule not found")
        ensure_permitted(
            actor.role.name,
            Resource.SCHEDULES,
            action,
            "Access denied to this schedule",
            is_owner=schedule.teacher_id == actor.id,
        )
        return schedule

    async def create_schedule(self, payload: ScheduleCreate, actor: User) -> Schedule:
        """Create a weekly window; teachers may only create their own."""
        role = actor.role.name
        if not has_any_grant(role, Resource.SCHEDULES, Action.CREATE):
            raise UnauthorizedException("Access denied")
        teacher_id = payload.teacher_id or actor.id
        if role != RoleEnum.ADMIN and teacher_id != actor.id:
            raise UnauthorizedException("You can only create schedules for yourself")

        teacher = await self.identity_repository.get_user_by_id(teacher_id)
        if teacher is None:
            raise NotFoundException("Teacher not found")
        if teacher.role.name != RoleEnum.TEACHER:
            raise ValidationException("User is not a teacher")

        breaks = [(item.start_time, item.end_time) for item in payload.breaks]
        rules.validate_window(payload.start_time, payload.end_time)
        rules.validate_breaks(payload.start_time, payload.end_time, breaks)
        await self._ensure_no_conflict(teacher_id, payload.day_of_week, payload.start_time, payload.end_time)

        fields = payload.model_dump(exclude={"teacher_id", "breaks"}, exclude_none=True)
        schedule = await self.repository.create_schedule(teacher_id, breaks, **fields)
        logger.info("Schedule %s created for teacher %s", schedule.id, teacher_id)
        return schedule

    async def list_schedules(
        self,
        actor: User,
        teacher_id: UUID | None,
        day: DayOfWeekEnum | None,
        is_available: bool | None,
        subject: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Schedule], int]:
        """List schedules narrowed to the caller's scope."""
        role = actor.role.name
        if role == RoleEnum.TEACHER:
            teacher_id = actor.id
        elif role == RoleEnum.PARENT:
            is_available = True
        return await self.repository.list_schedules(teacher_id, day, is_available, subject, limit, offset)

    async def get_schedule(self, schedule_id: UUID, actor: User) -> Schedule:
        """Return a schedule; ones the caller cannot see look missing."""
        schedule = await self.repository.get_schedule_by_id(schedule_id)
        if schedule is None:
            raise NotFoundException("Schedule not found")
        if actor.role.name != RoleEnum.ADMIN:
            visible = schedule.teacher_id == actor.id or (
                actor.role.name == RoleEnum.PARENT and schedule.is_available
            )
            if not visible:
                raise NotFoundException("Schedule not found")
        return schedule

    async def update_schedule(self, schedule_id: UUID, payload: ScheduleUpdate, actor: User) -> Schedule:
        """Update a schedule, re-checking conflicts, breaks and capacity."""
        schedule = await self._get_for_mutation(schedule_id, actor, Action.UPDATE)
        changes = payload.model_dump(exclude_unset=True, exclude={"breaks"})
        for key in ("day_of_week", "start_time", "end_time", "max_students", "is_available", "subjects"):
            if key in changes and changes[key] is None:
                raise ValidationException(f"{key} cannot be null")

        day = changes.get("day_of_week", schedule.day_of_week)
        start_time = changes.get("start_time", schedule.start_time)
        end_time = changes.get("end_time", schedule.end_time)
        rules.validate_window(start_time, end_time)

        if payload.breaks is not None:
            breaks = [(item.start_time, item.end_time) for item in payload.breaks]
        else:
            breaks = [(item.start_time, item.end_time) for item in schedule.breaks]
        rules.validate_breaks(start_time, end_time, breaks)

        moved = (day, start_time, end_time) != (schedule.day_of_week, schedule.start_time, schedule.end_time)
        if moved:
            await self._ensure_no_conflict(schedule.teacher_id, day, start_time, end_time, schedule.id)

        max_students = changes.get("max_students", schedule.max_students)
        if max_students < schedule.current_bookings:
            raise ValidationException("maxStudents cannot be lower than current bookings")

        effective_from = changes.get("effective_from") or schedule.effective_from
        effective_until = changes.get("effective_until", schedule.effective_until)
        if effective_until is not None and effective_until < effective_from:
            raise ValidationException("effectiveUntil must not be before effectiveFrom")
        if "effective_from" in changes and changes["effective_from"] is None:
            changes.pop("effective_from")

        if payload.breaks is not None:
            await self.repository.replace_breaks(schedule, breaks)
        return await self.repository.update_schedule(schedule, **changes)

    async def delete_schedule(self, schedule_id: UUID, actor: User) -> None:
        """Delete a schedule that holds no bookings."""
        schedule = await self._get_for_mutation(schedule_id, actor, Action.DELETE)
        if schedule.current_bookings > 0:
            raise BusinessRuleException("Cannot delete schedule with current bookings")
        await self.repository.delete_schedule(schedule)
        logger.info("Schedule %s deleted", schedule_id)

    async def list_teacher_schedules(
        self,
        teacher_id: UUID,
        actor: User,
        day: DayOfWeekEnum | None,
        is_available: bool | None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Schedule]:
        """List one teacher's schedules (admin or the teacher)."""
        if actor.role.name != RoleEnum.ADMIN and actor.id != teacher_id:
            raise UnauthorizedException("Access denied")
        return await self.repository.list_for_teacher(teacher_id, day, is_available, start_date, end_date)

    async def find_available(
        self,
        subject: str,
        day: DayOfWeekEnum,
        start_time: str,
        end_time: str,
    ) -> list[Schedule]:
        """Schedules teaching subject whose window holds the interval clear of breaks."""
        rules.validate_window(start_time, end_time)
        candidates = await self.repository.find_available(subject, day, start_time, end_time)
        return [item for item in candidates if item.is_time_slot_available(start_time, end_time)]

    async def daily_schedule(self, on_date: date, actor: User, teacher_id: UUID | None) -> DailyScheduleRead:
        """A teacher's open windows for a date with the appointments falling inside each."""
        role = actor.role.name
        if role == RoleEnum.TEACHER:
            teacher_id = actor.id
        elif role != RoleEnum.ADMIN:
            raise UnauthorizedException("Teacher access required")
        if teacher_id is None:
            raise ValidationException("teacher is required")

        day = day_of_week(on_date)
        schedules = [
            item
            for item in await self.repository.list_for_teacher(teacher_id, day, is_available=True)
            if item.is_open_on(on_date)
        ]
        appointments = await self.appointments_repository.list_for_teacher_on(teacher_id, on_date)

        entries: list[DailyScheduleEntry] = []
        for schedule in schedules:
            inside = [
                item
                for item in appointments
                if interval_contains(schedule.start_time, schedule.end_time, item.start_time, item.end_time)
            ]
            students = [
                DailyStudentEntry(
                    appointment_id=item.id,
                    student_id=item.student_id,
                    first_name=item.student.first_name if item.student else None,
                    last_name=item.student.last_name if item.student else None,
                    grade=item.student.grade if item.student else None,
                    subject=item.subject,
                    start_time=item.start_time,
                    end_time=item.end_time,
                    status=item.status,
                    notes=item.notes,
                )
                for item in inside
            ]
            base = ScheduleRead.model_validate(schedule).model_dump()
            entries.append(
                DailyScheduleEntry(
                    **base,
                    students=students,
                    total_booked=len(students),
                    available_slots=max(schedule.max_students - len(students), 0),
                ),
            )

        return DailyScheduleRead(
            scheduled_date=on_date,
            day_of_week=day,
            schedules=entries,
            total_appointments=len(appointments),
        )

    async def add_break(self, schedule_id: UUID, payload: BreakCreate, actor: User) -> Schedule:
        schedule = await self._get_for_mutation(schedule_id, actor, Action.UPDATE)
        breaks = [(item.start_time, item.end_time) for item in schedule.breaks]
        breaks.append((payload.start_time, payload.end_time))
        rules.validate_breaks(schedule.start_time, schedule.end_time, breaks)
        return await self.repository.add_break(schedule, payload.start_time, payload.end_time)

    async def remove_break(self, schedule_id: UUID, break_id: UUID, actor: User) -> Schedule:
        schedule = await self._get_for_mutation(schedule_id, actor, Action.UPDATE)
        item = next((entry for entry in schedule.breaks if entry.id == break_id), None)
        if item is None:
            raise NotFoundException("Break not found")
        return await self.repository.remove_break(schedule, item)

    async def add_special_date(self, schedule_id: UUID, payload: SpecialDateCreate, actor: User) -> Schedule:
        schedule = await self._get_for_mutation(schedule_id, actor, Action.UPDATE)
        if any(item.on_date == payload.on_date for item in schedule.special_dates):
            raise ValidationException("A special date already exists for this date")
        return await self.repository.add_special_date(
            schedule,
            payload.on_date,
            payload.is_available,
            payload.reason,
        )

    async def remove_special_date(self, schedule_id: UUID, special_date_id: UUID, actor: User) -> Schedule:
        schedule = await self._get_for_mutation(schedule_id, actor, Action.UPDATE)
        item = next((entry for entry in schedule.special_dates if entry.id == special_date_id), None)
        if item is None:
            raise NotFoundException("Special date not found")
        return await self.repository.remove_special_date(schedule, item)

    async def increment_bookings(self, schedule: Schedule) -> Schedule:
        """Take one seat on the schedule."""
        rules.ensure_can_increment(schedule)
        if not await self.repository.increment_bookings(schedule):
            raise CapacityException("Schedule is fully booked")
        return schedule

    async def decrement_bookings(self, schedule: Schedule) -> Schedule:
        """Release one seat on the schedule."""
        rules.ensure_can_decrement(schedule)
        if not await self.repository.decrement_bookings(schedule):
            raise CapacityException("No bookings to decrement")
        return schedule


async def get_scheduling_service(session: AsyncSession = Depends(get_db_session)) -> SchedulingService:
    """Dependency provider for scheduling service."""
    return SchedulingService(
        SchedulingRepository(session),
        IdentityRepository(session),
        AppointmentsRepository(session),
    )
