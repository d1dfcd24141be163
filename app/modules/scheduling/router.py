"""Scheduling API router."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.core.enums import DayOfWeekEnum
from app.modules.identity.service import get_current_user
from app.modules.scheduling.schemas import (
    BreakCreate,
    DailyScheduleRead,
    ScheduleCreate,
    ScheduleRead,
    ScheduleUpdate,
    SpecialDateCreate,
)
from app.modules.scheduling.service import SchedulingService, get_scheduling_service
from app.shared.pagination import Page, build_page, get_pagination_params
from app.shared.validators import parse_time_param

router = APIRouter(prefix="/schedules", tags=["scheduling"])


@router.post("", response_model=ScheduleRead, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    payload: ScheduleCreate,
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> ScheduleRead:
    """Create weekly schedule window."""
    schedule = await service.create_schedule(payload, current_user)
    return ScheduleRead.model_validate(schedule)


@router.get("", response_model=Page[ScheduleRead])
async def list_schedules(
    teacher: UUID | None = Query(default=None),
    day_of_week: DayOfWeekEnum | None = Query(default=None, alias="dayOfWeek"),
    is_available: bool | None = Query(default=None, alias="isAvailable"),
    subject: str | None = Query(default=None, max_length=100),
    pagination=Depends(get_pagination_params),
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> Page[ScheduleRead]:
    """List schedules visible to the caller."""
    items, total = await service.list_schedules(
        current_user,
        teacher,
        day_of_week,
        is_available,
        subject,
        pagination.limit,
        pagination.offset,
    )
    serialized = [ScheduleRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/daily/{on_date}", response_model=DailyScheduleRead)
async def get_daily_schedule(
    on_date: date,
    teacher: UUID | None = Query(default=None),
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> DailyScheduleRead:
    """Teacher's windows for a date with booked students."""
    return await service.daily_schedule(on_date, current_user, teacher)


@router.get("/teacher/{teacher_id}", response_model=list[ScheduleRead])
async def list_teacher_schedules(
    teacher_id: UUID,
    day_of_week: DayOfWeekEnum | None = Query(default=None, alias="dayOfWeek"),
    is_available: bool | None = Query(default=None, alias="isAvailable"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> list[ScheduleRead]:
    """All schedules of one teacher."""
    items = await service.list_teacher_schedules(
        teacher_id,
        current_user,
        day_of_week,
        is_available,
        start_date,
        end_date,
    )
    return [ScheduleRead.model_validate(item) for item in items]


@router.get("/available", response_model=list[ScheduleRead])
async def find_available_schedules(
    subject: str = Query(min_length=1, max_length=100),
    day_of_week: DayOfWeekEnum = Query(alias="dayOfWeek"),
    start_time: str = Query(alias="startTime"),
    end_time: str = Query(alias="endTime"),
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> list[ScheduleRead]:
    """Schedules that can host the requested interval for a subject."""
    items = await service.find_available(
        subject.strip(),
        day_of_week,
        parse_time_param(start_time, "startTime"),
        parse_time_param(end_time, "endTime"),
    )
    return [ScheduleRead.model_validate(item) for item in items]


@router.get("/{schedule_id}", response_model=ScheduleRead)
async def get_schedule(
    schedule_id: UUID,
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> ScheduleRead:
    schedule = await service.get_schedule(schedule_id, current_user)
    return ScheduleRead.model_validate(schedule)


@router.put("/{schedule_id}", response_model=ScheduleRead)
async def update_schedule(
    schedule_id: UUID,
    payload: ScheduleUpdate,
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> ScheduleRead:
    """Update schedule (admin or owning teacher)."""
    schedule = await service.update_schedule(schedule_id, payload, current_user)
    return ScheduleRead.model_validate(schedule)


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    schedule_id: UUID,
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> None:
    """Delete schedule without bookings."""
    await service.delete_schedule(schedule_id, current_user)


@router.post("/{schedule_id}/breaks", response_model=ScheduleRead)
async def add_break(
    schedule_id: UUID,
    payload: BreakCreate,
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> ScheduleRead:
    schedule = await service.add_break(schedule_id, payload, current_user)
    return ScheduleRead.model_validate(schedule)


@router.delete("/{schedule_id}/breaks/{break_id}", response_model=ScheduleRead)
async def remove_break(
    schedule_id: UUID,
    break_id: UUID,
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> ScheduleRead:
    schedule = await service.remove_break(schedule_id, break_id, current_user)
    return ScheduleRead.model_validate(schedule)


@router.post("/{schedule_id}/special-dates", response_model=ScheduleRead)
async def add_special_date(
    schedule_id: UUID,
    payload: SpecialDateCreate,
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> ScheduleRead:
    """Block or open the window on one calendar date."""
    schedule = await service.add_special_date(schedule_id, payload, current_user)
    return ScheduleRead.model_validate(schedule)


@router.delete("/{schedule_id}/special-dates/{special_date_id}", response_model=ScheduleRead)
async def remove_special_date(
    schedule_id: UUID,
    special_date_id: UUID,
    service: SchedulingService = Depends(get_scheduling_service),
    current_user=Depends(get_current_user),
) -> ScheduleRead:
    schedule = await service.remove_special_date(schedule_id, special_date_id, current_user)
    return ScheduleRead.model_validate(schedule)
