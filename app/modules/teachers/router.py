"""Teachers API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.enums import DayOfWeekEnum
from app.modules.identity.models import User
from app.modules.identity.service import get_current_user
from app.modules.teachers.models import TeacherProfile
from app.modules.teachers.schemas import TeacherProfileRead, TeacherProfileUpsert, TeacherRead
from app.modules.teachers.service import TeachersService, get_teachers_service
from app.shared.pagination import Page, build_page, get_pagination_params
from app.shared.validators import parse_time_param

router = APIRouter(prefix="/teachers", tags=["teachers"])


def _teacher_read(user: User, profile: TeacherProfile | None) -> TeacherRead:
    return TeacherRead(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        subjects=list(profile.subjects) if profile else [],
        experience_years=profile.experience_years if profile else 0,
    )


@router.get("", response_model=Page[TeacherRead])
async def list_teachers(
    subject: str | None = Query(default=None, max_length=100),
    pagination=Depends(get_pagination_params),
    service: TeachersService = Depends(get_teachers_service),
) -> Page[TeacherRead]:
    """List active teachers."""
    rows, total = await service.list_teachers(subject, pagination.limit, pagination.offset)
    serialized = [_teacher_read(user, profile) for user, profile in rows]
    return build_page(serialized, total, pagination)


@router.get("/available", response_model=list[TeacherRead])
async def find_available_teachers(
    subject: str | None = Query(default=None, max_length=100),
    day_of_week: DayOfWeekEnum | None = Query(default=None, alias="dayOfWeek"),
    start_time: str | None = Query(default=None, alias="startTime"),
    end_time: str | None = Query(default=None, alias="endTime"),
    service: TeachersService = Depends(get_teachers_service),
    current_user=Depends(get_current_user),
) -> list[TeacherRead]:
    """Find teachers whose weekly availability covers a window."""
    rows = await service.find_available_teachers(
        current_user,
        subject,
        day_of_week,
        parse_time_param(start_time, "startTime"),
        parse_time_param(end_time, "endTime"),
    )
    return [_teacher_read(user, profile) for user, profile in rows]


@router.get("/{user_id}/profile", response_model=TeacherProfileRead)
async def get_profile(
    user_id: UUID,
    service: TeachersService = Depends(get_teachers_service),
    current_user=Depends(get_current_user),
) -> TeacherProfileRead:
    """Return teacher profile."""
    profile = await service.get_profile(user_id)
    return TeacherProfileRead.model_validate(profile)


@router.put("/{user_id}/profile", response_model=TeacherProfileRead)
async def upsert_profile(
    user_id: UUID,
    payload: TeacherProfileUpsert,
    service: TeachersService = Depends(get_teachers_service),
    current_user=Depends(get_current_user),
) -> TeacherProfileRead:
    """Create or replace teacher profile."""
    profile = await service.upsert_profile(user_id, payload, current_user)
    return TeacherProfileRead.model_validate(profile)
