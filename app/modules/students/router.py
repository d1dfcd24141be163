"""Students API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.modules.appointments.schemas import AppointmentRead
from app.modules.identity.service import get_current_user
from app.modules.students.schemas import StudentCreate, StudentRead, StudentUpdate
from app.modules.students.service import StudentsService, get_students_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/students", tags=["students"])


@router.get("", response_model=Page[StudentRead])
async def list_students(
    search: str | None = Query(default=None, max_length=100),
    pagination=Depends(get_pagination_params),
    service: StudentsService = Depends(get_students_service),
    current_user=Depends(get_current_user),
) -> Page[StudentRead]:
    """List active students visible to the caller."""
    items, total = await service.list_students(current_user, search, pagination.limit, pagination.offset)
    serialized = [StudentRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.post("", response_model=StudentRead, status_code=status.HTTP_201_CREATED)
async def create_student(
    payload: StudentCreate,
    service: StudentsService = Depends(get_students_service),
    current_user=Depends(get_current_user),
) -> StudentRead:
    student = await service.create_student(payload, current_user)
    return StudentRead.model_validate(student)


@router.get("/{student_id}", response_model=StudentRead)
async def get_student(
    student_id: UUID,
    service: StudentsService = Depends(get_students_service),
    current_user=Depends(get_current_user),
) -> StudentRead:
    student = await service.get_student(student_id, current_user)
    return StudentRead.model_validate(student)


@router.put("/{student_id}", response_model=StudentRead)
async def update_student(
    student_id: UUID,
    payload: StudentUpdate,
    service: StudentsService = Depends(get_students_service),
    current_user=Depends(get_current_user),
) -> StudentRead:
    """Update student (admin or parent)."""
    student = await service.update_student(student_id, payload, current_user)
    return StudentRead.model_validate(student)


@router.delete("/{student_id}", response_model=StudentRead)
async def deactivate_student(
    student_id: UUID,
    service: StudentsService = Depends(get_students_service),
    current_user=Depends(get_current_user),
) -> StudentRead:
    """Soft-delete student."""
    student = await service.deactivate_student(student_id, current_user)
    return StudentRead.model_validate(student)


@router.get("/{student_id}/appointments", response_model=list[AppointmentRead])
async def list_student_appointments(
    student_id: UUID,
    service: StudentsService = Depends(get_students_service),
    current_user=Depends(get_current_user),
) -> list[AppointmentRead]:
    """Student's appointments, newest first."""
    items = await service.list_student_appointments(student_id, current_user)
    return [AppointmentRead.model_validate(item) for item in items]
