"""Appointments API router."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from app.core.enums import AppointmentStatusEnum
from app.modules.appointments.schemas import (
    AppointmentCreate,
    AppointmentRead,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    ConflictCheckRead,
    RescheduleRequest,
    RescheduleResult,
)
from app.modules.appointments.service import AppointmentsService, get_appointments_service
from app.modules.identity.service import get_current_user
from app.shared.pagination import Page, build_page, get_pagination_params
from app.shared.validators import parse_time_param

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    service: AppointmentsService = Depends(get_appointments_service),
    current_user=Depends(get_current_user),
) -> AppointmentRead:
    """Create appointment (admin)."""
    appointment = await service.create_appointment(payload, current_user)
    return AppointmentRead.model_validate(appointment)


@router.get("", response_model=Page[AppointmentRead])
async def list_appointments(
    status_filter: AppointmentStatusEnum | None = Query(default=None, alias="status"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    teacher: UUID | None = Query(default=None),
    student: UUID | None = Query(default=None),
    subject: str | None = Query(default=None, max_length=100),
    pagination=Depends(get_pagination_params),
    service: AppointmentsService = Depends(get_appointments_service),
    current_user=Depends(get_current_user),
) -> Page[AppointmentRead]:
    """List appointments visible to the caller."""
    items, total = await service.list_appointments(
        current_user,
        status_filter,
        start_date,
        end_date,
        teacher,
        student,
        subject,
        pagination.limit,
        pagination.offset,
    )
    serialized = [AppointmentRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/available", response_model=list[AppointmentRead])
async def list_available_appointments(
    service: AppointmentsService = Depends(get_appointments_service),
    current_user=Depends(get_current_user),
) -> list[AppointmentRead]:
    """Open appointments that can be booked."""
    items = await service.list_available(current_user)
    return [AppointmentRead.model_validate(item) for item in items]


@router.get("/teacher", response_model=list[AppointmentRead])
async def list_teacher_appointments(
    service: AppointmentsService = Depends(get_appointments_service),
    current_user=Depends(get_current_user),
) -> list[AppointmentRead]:
    """Appointments assigned to the calling teacher."""
    items = await service.list_teacher_appointments(current_user)
    return [AppointmentRead.model_validate(item) for item in items]


@router.get("/upcoming", response_model=list[AppointmentRead])
async def list_upcoming_appointments(
    limit: int = Query(default=5, ge=1, le=50),
    service: AppointmentsService = Depends(get_appointments_service),
    current_user=Depends(get_current_user),
) -> list[AppointmentRead]:
    items = await service.list_upcoming(current_user, limit)
    return [AppointmentRead.model_validate(item) for item in items]


@router.get("/conflicts", response_model=ConflictCheckRead)
async def check_conflicts(
    teacher: UUID = Query(),
    on_date: date = Query(alias="date"),
    start_time: str = Query(alias="startTime"),
    end_time: str = Query(alias="endTime"),
    exclude_id: UUID | None = Query(default=None, alias="excludeId"),
    service: AppointmentsService = Depends(get_appointments_service),
    current_user=Depends(get_current_user),
) -> ConflictCheckRead:
    """Probe a teacher's calendar for overlapping appointments."""
    return await service.check_conflicts(
        teacher,
        on_date,
        parse_time_param(start_time, "startTime"),
        parse_time_param(end_time, "endTime"),
        exclude_id,
        current_user,
    )


@router.get("/{appointment_id}", response_model=AppointmentRead)
async def get_appointment(
    appointment_id: UUID,
    service: AppointmentsService = Depends(get_appointments_service),
    current_user=Depends(get_current_user),
) -> AppointmentRead:
    appointment = await service.get_appointment(appointment_id, current_user)
    return AppointmentRead.model_validate(appointment)


@router.put("/{appointment_id}", response_model=AppointmentRead)
async def update_appointment(
    appointment_id: UUID,
    payload: AppointmentUpdate,
    service: AppointmentsService = Depends(get_appointments_service),
    current_user=Depends(get_current_user),
) -> AppointmentRead:
    """Role-gated partial update."""
    appointment = await service.update_appointment(appointment_id, payload, current_user)
    return AppointmentRead.model_validate(appointment)


@router.put("/{appointment_id}/status", response_model=AppointmentRead)
async def set_appointment_status(
    appointment_id: UUID,
    payload: AppointmentStatusUpdate,
    service: AppointmentsService = Depends(get_appointments_service),
    current_user=Depends(get_current_user),
) -> AppointmentRead:
    """Change appointment status (admin)."""
    appointment = await service.set_status(appointment_id, payload.status, current_user)
    return AppointmentRead.model_validate(appointment)


@router.post(
    "/{appointment_id}/reschedule",
    response_model=RescheduleResult,
    status_code=status.HTTP_201_CREATED,
)
async def reschedule_appointment(
    appointment_id: UUID,
    payload: RescheduleRequest,
    service: AppointmentsService = Depends(get_appointments_service),
    current_user=Depends(get_current_user),
) -> RescheduleResult:
    """Move appointment to a new time, keeping a link to the original."""
    new_appointment, original = await service.reschedule_appointment(appointment_id, payload, current_user)
    return RescheduleResult(
        new_appointment=AppointmentRead.model_validate(new_appointment),
        original_appointment=AppointmentRead.model_validate(original),
    )


@router.delete("/{appointment_id}", response_model=AppointmentRead)
async def cancel_appointment(
    appointment_id: UUID,
    permanent: bool = Query(default=False),
    service: AppointmentsService = Depends(get_appointments_service),
    current_user=Depends(get_current_user),
) -> AppointmentRead | Response:
    """Cancel appointment (admin); permanent=true removes a never-booked slot."""
    appointment = await service.cancel_appointment(appointment_id, current_user, permanent)
    if appointment is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return AppointmentRead.model_validate(appointment)
