"""Booking API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.modules.appointments.schemas import AppointmentRead
from app.modules.booking.schemas import BookAppointmentRequest, ScheduleBookingRequest
from app.modules.booking.service import BookingService, get_booking_service
from app.modules.identity.service import get_current_user

router = APIRouter(prefix="/appointments", tags=["booking"])


@router.post("/book", response_model=AppointmentRead)
async def book_appointment(
    payload: BookAppointmentRequest,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> AppointmentRead:
    """Book an available appointment for the caller's child."""
    appointment = await service.book_appointment(payload, current_user)
    return AppointmentRead.model_validate(appointment)


@router.post("/book-from-schedule", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
async def book_from_schedule(
    payload: ScheduleBookingRequest,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> AppointmentRead:
    """Book a session inside a teacher's schedule window."""
    appointment = await service.book_from_schedule(payload, current_user)
    return AppointmentRead.model_validate(appointment)
