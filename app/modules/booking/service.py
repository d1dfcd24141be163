"""Booking business logic layer.

Both flows run inside the request transaction. The teacher row is locked
before the conflict check so two bookings against the same teacher are
serialized; the target appointment or schedule row is locked as well and the
seat counter moves through a guarded UPDATE.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import AppointmentStatusEnum, RoleEnum
from app.core.metrics import record_booking_outcome
from app.modules.appointments import lifecycle
from app.modules.appointments.models import Appointment
from app.modules.appointments.repository import AppointmentsRepository
from app.modules.booking.repository import BookingRepository
from app.modules.booking.schemas import BookAppointmentRequest, ScheduleBookingRequest
from app.modules.identity.models import User
from app.modules.identity.repository import IdentityRepository
from app.modules.scheduling.repository import SchedulingRepository
from app.modules.scheduling.service import SchedulingService
from app.modules.students.models import Student
from app.modules.students.repository import StudentsRepository
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from app.shared.time_intervals import day_of_week
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)

OWN_CHILDREN_ONLY = "You can only book appointments for your own children"


class BookingService:
    """Booking domain service: claim open appointments or book from schedules."""

    def __init__(
        self,
        booking_repository: BookingRepository,
        appointments_repository: AppointmentsRepository,
        identity_repository: IdentityRepository,
        students_repository: StudentsRepository,
        scheduling_service: SchedulingService,
    ) -> None:
        self.booking_repository = booking_repository
        self.appointments_repository = appointments_repository
        self.identity_repository = identity_repository
        self.students_repository = students_repository
        self.scheduling_service = scheduling_service

    async def _ensure_no_conflict(
        self,
        flow: str,
        target: Appointment | ScheduleBookingRequest,
        exclude_id: UUID | None = None,
    ) -> None:
        conflicts = await self.appointments_repository.find_conflicts(
            target.teacher_id,
            target.scheduled_date,
            target.start_time,
            target.end_time,
            exclude_id,
        )
        if conflicts:
            record_booking_outcome(flow, "conflict")
            raise ConflictException("Scheduling conflict detected", lifecycle.describe_conflicts(conflicts))

    async def book_appointment(self, payload: BookAppointmentRequest, actor: User) -> Appointment:
        """Claim an available appointment for the caller's child."""
        if actor.role.name != RoleEnum.PARENT:
            raise UnauthorizedException("Parent access required")

        appointment = await self.appointments_repository.get_for_update(payload.appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        if appointment.status == AppointmentStatusEnum.BOOKED:
            record_booking_outcome("appointment", "rejected")
            raise ConflictException("Appointment is already booked")
        if appointment.status != AppointmentStatusEnum.AVAILABLE:
            record_booking_outcome("appointment", "rejected")
            raise BusinessRuleException("Appointment is not available for booking")

        student = await self.students_repository.get_student_by_id(payload.student_id)
        if student is None or student.parent_id != actor.id or not student.is_active:
            raise UnauthorizedException(OWN_CHILDREN_ONLY)

        await self.identity_repository.lock_user(appointment.teacher_id)
        await self._ensure_no_conflict("appointment", appointment, exclude_id=appointment.id)

        appointment.student_id = student.id
        if payload.notes:
            appointment.notes = payload.notes
        lifecycle.apply_status(appointment, AppointmentStatusEnum.BOOKED, now=utc_now(), booked_by=actor.id)

        record_booking_outcome("appointment", "booked")
        logger.info("Appointment %s booked for student %s", appointment.id, student.id)
        return await self.appointments_repository.reload(appointment)

    async def _get_bookable_student(self, payload: ScheduleBookingRequest, actor: User) -> Student:
        student = await self.students_repository.get_student_by_id(payload.student_id)
        if student is None:
            raise NotFoundException("Student not found")
        if actor.role.name == RoleEnum.PARENT and student.parent_id != actor.id:
            raise UnauthorizedException(OWN_CHILDREN_ONLY)
        if not student.is_active:
            raise ValidationException("Student is not active")
        return student

    async def book_from_schedule(self, payload: ScheduleBookingRequest, actor: User) -> Appointment:
        """Create a booked appointment inside a matching schedule window and take a seat."""
        if actor.role.name not in (RoleEnum.PARENT, RoleEnum.ADMIN):
            raise UnauthorizedException("Only parents can book appointments from schedules")

        student = await self._get_bookable_student(payload, actor)
        teacher = await self.identity_repository.get_user_by_id(payload.teacher_id)
        if teacher is None:
            raise NotFoundException("Teacher not found")
        if teacher.role.name != RoleEnum.TEACHER:
            raise ValidationException("Invalid teacher role")

        duration = lifecycle.compute_duration(payload.start_time, payload.end_time)
        await self.identity_repository.lock_user(teacher.id)

        candidates = await self.booking_repository.find_bookable_schedules(
            teacher.id,
            day_of_week(payload.scheduled_date),
            payload.subject,
            payload.start_time,
            payload.end_time,
        )
        schedule = next(
            (
                item
                for item in candidates
                if item.is_open_on(payload.scheduled_date)
                and item.is_time_slot_available(payload.start_time, payload.end_time)
            ),
            None,
        )
        if schedule is None:
            record_booking_outcome("schedule", "rejected")
            raise BusinessRuleException("No available schedule found for this teacher, day, time, and subject")

        await self._ensure_no_conflict("schedule", payload)

        appointment = await self.appointments_repository.create_appointment(
            student_id=student.id,
            teacher_id=teacher.id,
            schedule_id=schedule.id,
            subject=payload.subject,
            scheduled_date=payload.scheduled_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            duration=duration,
            location=payload.location,
            notes=payload.notes,
            status=AppointmentStatusEnum.BOOKED,
            booked_by_id=actor.id,
            booked_at=utc_now(),
        )
        await self.scheduling_service.increment_bookings(schedule)

        record_booking_outcome("schedule", "booked")
        logger.info("Appointment %s booked from schedule %s", appointment.id, schedule.id)
        return appointment


async def get_booking_service(session: AsyncSession = Depends(get_db_session)) -> BookingService:
    """Dependency provider for booking service."""
    appointments_repository = AppointmentsRepository(session)
    identity_repository = IdentityRepository(session)
    return BookingService(
        booking_repository=BookingRepository(session),
        appointments_repository=appointments_repository,
        identity_repository=identity_repository,
        students_repository=StudentsRepository(session),
        scheduling_service=SchedulingService(
            SchedulingRepository(session),
            identity_repository,
            appointments_repository,
        ),
    )
