"""Appointments business logic layer."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access_policy import (
    Action,
    Resource,
    disallowed_appointment_fields,
    ensure_permitted,
    is_permitted,
)
from app.core.database import get_db_session
from app.core.enums import AppointmentStatusEnum, RoleEnum
from app.core.metrics import record_booking_outcome
from app.modules.appointments import lifecycle
from app.modules.appointments.models import Appointment
from app.modules.appointments.repository import AppointmentsRepository
from app.modules.appointments.schemas import (
    AppointmentCreate,
    AppointmentUpdate,
    ConflictCheckRead,
    ConflictEntry,
    RescheduleRequest,
)
from app.modules.identity.models import User
from app.modules.identity.repository import IdentityRepository
from app.modules.scheduling.repository import SchedulingRepository
from app.modules.scheduling.service import SchedulingService
from app.modules.students.repository import StudentsRepository
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    StateTransitionException,
    UnauthorizedException,
    ValidationException,
)
from app.shared.utils import utc_now, utc_today

logger = logging.getLogger(__name__)

_SCHEDULE_FIELDS = frozenset({"teacher_id", "scheduled_date", "start_time", "end_time"})


class AppointmentsService:
    """Appointments domain service."""

    def __init__(
        self,
        repository: AppointmentsRepository,
        identity_repository: IdentityRepository,
        students_repository: StudentsRepository,
        scheduling_service: SchedulingService,
    ) -> None:
        self.repository = repository
        self.identity_repository = identity_repository
        self.students_repository = students_repository
        self.scheduling_service = scheduling_service

    @staticmethod
    def _is_owner(appointment: Appointment, actor: User) -> bool:
        role = actor.role.name
        if role == RoleEnum.TEACHER:
            return appointment.teacher_id == actor.id
        if role == RoleEnum.PARENT:
            return appointment.student is not None and appointment.student.parent_id == actor.id
        return False

    async def _get_teacher(self, teacher_id: UUID) -> User:
        teacher = await self.identity_repository.get_user_by_id(teacher_id)
        if teacher is None:
            raise NotFoundException("Teacher not found")
        if teacher.role.name != RoleEnum.TEACHER:
            raise ValidationException("Invalid teacher role")
        return teacher

    async def _ensure_student(self, student_id: UUID) -> None:
        student = await self.students_repository.get_student_by_id(student_id)
        if student is None:
            raise NotFoundException("Student not found")
        if not student.is_active:
            raise ValidationException("Student is not active")

    async def _ensure_no_conflict(
        self,
        teacher_id: UUID,
        on_date: date,
        start_time: str,
        end_time: str,
        message: str,
        exclude_id: UUID | None = None,
    ) -> None:
        conflicts = await self.repository.find_conflicts(teacher_id, on_date, start_time, end_time, exclude_id)
        if conflicts:
            raise ConflictException(message, lifecycle.describe_conflicts(conflicts))

    async def _get_for_mutation(self, appointment_id: UUID, actor: User, action: Action) -> Appointment:
        appointment = await self.repository.get_for_update(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        ensure_permitted(
            actor.role.name,
            Resource.APPOINTMENTS,
            action,
            "Access denied to this appointment",
            is_owner=self._is_owner(appointment, actor),
        )
        return appointment

    async def _change_status(
        self,
        appointment: Appointment,
        new_status: AppointmentStatusEnum,
        actor: User,
    ) -> None:
        """Apply a status change and keep the linked schedule's seat count in step."""
        held_before = lifecycle.holds_capacity(appointment)
        booker = actor.id if new_status == AppointmentStatusEnum.BOOKED else None
        lifecycle.apply_status(appointment, new_status, now=utc_now(), booked_by=booker)
        held_after = lifecycle.holds_capacity(appointment)
        if held_before == held_after:
            return

        schedule = await self.scheduling_service.repository.get_schedule_by_id(appointment.schedule_id)
        if schedule is None:
            return
        if held_after:
            await self.scheduling_service.increment_bookings(schedule)
        else:
            await self.scheduling_service.decrement_bookings(schedule)

    async def create_appointment(self, payload: AppointmentCreate, actor: User) -> Appointment:
        """Create an appointment slot (admin only)."""
        ensure_permitted(actor.role.name, Resource.APPOINTMENTS, Action.CREATE, "Admin access required")
        if payload.student_id is not None:
            await self._ensure_student(payload.student_id)
        await self._get_teacher(payload.teacher_id)

        duration = lifecycle.compute_duration(payload.start_time, payload.end_time)
        await self.identity_repository.lock_user(payload.teacher_id)
        await self._ensure_no_conflict(
            payload.teacher_id,
            payload.scheduled_date,
            payload.start_time,
            payload.end_time,
            "Scheduling conflict detected",
        )

        appointment = await self.repository.create_appointment(
            **payload.model_dump(),
            duration=duration,
            status=AppointmentStatusEnum.AVAILABLE,
        )
        logger.info("Appointment %s created for teacher %s", appointment.id, payload.teacher_id)
        return appointment

    async def list_appointments(
        self,
        actor: User,
        status: AppointmentStatusEnum | None,
        start_date: date | None,
        end_date: date | None,
        teacher_id: UUID | None,
        student_id: UUID | None,
        subject: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Appointment], int]:
        """List appointments narrowed to the caller's scope."""
        role = actor.role.name
        return await self.repository.list_appointments(
            teacher_scope=actor.id if role == RoleEnum.TEACHER else None,
            parent_scope=actor.id if role == RoleEnum.PARENT else None,
            status=status,
            start_date=start_date,
            end_date=end_date,
            teacher_id=teacher_id,
            student_id=student_id,
            subject=subject,
            limit=limit,
            offset=offset,
        )

    async def get_appointment(self, appointment_id: UUID, actor: User) -> Appointment:
        """Return an appointment; ones outside the caller's scope look missing."""
        appointment = await self.repository.get_appointment_by_id(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        visible = is_permitted(
            actor.role.name,
            Resource.APPOINTMENTS,
            Action.READ,
            is_owner=self._is_owner(appointment, actor),
            is_available=appointment.status == AppointmentStatusEnum.AVAILABLE,
        )
        if not visible:
            raise NotFoundException("Appointment not found")
        return appointment

    async def update_appointment(
        self,
        appointment_id: UUID,
        payload: AppointmentUpdate,
        actor: User,
    ) -> Appointment:
        """Apply a partial update limited to the fields the caller's role may touch."""
        appointment = await self._get_for_mutation(appointment_id, actor, Action.UPDATE)
        changes = payload.model_dump(exclude_unset=True)
        if disallowed_appointment_fields(actor.role.name, set(changes)):
            raise UnauthorizedException("Admin access required")

        new_status = changes.pop("status", None)
        if new_status == AppointmentStatusEnum.RESCHEDULED:
            raise StateTransitionException("Use the reschedule endpoint to reschedule an appointment")

        for key in ("teacher_id", "subject", "scheduled_date", "start_time", "end_time", "location"):
            if key in changes and changes[key] is None:
                raise ValidationException(f"{key} cannot be null")

        if changes.get("student_id") is not None:
            await self._ensure_student(changes["student_id"])

        if _SCHEDULE_FIELDS & changes.keys():
            teacher_id = changes.get("teacher_id", appointment.teacher_id)
            on_date = changes.get("scheduled_date", appointment.scheduled_date)
            start_time = changes.get("start_time", appointment.start_time)
            end_time = changes.get("end_time", appointment.end_time)
            if teacher_id != appointment.teacher_id:
                await self._get_teacher(teacher_id)
            changes["duration"] = lifecycle.compute_duration(start_time, end_time)
            await self.identity_repository.lock_user(teacher_id)
            await self._ensure_no_conflict(
                teacher_id,
                on_date,
                start_time,
                end_time,
                "Scheduling conflict detected",
                exclude_id=appointment.id,
            )

        for key, value in changes.items():
            setattr(appointment, key, value)
        if new_status is not None and new_status != appointment.status:
            await self._change_status(appointment, new_status, actor)

        return await self.repository.reload(appointment)

    async def set_status(
        self,
        appointment_id: UUID,
        new_status: AppointmentStatusEnum,
        actor: User,
    ) -> Appointment:
        """Admin status override along the lifecycle."""
        if actor.role.name != RoleEnum.ADMIN:
            raise UnauthorizedException("Admin access required")
        if new_status == AppointmentStatusEnum.RESCHEDULED:
            raise StateTransitionException("Use the reschedule endpoint to reschedule an appointment")
        appointment = await self._get_for_mutation(appointment_id, actor, Action.UPDATE)
        if new_status != appointment.status:
            await self._change_status(appointment, new_status, actor)
        return await self.repository.reload(appointment)

    async def reschedule_appointment(
        self,
        appointment_id: UUID,
        payload: RescheduleRequest,
        actor: User,
    ) -> tuple[Appointment, Appointment]:
        """Replace an appointment with a new one at another time; returns (new, original)."""
        original = await self._get_for_mutation(appointment_id, actor, Action.RESCHEDULE)
        lifecycle.ensure_reschedulable(original)
        duration = lifecycle.compute_duration(payload.new_start_time, payload.new_end_time)

        await self.identity_repository.lock_user(original.teacher_id)
        await self._ensure_no_conflict(
            original.teacher_id,
            payload.new_date,
            payload.new_start_time,
            payload.new_end_time,
            "New time conflicts with existing appointments",
            exclude_id=original.id,
        )

        now = utc_now()
        new_status = lifecycle.status_after_reschedule(original.status)
        keeps_booking = new_status == AppointmentStatusEnum.BOOKED
        replacement = await self.repository.create_appointment(
            student_id=original.student_id,
            teacher_id=original.teacher_id,
            subject=original.subject,
            scheduled_date=payload.new_date,
            start_time=payload.new_start_time,
            end_time=payload.new_end_time,
            duration=duration,
            location=original.location,
            notes=original.notes,
            status=new_status,
            booked_by_id=original.booked_by_id if keeps_booking else None,
            booked_at=now if keeps_booking else None,
            original_appointment_id=original.id,
            reschedule_reason=payload.reason,
            reschedule_requested_by=actor.role.name,
            reschedule_requested_at=now,
        )

        await self._change_status(original, AppointmentStatusEnum.RESCHEDULED, actor)
        original = await self.repository.reload(original)
        record_booking_outcome("reschedule", "rescheduled")
        logger.info("Appointment %s rescheduled to %s", original.id, replacement.id)
        return replacement, original

    async def cancel_appointment(
        self,
        appointment_id: UUID,
        actor: User,
        permanent: bool = False,
    ) -> Appointment | None:
        """Cancel an appointment, or remove a never-booked open slot when permanent."""
        ensure_permitted(actor.role.name, Resource.APPOINTMENTS, Action.DELETE, "Admin access required")
        appointment = await self._get_for_mutation(appointment_id, actor, Action.DELETE)
        if permanent:
            if appointment.status != AppointmentStatusEnum.AVAILABLE:
                raise BusinessRuleException("Only open appointments that were never booked can be deleted")
            await self.repository.delete_appointment(appointment)
            logger.info("Appointment %s deleted", appointment_id)
            return None

        lifecycle.ensure_cancellable(appointment)
        await self._change_status(appointment, AppointmentStatusEnum.CANCELLED, actor)
        record_booking_outcome("cancel", "cancelled")
        logger.info("Appointment %s cancelled by %s", appointment.id, actor.role.name)
        return await self.repository.reload(appointment)

    async def check_conflicts(
        self,
        teacher_id: UUID,
        on_date: date,
        start_time: str,
        end_time: str,
        exclude_id: UUID | None,
        actor: User,
    ) -> ConflictCheckRead:
        """Probe the teacher's calendar for overlaps without writing anything."""
        if actor.role.name not in (RoleEnum.ADMIN, RoleEnum.TEACHER):
            raise UnauthorizedException("Admin or teacher access required")
        conflicts = await self.repository.find_conflicts(teacher_id, on_date, start_time, end_time, exclude_id)
        entries = [
            ConflictEntry(
                id=item.id,
                start_time=item.start_time,
                end_time=item.end_time,
                student=item.student_id,
                subject=item.subject,
                status=item.status,
            )
            for item in conflicts
        ]
        return ConflictCheckRead(conflicts=entries, has_conflicts=bool(entries))

    async def list_available(self, actor: User) -> list[Appointment]:
        """Open appointments from today on (parents and admin)."""
        if actor.role.name not in (RoleEnum.ADMIN, RoleEnum.PARENT):
            raise UnauthorizedException("Parent access required")
        return await self.repository.list_available(utc_today())

    async def list_teacher_appointments(self, actor: User) -> list[Appointment]:
        if actor.role.name != RoleEnum.TEACHER:
            raise UnauthorizedException("Teacher access required")
        return await self.repository.list_for_teacher(actor.id)

    async def list_upcoming(self, actor: User, limit: int) -> list[Appointment]:
        """Next open-lifecycle appointments for the caller."""
        role = actor.role.name
        return await self.repository.list_upcoming(
            utc_today(),
            limit,
            teacher_id=actor.id if role == RoleEnum.TEACHER else None,
            parent_id=actor.id if role == RoleEnum.PARENT else None,
        )


async def get_appointments_service(session: AsyncSession = Depends(get_db_session)) -> AppointmentsService:
    """Dependency provider for appointments service."""
    appointments_repository = AppointmentsRepository(session)
    identity_repository = IdentityRepository(session)
    return AppointmentsService(
        repository=appointments_repository,
        identity_repository=identity_repository,
        students_repository=StudentsRepository(session),
        scheduling_service=SchedulingService(
            SchedulingRepository(session),
            identity_repository,
            appointments_repository,
        ),
    )
