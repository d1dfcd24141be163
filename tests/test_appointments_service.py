from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

import app.modules.appointments.service as appointments_service_module
from app.core.enums import (
    AppointmentStatusEnum,
    AttendanceEnum,
    CompletionStatusEnum,
    LocationEnum,
    RoleEnum,
)
from app.modules.appointments import lifecycle
from app.modules.appointments.schemas import AppointmentCreate, AppointmentUpdate, RescheduleRequest
from app.modules.appointments.service import AppointmentsService
from app.modules.scheduling.service import SchedulingService
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    StateTransitionException,
    UnauthorizedException,
    ValidationException,
)

FIXED_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)
MONDAY = date(2026, 10, 19)
TUESDAY = date(2026, 10, 20)


@dataclass
class FakeAppointment:
    teacher_id: UUID
    scheduled_date: date
    start_time: str
    end_time: str
    subject: str = "Math"
    status: AppointmentStatusEnum = AppointmentStatusEnum.AVAILABLE
    student_id: UUID | None = None
    student: SimpleNamespace | None = None
    schedule_id: UUID | None = None
    duration: int = 60
    location: LocationEnum = LocationEnum.IN_PERSON
    notes: str | None = None
    teacher_notes: str | None = None
    parent_notes: str | None = None
    booked_by_id: UUID | None = None
    booked_at: datetime | None = None
    original_appointment_id: UUID | None = None
    reschedule_reason: str | None = None
    reschedule_requested_by: RoleEnum | None = None
    reschedule_requested_at: datetime | None = None
    attendance: AttendanceEnum = AttendanceEnum.PRESENT
    completion_status: CompletionStatusEnum = CompletionStatusEnum.NOT_STARTED
    id: UUID = field(default_factory=uuid4)


class FakeAppointmentsRepository:
    def __init__(self, appointments: list[FakeAppointment] | None = None) -> None:
        self.appointments: dict[UUID, FakeAppointment] = {item.id: item for item in appointments or []}

    async def get_appointment_by_id(self, appointment_id: UUID) -> FakeAppointment | None:
        return self.appointments.get(appointment_id)

    async def get_for_update(self, appointment_id: UUID) -> FakeAppointment | None:
        return self.appointments.get(appointment_id)

    async def find_conflicts(
        self,
        teacher_id: UUID,
        on_date: date,
        start_time: str,
        end_time: str,
        exclude_id: UUID | None = None,
    ) -> list[FakeAppointment]:
        same_day = [
            item
            for item in self.appointments.values()
            if item.teacher_id == teacher_id and item.scheduled_date == on_date
        ]
        return lifecycle.overlapping(same_day, start_time, end_time, exclude_id)

    async def create_appointment(self, **fields) -> FakeAppointment:
        appointment = FakeAppointment(**fields)
        self.appointments[appointment.id] = appointment
        return appointment

    async def reload(self, appointment: FakeAppointment) -> FakeAppointment:
        return appointment

    async def delete_appointment(self, appointment: FakeAppointment) -> None:
        self.appointments.pop(appointment.id)


class FakeSchedulingRepository:
    def __init__(self, schedules: list[SimpleNamespace] | None = None) -> None:
        self.schedules = {item.id: item for item in schedules or []}

    async def get_schedule_by_id(self, schedule_id: UUID) -> SimpleNamespace | None:
        return self.schedules.get(schedule_id)

    async def increment_bookings(self, schedule: SimpleNamespace) -> bool:
        if schedule.current_bookings >= schedule.max_students:
            return False
        schedule.current_bookings += 1
        return True

    async def decrement_bookings(self, schedule: SimpleNamespace) -> bool:
        if schedule.current_bookings <= 0:
            return False
        schedule.current_bookings -= 1
        return True


class FakeIdentityRepository:
    def __init__(self, users: list[SimpleNamespace]) -> None:
        self.users = {user.id: user for user in users}

    async def get_user_by_id(self, user_id: UUID) -> SimpleNamespace | None:
        return self.users.get(user_id)

    async def lock_user(self, user_id: UUID) -> bool:
        return user_id in self.users


class FakeStudentsRepository:
    def __init__(self, students: list[SimpleNamespace] | None = None) -> None:
        self.students = {student.id: student for student in students or []}

    async def get_student_by_id(self, student_id: UUID) -> SimpleNamespace | None:
        return self.students.get(student_id)


def make_actor(role: RoleEnum) -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), role=SimpleNamespace(name=role))


def make_service(
    *,
    users: list[SimpleNamespace],
    appointments: list[FakeAppointment] | None = None,
    students: list[SimpleNamespace] | None = None,
    schedules: list[SimpleNamespace] | None = None,
) -> tuple[AppointmentsService, FakeAppointmentsRepository]:
    repository = FakeAppointmentsRepository(appointments)
    identity_repository = FakeIdentityRepository(users)
    service = AppointmentsService(
        repository=repository,  # type: ignore[arg-type]
        identity_repository=identity_repository,  # type: ignore[arg-type]
        students_repository=FakeStudentsRepository(students),  # type: ignore[arg-type]
        scheduling_service=SchedulingService(
            FakeSchedulingRepository(schedules),  # type: ignore[arg-type]
            identity_repository,  # type: ignore[arg-type]
            repository,  # type: ignore[arg-type]
        ),
    )
    return service, repository


@pytest.fixture(autouse=True)
def fixed_clock(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(appointments_service_module, "utc_now", lambda: FIXED_NOW)


def booked_for(teacher: SimpleNamespace, parent: SimpleNamespace, **fields) -> FakeAppointment:
    student = SimpleNamespace(id=uuid4(), parent_id=parent.id, is_active=True)
    values = {
        "teacher_id": teacher.id,
        "scheduled_date": MONDAY,
        "start_time": "09:00",
        "end_time": "10:00",
        "status": AppointmentStatusEnum.BOOKED,
        "student_id": student.id,
        "student": student,
        "booked_by_id": parent.id,
        "booked_at": FIXED_NOW,
    }
    values.update(fields)
    return FakeAppointment(**values)


@pytest.mark.asyncio
async def test_admin_creates_open_appointment_with_derived_duration() -> None:
    admin = make_actor(RoleEnum.ADMIN)
    teacher = make_actor(RoleEnum.TEACHER)
    service, repository = make_service(users=[admin, teacher])

    payload = AppointmentCreate(
        teacher_id=teacher.id,
        subject="Math",
        scheduled_date=MONDAY,
        start_time="09:00",
        end_time="10:30",
    )
    appointment = await service.create_appointment(payload, admin)

    assert appointment.status == AppointmentStatusEnum.AVAILABLE
    assert appointment.duration == 90
    assert appointment.id in repository.appointments


@pytest.mark.asyncio
async def test_non_admin_cannot_create_appointments() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    service, _ = make_service(users=[teacher])
    payload = AppointmentCreate(
        teacher_id=teacher.id,
        subject="Math",
        scheduled_date=MONDAY,
        start_time="09:00",
        end_time="10:00",
    )

    with pytest.raises(UnauthorizedException, match="Admin access required"):
        await service.create_appointment(payload, teacher)


@pytest.mark.asyncio
async def test_create_rejects_overlap_and_non_teacher() -> None:
    admin = make_actor(RoleEnum.ADMIN)
    teacher = make_actor(RoleEnum.TEACHER)
    existing = FakeAppointment(teacher_id=teacher.id, scheduled_date=MONDAY, start_time="09:00", end_time="10:00")
    service, _ = make_service(users=[admin, teacher], appointments=[existing])

    overlapping = AppointmentCreate(
        teacher_id=teacher.id,
        subject="Math",
        scheduled_date=MONDAY,
        start_time="09:45",
        end_time="10:45",
    )
    with pytest.raises(ConflictException, match="Scheduling conflict detected"):
        await service.create_appointment(overlapping, admin)

    wrong_role = AppointmentCreate(
        teacher_id=admin.id,
        subject="Math",
        scheduled_date=MONDAY,
        start_time="11:00",
        end_time="12:00",
    )
    with pytest.raises(ValidationException, match="Invalid teacher role"):
        await service.create_appointment(wrong_role, admin)


@pytest.mark.asyncio
async def test_appointment_outside_callers_scope_looks_missing() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    parent = make_actor(RoleEnum.PARENT)
    other_parent = make_actor(RoleEnum.PARENT)
    appointment = booked_for(teacher, parent)
    service, _ = make_service(users=[teacher, parent, other_parent], appointments=[appointment])

    assert await service.get_appointment(appointment.id, parent) is appointment
    with pytest.raises(NotFoundException):
        await service.get_appointment(appointment.id, other_parent)
    with pytest.raises(NotFoundException):
        await service.get_appointment(appointment.id, make_actor(RoleEnum.TEACHER))


@pytest.mark.asyncio
async def test_open_appointment_is_visible_to_any_parent() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    parent = make_actor(RoleEnum.PARENT)
    appointment = FakeAppointment(teacher_id=teacher.id, scheduled_date=MONDAY, start_time="09:00", end_time="10:00")
    service, _ = make_service(users=[teacher, parent], appointments=[appointment])

    assert await service.get_appointment(appointment.id, parent) is appointment


@pytest.mark.asyncio
async def test_teacher_updates_only_teacher_fields() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    parent = make_actor(RoleEnum.PARENT)
    appointment = booked_for(teacher, parent)
    service, _ = make_service(users=[teacher, parent], appointments=[appointment])

    updated = await service.update_appointment(
        appointment.id,
        AppointmentUpdate(teacher_notes="Worked on fractions", status=AppointmentStatusEnum.CONFIRMED),
        teacher,
    )
    assert updated.teacher_notes == "Worked on fractions"
    assert updated.status == AppointmentStatusEnum.CONFIRMED
    assert updated.booked_by_id is None

    with pytest.raises(UnauthorizedException, match="Admin access required"):
        await service.update_appointment(appointment.id, AppointmentUpdate(start_time="11:00"), teacher)


@pytest.mark.asyncio
async def test_parent_may_only_edit_parent_notes() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    parent = make_actor(RoleEnum.PARENT)
    appointment = booked_for(teacher, parent)
    service, _ = make_service(users=[teacher, parent], appointments=[appointment])

    updated = await service.update_appointment(appointment.id, AppointmentUpdate(parent_notes="Bring book"), parent)
    assert updated.parent_notes == "Bring book"

    with pytest.raises(UnauthorizedException):
        await service.update_appointment(
            appointment.id,
            AppointmentUpdate(status=AppointmentStatusEnum.CANCELLED),
            parent,
        )


@pytest.mark.asyncio
async def test_admin_time_change_recomputes_duration_and_checks_conflicts() -> None:
    admin = make_actor(RoleEnum.ADMIN)
    teacher = make_actor(RoleEnum.TEACHER)
    appointment = FakeAppointment(teacher_id=teacher.id, scheduled_date=MONDAY, start_time="09:00", end_time="10:00")
    blocker = FakeAppointment(teacher_id=teacher.id, scheduled_date=MONDAY, start_time="11:00", end_time="12:00")
    service, _ = make_service(users=[admin, teacher], appointments=[appointment, blocker])

    updated = await service.update_appointment(appointment.id, AppointmentUpdate(end_time="10:45"), admin)
    assert updated.duration == 105

    with pytest.raises(ConflictException):
        await service.update_appointment(appointment.id, AppointmentUpdate(end_time="11:30"), admin)


@pytest.mark.asyncio
async def test_backward_status_change_is_refused() -> None:
    admin = make_actor(RoleEnum.ADMIN)
    teacher = make_actor(RoleEnum.TEACHER)
    appointment = FakeAppointment(
        teacher_id=teacher.id,
        scheduled_date=MONDAY,
        start_time="09:00",
        end_time="10:00",
        status=AppointmentStatusEnum.CONFIRMED,
    )
    service, _ = make_service(users=[admin, teacher], appointments=[appointment])

    with pytest.raises(StateTransitionException):
        await service.set_status(appointment.id, AppointmentStatusEnum.AVAILABLE, admin)


@pytest.mark.asyncio
async def test_reschedule_creates_linked_replacement_and_closes_original() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    parent = make_actor(RoleEnum.PARENT)
    original = booked_for(teacher, parent, notes="Chapter 3")
    service, repository = make_service(users=[teacher, parent], appointments=[original])

    replacement, closed = await service.reschedule_appointment(
        original.id,
        RescheduleRequest(new_date=TUESDAY, new_start_time="15:00", new_end_time="16:00", reason="Family trip"),
        parent,
    )

    assert closed.status == AppointmentStatusEnum.RESCHEDULED
    assert closed.booked_by_id is None
    assert replacement.original_appointment_id == original.id
    assert replacement.status == AppointmentStatusEnum.BOOKED
    assert replacement.booked_by_id == parent.id
    assert replacement.student_id == original.student_id
    assert replacement.scheduled_date == TUESDAY
    assert replacement.notes == "Chapter 3"
    assert replacement.reschedule_reason == "Family trip"
    assert replacement.reschedule_requested_by == RoleEnum.PARENT
    assert replacement.reschedule_requested_at == FIXED_NOW
    assert len(repository.appointments) == 2

    with pytest.raises(StateTransitionException, match="Cannot reschedule a rescheduled appointment"):
        await service.reschedule_appointment(
            original.id,
            RescheduleRequest(new_date=TUESDAY, new_start_time="17:00", new_end_time="18:00", reason="Again please"),
            parent,
        )


@pytest.mark.asyncio
async def test_reschedule_into_occupied_time_conflicts() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    parent = make_actor(RoleEnum.PARENT)
    original = booked_for(teacher, parent)
    other = FakeAppointment(teacher_id=teacher.id, scheduled_date=TUESDAY, start_time="15:30", end_time="16:30")
    service, _ = make_service(users=[teacher, parent], appointments=[original, other])

    with pytest.raises(ConflictException, match="New time conflicts"):
        await service.reschedule_appointment(
            original.id,
            RescheduleRequest(new_date=TUESDAY, new_start_time="15:00", new_end_time="16:00", reason="Family trip"),
            teacher,
        )
    assert original.status == AppointmentStatusEnum.BOOKED


@pytest.mark.asyncio
async def test_rescheduling_within_same_day_may_overlap_itself() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    parent = make_actor(RoleEnum.PARENT)
    original = booked_for(teacher, parent)
    service, _ = make_service(users=[teacher, parent], appointments=[original])

    replacement, _ = await service.reschedule_appointment(
        original.id,
        RescheduleRequest(new_date=MONDAY, new_start_time="09:30", new_end_time="10:30", reason="Running late"),
        teacher,
    )
    assert replacement.start_time == "09:30"


@pytest.mark.asyncio
async def test_cancel_releases_schedule_seat() -> None:
    admin = make_actor(RoleEnum.ADMIN)
    teacher = make_actor(RoleEnum.TEACHER)
    parent = make_actor(RoleEnum.PARENT)
    schedule = SimpleNamespace(id=uuid4(), max_students=2, current_bookings=1)
    appointment = booked_for(teacher, parent, schedule_id=schedule.id)
    service, _ = make_service(users=[admin, teacher, parent], appointments=[appointment], schedules=[schedule])

    cancelled = await service.cancel_appointment(appointment.id, admin)

    assert cancelled.status == AppointmentStatusEnum.CANCELLED
    assert cancelled.attendance == AttendanceEnum.CANCELLED
    assert schedule.current_bookings == 0

    with pytest.raises(StateTransitionException, match="already cancelled"):
        await service.cancel_appointment(appointment.id, admin)


@pytest.mark.asyncio
async def test_only_admin_cancels_through_delete() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    parent = make_actor(RoleEnum.PARENT)
    appointment = booked_for(teacher, parent)
    service, _ = make_service(users=[teacher, parent], appointments=[appointment])

    with pytest.raises(UnauthorizedException, match="Admin access required"):
        await service.cancel_appointment(appointment.id, teacher)
    with pytest.raises(UnauthorizedException, match="Admin access required"):
        await service.cancel_appointment(appointment.id, parent, permanent=True)
    assert appointment.status == AppointmentStatusEnum.BOOKED


@pytest.mark.asyncio
async def test_permanent_delete_only_for_open_slots() -> None:
    admin = make_actor(RoleEnum.ADMIN)
    teacher = make_actor(RoleEnum.TEACHER)
    parent = make_actor(RoleEnum.PARENT)
    open_slot = FakeAppointment(teacher_id=teacher.id, scheduled_date=MONDAY, start_time="13:00", end_time="14:00")
    booked = booked_for(teacher, parent)
    service, repository = make_service(users=[admin, teacher, parent], appointments=[open_slot, booked])

    with pytest.raises(BusinessRuleException):
        await service.cancel_appointment(booked.id, admin, permanent=True)

    assert await service.cancel_appointment(open_slot.id, admin, permanent=True) is None
    assert open_slot.id not in repository.appointments


@pytest.mark.asyncio
async def test_conflict_probe_reports_overlaps_for_staff_only() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    parent = make_actor(RoleEnum.PARENT)
    appointment = booked_for(teacher, parent)
    service, _ = make_service(users=[teacher, parent], appointments=[appointment])

    result = await service.check_conflicts(teacher.id, MONDAY, "09:30", "10:30", None, teacher)
    assert result.has_conflicts is True
    assert result.conflicts[0].id == appointment.id

    clear = await service.check_conflicts(teacher.id, MONDAY, "09:30", "10:30", appointment.id, teacher)
    assert clear.has_conflicts is False

    with pytest.raises(UnauthorizedException):
        await service.check_conflicts(teacher.id, MONDAY, "09:30", "10:30", None, parent)
