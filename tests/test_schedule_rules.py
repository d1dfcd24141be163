from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

from app.core.enums import AppointmentStatusEnum, DayOfWeekEnum, RoleEnum
from app.modules.scheduling import rules
from app.modules.scheduling.schemas import ScheduleCreate, ScheduleUpdate
from app.modules.scheduling.service import SchedulingService
from app.shared.exceptions import (
    BusinessRuleException,
    CapacityException,
    ConflictException,
    UnauthorizedException,
    ValidationException,
)
from app.shared.time_intervals import duration_minutes

CREATED_AT = datetime(2026, 10, 1, 8, 0, tzinfo=UTC)


@dataclass
class FakeBreak:
    start_time: str
    end_time: str
    id: UUID = field(default_factory=uuid4)

    @property
    def duration(self) -> int:
        return duration_minutes(self.start_time, self.end_time)


@dataclass
class FakeSpecialDate:
    on_date: date
    is_available: bool = False
    reason: str | None = None
    id: UUID = field(default_factory=uuid4)


@dataclass
class FakeSchedule:
    teacher_id: UUID
    day_of_week: DayOfWeekEnum = DayOfWeekEnum.MONDAY
    start_time: str = "09:00"
    end_time: str = "12:00"
    is_available: bool = True
    subjects: list[str] = field(default_factory=lambda: ["Math"])
    max_students: int = 1
    current_bookings: int = 0
    is_recurring: bool = True
    effective_from: date = date(2026, 1, 1)
    effective_until: date | None = None
    notes: str | None = None
    breaks: list[FakeBreak] = field(default_factory=list)
    special_dates: list[FakeSpecialDate] = field(default_factory=list)
    teacher: SimpleNamespace | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = CREATED_AT
    updated_at: datetime = CREATED_AT

    @property
    def duration(self) -> int:
        return duration_minutes(self.start_time, self.end_time)

    @property
    def available_capacity(self) -> int:
        return max(0, self.max_students - self.current_bookings)

    @property
    def is_fully_booked(self) -> bool:
        return self.current_bookings >= self.max_students

    def is_time_slot_available(self, start_time: str, end_time: str) -> bool:
        return rules.is_time_slot_available(self, start_time, end_time)

    def is_open_on(self, on_date: date) -> bool:
        return rules.is_open_on(self, on_date)


class FakeSchedulingRepository:
    def __init__(self, schedules: list[FakeSchedule] | None = None) -> None:
        self.schedules: dict[UUID, FakeSchedule] = {item.id: item for item in schedules or []}

    async def create_schedule(self, teacher_id: UUID, breaks: list[tuple[str, str]], **fields) -> FakeSchedule:
        schedule = FakeSchedule(
            teacher_id=teacher_id,
            breaks=[FakeBreak(start, end) for start, end in breaks],
            **fields,
        )
        self.schedules[schedule.id] = schedule
        return schedule

    async def get_schedule_by_id(self, schedule_id: UUID) -> FakeSchedule | None:
        return self.schedules.get(schedule_id)

    async def list_for_teacher(
        self,
        teacher_id: UUID,
        day_of_week: DayOfWeekEnum | None = None,
        is_available: bool | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[FakeSchedule]:
        return [
            item
            for item in self.schedules.values()
            if item.teacher_id == teacher_id
            and (day_of_week is None or item.day_of_week == day_of_week)
            and (is_available is None or item.is_available == is_available)
        ]

    async def find_conflicts(
        self,
        teacher_id: UUID,
        day_of_week: DayOfWeekEnum,
        start_time: str,
        end_time: str,
        exclude_id: UUID | None = None,
    ) -> list[FakeSchedule]:
        candidates = await self.list_for_teacher(teacher_id, day_of_week, is_available=True)
        return rules.overlapping(candidates, start_time, end_time, exclude_id)

    async def update_schedule(self, schedule: FakeSchedule, **changes) -> FakeSchedule:
        for key, value in changes.items():
            setattr(schedule, key, value)
        return schedule

    async def replace_breaks(self, schedule: FakeSchedule, breaks: list[tuple[str, str]]) -> FakeSchedule:
        schedule.breaks = [FakeBreak(start, end) for start, end in breaks]
        return schedule

    async def delete_schedule(self, schedule: FakeSchedule) -> None:
        self.schedules.pop(schedule.id)

    async def increment_bookings(self, schedule: FakeSchedule) -> bool:
        if schedule.current_bookings >= schedule.max_students:
            return False
        schedule.current_bookings += 1
        return True

    async def decrement_bookings(self, schedule: FakeSchedule) -> bool:
        if schedule.current_bookings <= 0:
            return False
        schedule.current_bookings -= 1
        return True


class FakeIdentityRepository:
    def __init__(self, users: list[SimpleNamespace]) -> None:
        self.users = {user.id: user for user in users}

    async def get_user_by_id(self, user_id: UUID) -> SimpleNamespace | None:
        return self.users.get(user_id)


class FakeAppointmentsRepository:
    def __init__(self, appointments: list[SimpleNamespace] | None = None) -> None:
        self.appointments = appointments or []

    async def list_for_teacher_on(self, teacher_id: UUID, on_date: date) -> list[SimpleNamespace]:
        return [
            item
            for item in self.appointments
            if item.teacher_id == teacher_id and item.scheduled_date == on_date
        ]


def make_actor(role: RoleEnum, user_id: UUID | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        id=user_id or uuid4(),
        role=SimpleNamespace(name=role),
        first_name="Test",
        last_name=role.value.title(),
        email=f"{role.value}@example.com",
    )


def make_service(
    users: list[SimpleNamespace],
    schedules: list[FakeSchedule] | None = None,
    appointments: list[SimpleNamespace] | None = None,
) -> tuple[SchedulingService, FakeSchedulingRepository]:
    repository = FakeSchedulingRepository(schedules)
    service = SchedulingService(
        repository=repository,  # type: ignore[arg-type]
        identity_repository=FakeIdentityRepository(users),  # type: ignore[arg-type]
        appointments_repository=FakeAppointmentsRepository(appointments),  # type: ignore[arg-type]
    )
    return service, repository


def test_breaks_must_fit_window_and_not_overlap() -> None:
    rules.validate_breaks("09:00", "12:00", [("10:00", "10:15"), ("11:00", "11:30")])

    with pytest.raises(ValidationException, match="within schedule time"):
        rules.validate_breaks("09:00", "12:00", [("11:45", "12:15")])
    with pytest.raises(ValidationException, match="between 5 and 60 minutes"):
        rules.validate_breaks("09:00", "12:00", [("10:00", "10:03")])
    with pytest.raises(ValidationException, match="between 5 and 60 minutes"):
        rules.validate_breaks("09:00", "12:00", [("10:00", "11:01")])
    with pytest.raises(ValidationException, match="overlap"):
        rules.validate_breaks("09:00", "12:00", [("10:00", "10:30"), ("10:15", "10:45")])


def test_time_slot_must_avoid_breaks() -> None:
    schedule = FakeSchedule(teacher_id=uuid4(), breaks=[FakeBreak("10:00", "10:15")])

    assert schedule.is_time_slot_available("09:00", "10:00") is True
    assert schedule.is_time_slot_available("09:30", "10:30") is False
    assert schedule.is_time_slot_available("11:30", "12:30") is False

    schedule.is_available = False
    assert schedule.is_time_slot_available("09:00", "10:00") is False


def test_special_date_overrides_effective_range() -> None:
    holiday = date(2026, 12, 28)
    schedule = FakeSchedule(
        teacher_id=uuid4(),
        effective_from=date(2026, 9, 1),
        effective_until=date(2027, 6, 30),
        special_dates=[FakeSpecialDate(on_date=holiday, is_available=False)],
    )

    assert schedule.is_open_on(date(2026, 10, 19)) is True
    assert schedule.is_open_on(holiday) is False
    assert schedule.is_open_on(date(2026, 8, 31)) is False
    assert schedule.is_open_on(date(2027, 7, 5)) is False


@pytest.mark.asyncio
async def test_teacher_cannot_create_schedule_for_someone_else() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    other = make_actor(RoleEnum.TEACHER)
    service, _ = make_service([teacher, other])

    payload = ScheduleCreate.model_validate(
        {"teacher": str(other.id), "dayOfWeek": "monday", "startTime": "09:00", "endTime": "12:00"},
    )

    with pytest.raises(UnauthorizedException, match="only create schedules for yourself"):
        await service.create_schedule(payload, teacher)


@pytest.mark.asyncio
async def test_parent_cannot_create_schedule() -> None:
    parent = make_actor(RoleEnum.PARENT)
    service, _ = make_service([parent])
    payload = ScheduleCreate.model_validate({"dayOfWeek": "monday", "startTime": "09:00", "endTime": "12:00"})

    with pytest.raises(UnauthorizedException):
        await service.create_schedule(payload, parent)


@pytest.mark.asyncio
async def test_teacher_creates_own_schedule_with_defaults() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    service, repository = make_service([teacher])
    payload = ScheduleCreate.model_validate(
        {
            "dayOfWeek": "wednesday",
            "startTime": "14:00",
            "endTime": "18:00",
            "subjects": ["Math", "Physics"],
            "maxStudents": 3,
            "breaks": [{"startTime": "16:00", "endTime": "16:15"}],
        },
    )

    schedule = await service.create_schedule(payload, teacher)

    assert schedule.teacher_id == teacher.id
    assert schedule.max_students == 3
    assert schedule.current_bookings == 0
    assert [(item.start_time, item.end_time) for item in schedule.breaks] == [("16:00", "16:15")]
    assert schedule.id in repository.schedules


@pytest.mark.asyncio
async def test_overlapping_schedule_on_same_day_is_a_conflict() -> None:
    admin = make_actor(RoleEnum.ADMIN)
    teacher = make_actor(RoleEnum.TEACHER)
    existing = FakeSchedule(teacher_id=teacher.id, start_time="09:00", end_time="12:00")
    service, _ = make_service([admin, teacher], [existing])

    payload = ScheduleCreate.model_validate(
        {"teacher": str(teacher.id), "dayOfWeek": "monday", "startTime": "11:00", "endTime": "13:00"},
    )

    with pytest.raises(ConflictException) as exc:
        await service.create_schedule(payload, admin)
    assert exc.value.conflicts[0]["id"] == str(existing.id)

    touching = ScheduleCreate.model_validate(
        {"teacher": str(teacher.id), "dayOfWeek": "monday", "startTime": "12:00", "endTime": "13:00"},
    )
    created = await service.create_schedule(touching, admin)
    assert created.start_time == "12:00"


@pytest.mark.asyncio
async def test_schedule_for_non_teacher_is_rejected() -> None:
    admin = make_actor(RoleEnum.ADMIN)
    parent = make_actor(RoleEnum.PARENT)
    service, _ = make_service([admin, parent])
    payload = ScheduleCreate.model_validate(
        {"teacher": str(parent.id), "dayOfWeek": "monday", "startTime": "09:00", "endTime": "10:00"},
    )

    with pytest.raises(ValidationException, match="not a teacher"):
        await service.create_schedule(payload, admin)


@pytest.mark.asyncio
async def test_capacity_counter_stays_within_bounds() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    schedule = FakeSchedule(teacher_id=teacher.id, max_students=2)
    service, _ = make_service([teacher], [schedule])

    with pytest.raises(CapacityException, match="No bookings to decrement"):
        await service.decrement_bookings(schedule)

    await service.increment_bookings(schedule)
    await service.increment_bookings(schedule)
    assert schedule.current_bookings == 2
    assert schedule.is_fully_booked is True

    with pytest.raises(CapacityException, match="fully booked"):
        await service.increment_bookings(schedule)

    await service.decrement_bookings(schedule)
    assert schedule.current_bookings == 1
    assert schedule.available_capacity == 1


@pytest.mark.asyncio
async def test_schedule_with_bookings_cannot_be_deleted() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    schedule = FakeSchedule(teacher_id=teacher.id, current_bookings=1)
    service, repository = make_service([teacher], [schedule])

    with pytest.raises(BusinessRuleException, match="current bookings"):
        await service.delete_schedule(schedule.id, teacher)

    schedule.current_bookings = 0
    await service.delete_schedule(schedule.id, teacher)
    assert schedule.id not in repository.schedules


@pytest.mark.asyncio
async def test_teacher_cannot_modify_another_teachers_schedule() -> None:
    owner = make_actor(RoleEnum.TEACHER)
    intruder = make_actor(RoleEnum.TEACHER)
    schedule = FakeSchedule(teacher_id=owner.id)
    service, _ = make_service([owner, intruder], [schedule])

    with pytest.raises(UnauthorizedException):
        await service.update_schedule(schedule.id, ScheduleUpdate(notes="mine now"), intruder)


@pytest.mark.asyncio
async def test_capacity_cannot_drop_below_current_bookings() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    schedule = FakeSchedule(teacher_id=teacher.id, max_students=3, current_bookings=2)
    service, _ = make_service([teacher], [schedule])

    with pytest.raises(ValidationException, match="lower than current bookings"):
        await service.update_schedule(schedule.id, ScheduleUpdate(max_students=1), teacher)

    updated = await service.update_schedule(schedule.id, ScheduleUpdate(max_students=2), teacher)
    assert updated.max_students == 2


@pytest.mark.asyncio
async def test_update_revalidates_existing_breaks_against_new_window() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    schedule = FakeSchedule(teacher_id=teacher.id, breaks=[FakeBreak("11:30", "11:45")])
    service, _ = make_service([teacher], [schedule])

    with pytest.raises(ValidationException, match="within schedule time"):
        await service.update_schedule(
            schedule.id,
            ScheduleUpdate.model_validate({"endTime": "11:00"}),
            teacher,
        )


@pytest.mark.asyncio
async def test_find_available_drops_windows_blocked_by_breaks() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    open_window = FakeSchedule(teacher_id=teacher.id)
    blocked = FakeSchedule(teacher_id=teacher.id, breaks=[FakeBreak("10:00", "10:30")])
    service, repository = make_service([teacher], [open_window, blocked])

    async def _candidates(subject, day, start_time, end_time):
        return [open_window, blocked]

    repository.find_available = _candidates  # type: ignore[method-assign]

    result = await service.find_available("Math", DayOfWeekEnum.MONDAY, "10:00", "11:00")

    assert result == [open_window]


@pytest.mark.asyncio
async def test_daily_schedule_groups_appointments_inside_windows() -> None:
    teacher = make_actor(RoleEnum.TEACHER)
    teacher_ref = SimpleNamespace(
        id=teacher.id,
        first_name=teacher.first_name,
        last_name=teacher.last_name,
        email=teacher.email,
    )
    monday = date(2026, 10, 19)
    morning = FakeSchedule(teacher_id=teacher.id, max_students=2, teacher=teacher_ref)
    student = SimpleNamespace(first_name="Ada", last_name="Lovelace", grade="5")
    inside = SimpleNamespace(
        id=uuid4(),
        teacher_id=teacher.id,
        scheduled_date=monday,
        student_id=uuid4(),
        student=student,
        subject="Math",
        start_time="09:00",
        end_time="10:00",
        status=AppointmentStatusEnum.BOOKED,
        notes=None,
    )
    outside = SimpleNamespace(
        id=uuid4(),
        teacher_id=teacher.id,
        scheduled_date=monday,
        student_id=None,
        student=None,
        subject="Math",
        start_time="13:00",
        end_time="14:00",
        status=AppointmentStatusEnum.AVAILABLE,
        notes=None,
    )
    service, _ = make_service([teacher], [morning], [inside, outside])

    daily = await service.daily_schedule(monday, teacher, None)

    assert daily.day_of_week == DayOfWeekEnum.MONDAY
    assert daily.total_appointments == 2
    assert len(daily.schedules) == 1
    entry = daily.schedules[0]
    assert entry.total_booked == 1
    assert entry.available_slots == 1
    assert entry.students[0].first_name == "Ada"


@pytest.mark.asyncio
async def test_daily_schedule_is_not_for_parents() -> None:
    parent = make_actor(RoleEnum.PARENT)
    service, _ = make_service([parent])

    with pytest.raises(UnauthorizedException):
        await service.daily_schedule(date(2026, 10, 19), parent, uuid4())
