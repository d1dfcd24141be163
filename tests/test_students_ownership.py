from __future__ import annotations

from datetime import date
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

from app.core.enums import RoleEnum
from app.modules.students.schemas import StudentCreate, StudentUpdate
from app.modules.students.service import StudentsService
from app.shared.exceptions import NotFoundException, UnauthorizedException, ValidationException


def _user(role: RoleEnum, *, is_active: bool = True) -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), role=SimpleNamespace(name=role), is_active=is_active)


class FakeStudentsRepository:
    def __init__(self) -> None:
        self.students: dict[UUID, SimpleNamespace] = {}
        self.assignments: set[tuple[UUID, UUID]] = set()
        self.list_calls: list[tuple] = []

    async def create_student(self, **fields):
        student = SimpleNamespace(id=uuid4(), is_active=True, **fields)
        self.students[student.id] = student
        return student

    async def get_student_by_id(self, student_id):
        return self.students.get(student_id)

    async def list_students(self, parent_id, teacher_id, search, limit, offset):
        self.list_calls.append((parent_id, teacher_id, search))
        items = [
            student
            for student in self.students.values()
            if parent_id is None or student.parent_id == parent_id
        ]
        return items, len(items)

    async def is_assigned_to_teacher(self, student_id, teacher_id):
        return (student_id, teacher_id) in self.assignments

    async def update_student(self, student, **changes):
        for key, value in changes.items():
            setattr(student, key, value)
        return student


class FakeIdentityRepository:
    def __init__(self, *users: SimpleNamespace) -> None:
        self.users = {user.id: user for user in users}

    async def get_user_by_id(self, user_id):
        return self.users.get(user_id)


class FakeAppointmentsRepository:
    def __init__(self) -> None:
        self.calls: list[tuple[UUID, UUID | None]] = []

    async def list_for_student(self, student_id, teacher_id=None):
        self.calls.append((student_id, teacher_id))
        return []


def _payload(**overrides) -> StudentCreate:
    data = {
        "firstName": "Sam",
        "lastName": "Student",
        "dateOfBirth": date(2015, 5, 1),
        "grade": "5",
        "subjects": [" math ", "Math", "Reading"],
    }
    data.update(overrides)
    return StudentCreate.model_validate(data)


def _service(*users: SimpleNamespace) -> tuple[StudentsService, FakeStudentsRepository, FakeAppointmentsRepository]:
    repo = FakeStudentsRepository()
    appointments = FakeAppointmentsRepository()
    service = StudentsService(repo, FakeIdentityRepository(*users), appointments)  # type: ignore[arg-type]
    return service, repo, appointments


@pytest.mark.asyncio
async def test_parent_creates_student_for_themselves() -> None:
    parent = _user(RoleEnum.PARENT)
    service, _, _ = _service(parent)

    student = await service.create_student(_payload(), parent)  # type: ignore[arg-type]

    assert student.parent_id == parent.id
    assert student.first_name == "Sam"


@pytest.mark.asyncio
async def test_parent_cannot_create_student_for_another_parent() -> None:
    parent = _user(RoleEnum.PARENT)
    other = _user(RoleEnum.PARENT)
    service, _, _ = _service(parent, other)

    with pytest.raises(UnauthorizedException):
        await service.create_student(_payload(parent=str(other.id)), parent)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_admin_must_name_an_active_parent() -> None:
    admin = _user(RoleEnum.ADMIN)
    teacher = _user(RoleEnum.TEACHER)
    inactive_parent = _user(RoleEnum.PARENT, is_active=False)
    parent = _user(RoleEnum.PARENT)
    service, _, _ = _service(admin, teacher, inactive_parent, parent)

    with pytest.raises(ValidationException, match="Parent is required"):
        await service.create_student(_payload(), admin)  # type: ignore[arg-type]
    with pytest.raises(ValidationException, match="active parent"):
        await service.create_student(_payload(parent=str(teacher.id)), admin)  # type: ignore[arg-type]
    with pytest.raises(ValidationException, match="active parent"):
        await service.create_student(_payload(parent=str(inactive_parent.id)), admin)  # type: ignore[arg-type]
    with pytest.raises(NotFoundException):
        await service.create_student(_payload(parent=str(uuid4())), admin)  # type: ignore[arg-type]

    student = await service.create_student(_payload(parent=str(parent.id)), admin)  # type: ignore[arg-type]
    assert student.parent_id == parent.id


@pytest.mark.asyncio
async def test_students_outside_scope_look_missing() -> None:
    parent = _user(RoleEnum.PARENT)
    other_parent = _user(RoleEnum.PARENT)
    teacher = _user(RoleEnum.TEACHER)
    assigned_teacher = _user(RoleEnum.TEACHER)
    service, repo, _ = _service(parent)
    student = await service.create_student(_payload(), parent)  # type: ignore[arg-type]
    repo.assignments.add((student.id, assigned_teacher.id))

    assert await service.get_student(student.id, parent) is student  # type: ignore[arg-type]
    assert await service.get_student(student.id, assigned_teacher) is student  # type: ignore[arg-type]
    with pytest.raises(NotFoundException):
        await service.get_student(student.id, other_parent)  # type: ignore[arg-type]
    with pytest.raises(NotFoundException):
        await service.get_student(student.id, teacher)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_only_owning_parent_or_admin_mutates_student() -> None:
    parent = _user(RoleEnum.PARENT)
    other_parent = _user(RoleEnum.PARENT)
    assigned_teacher = _user(RoleEnum.TEACHER)
    admin = _user(RoleEnum.ADMIN)
    service, repo, _ = _service(parent)
    student = await service.create_student(_payload(), parent)  # type: ignore[arg-type]
    repo.assignments.add((student.id, assigned_teacher.id))

    updated = await service.update_student(student.id, StudentUpdate(grade="6"), parent)  # type: ignore[arg-type]
    assert updated.grade == "6"

    with pytest.raises(UnauthorizedException):
        await service.update_student(student.id, StudentUpdate(grade="7"), other_parent)  # type: ignore[arg-type]
    with pytest.raises(UnauthorizedException):
        await service.update_student(student.id, StudentUpdate(grade="7"), assigned_teacher)  # type: ignore[arg-type]
    with pytest.raises(NotFoundException):
        await service.deactivate_student(uuid4(), admin)  # type: ignore[arg-type]

    deactivated = await service.deactivate_student(student.id, admin)  # type: ignore[arg-type]
    assert deactivated.is_active is False


@pytest.mark.asyncio
async def test_list_students_is_narrowed_to_caller() -> None:
    parent = _user(RoleEnum.PARENT)
    teacher = _user(RoleEnum.TEACHER)
    admin = _user(RoleEnum.ADMIN)
    service, repo, _ = _service(parent)

    await service.list_students(parent, None, 20, 0)  # type: ignore[arg-type]
    await service.list_students(teacher, "sam", 20, 0)  # type: ignore[arg-type]
    await service.list_students(admin, None, 20, 0)  # type: ignore[arg-type]

    assert repo.list_calls == [
        (parent.id, None, None),
        (None, teacher.id, "sam"),
        (None, None, None),
    ]


@pytest.mark.asyncio
async def test_teacher_sees_only_their_sessions_for_assigned_student() -> None:
    parent = _user(RoleEnum.PARENT)
    teacher = _user(RoleEnum.TEACHER)
    service, repo, appointments = _service(parent)
    student = await service.create_student(_payload(), parent)  # type: ignore[arg-type]
    repo.assignments.add((student.id, teacher.id))

    await service.list_student_appointments(student.id, teacher)  # type: ignore[arg-type]
    await service.list_student_appointments(student.id, parent)  # type: ignore[arg-type]

    assert appointments.calls == [(student.id, teacher.id), (student.id, None)]


@pytest.mark.asyncio
async def test_explicit_null_for_required_field_is_a_validation_error() -> None:
    parent = _user(RoleEnum.PARENT)
    service, repo, _ = _service(parent)
    student = await service.create_student(_payload(), parent)  # type: ignore[arg-type]

    with pytest.raises(ValidationException, match="cannot be null"):
        await service.update_student(
            student.id,
            StudentUpdate.model_validate({"firstName": None, "grade": None}),
            parent,  # type: ignore[arg-type]
        )
    with pytest.raises(ValidationException, match="learning_style cannot be null"):
        await service.update_student(
            student.id,
            StudentUpdate.model_validate({"learningStyle": None}),
            parent,  # type: ignore[arg-type]
        )

    assert repo.students[student.id].first_name == "Sam"
    assert repo.students[student.id].grade == "5"

    cleared = await service.update_student(
        student.id,
        StudentUpdate.model_validate({"notes": None}),
        parent,  # type: ignore[arg-type]
    )
    assert cleared.notes is None
