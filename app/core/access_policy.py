"""Role/ownership decision table consulted before reads and mutations.

Lookups are pure functions over static data so the policy can be tested without
HTTP or a database. Services decide what "own" and "available" mean for the
concrete entity and pass those facts in.

Hiding policy: a read by id of something outside the caller's scope answers
404, a mutation by id answers 403, and listing endpoints narrow their query to
the caller's scope instead of failing.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from app.core.enums import RoleEnum
from app.shared.exceptions import UnauthorizedException


class Resource(StrEnum):
    """Resources guarded by the policy."""

    SCHEDULES = "schedules"
    APPOINTMENTS = "appointments"
    USERS = "users"
    STUDENTS = "students"


class Action(StrEnum):
    """Operations a role may perform on a resource."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    BOOK = "book"
    RESCHEDULE = "reschedule"


class Scope(StrEnum):
    """Which instances a grant covers."""

    ANY = "any"
    OWN = "own"
    AVAILABLE = "available"


@dataclass(frozen=True, slots=True)
class Grant:
    actions: frozenset[Action]
    scope: Scope = Scope.ANY


_ALL_ACTIONS = frozenset(Action)
_CRUD = frozenset({Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE})

POLICY: dict[RoleEnum, dict[Resource, tuple[Grant, ...]]] = {
    RoleEnum.ADMIN: {resource: (Grant(_ALL_ACTIONS),) for resource in Resource},
    RoleEnum.TEACHER: {
        Resource.SCHEDULES: (Grant(_CRUD, Scope.OWN),),
        Resource.APPOINTMENTS: (
            Grant(frozenset({Action.READ, Action.UPDATE, Action.RESCHEDULE}), Scope.OWN),
        ),
        Resource.USERS: (Grant(frozenset({Action.READ, Action.UPDATE}), Scope.OWN),),
        # "own" students of a teacher are the ones assigned through appointments
        Resource.STUDENTS: (Grant(frozenset({Action.READ}), Scope.OWN),),
    },
    RoleEnum.PARENT: {
        Resource.SCHEDULES: (Grant(frozenset({Action.READ}), Scope.AVAILABLE),),
        Resource.APPOINTMENTS: (
            Grant(frozenset({Action.READ, Action.BOOK}), Scope.AVAILABLE),
            Grant(frozenset({Action.READ, Action.UPDATE, Action.RESCHEDULE}), Scope.OWN),
        ),
        Resource.USERS: (Grant(frozenset({Action.READ, Action.UPDATE}), Scope.OWN),),
        Resource.STUDENTS: (Grant(_CRUD, Scope.OWN),),
    },
}

APPOINTMENT_ADMIN_FIELDS = frozenset(
    {
        "student_id",
        "teacher_id",
        "subject",
        "scheduled_date",
        "start_time",
        "end_time",
        "status",
        "location",
        "notes",
        "teacher_notes",
        "parent_notes",
        "attendance",
        "completion_status",
        "is_paid",
        "payment_amount",
        "is_recurring",
        "recurring_frequency",
        "recurring_end_date",
    },
)

APPOINTMENT_UPDATE_FIELDS: dict[RoleEnum, frozenset[str]] = {
    RoleEnum.ADMIN: APPOINTMENT_ADMIN_FIELDS,
    RoleEnum.TEACHER: frozenset({"status", "teacher_notes", "attendance", "completion_status"}),
    RoleEnum.PARENT: frozenset({"parent_notes"}),
}


def _grants(role: RoleEnum, resource: Resource) -> tuple[Grant, ...]:
    return POLICY.get(role, {}).get(resource, ())


def has_any_grant(role: RoleEnum, resource: Resource, action: Action) -> bool:
    """Return True if the role may perform action on at least some instances."""
    return any(action in grant.actions for grant in _grants(role, resource))


def is_permitted(
    role: RoleEnum,
    resource: Resource,
    action: Action,
    *,
    is_owner: bool = False,
    is_available: bool = False,
) -> bool:
    """Evaluate the decision table for one concrete instance."""
    for grant in _grants(role, resource):
        if action not in grant.actions:
            continue
        if grant.scope is Scope.ANY:
            return True
        if grant.scope is Scope.OWN and is_owner:
            return True
        if grant.scope is Scope.AVAILABLE and is_available:
            return True
    return False


def ensure_permitted(
    role: RoleEnum,
    resource: Resource,
    action: Action,
    message: str,
    *,
    is_owner: bool = False,
    is_available: bool = False,
) -> None:
    """Raise 403 when the decision table denies the operation."""
    if not is_permitted(role, resource, action, is_owner=is_owner, is_available=is_available):
        raise UnauthorizedException(message)


def appointment_update_fields(role: RoleEnum) -> frozenset[str]:
    """Return the appointment fields a role may change."""
    return APPOINTMENT_UPDATE_FIELDS.get(role, frozenset())


def disallowed_appointment_fields(role: RoleEnum, fields: set[str]) -> set[str]:
    """Return requested fields outside the role's allowed set."""
    return set(fields) - appointment_update_fields(role)
