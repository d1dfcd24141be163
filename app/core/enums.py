"""Core enums used across modules."""

from enum import StrEnum


class RoleEnum(StrEnum):
    """System roles."""

    ADMIN = "admin"
    TEACHER = "teacher"
    PARENT = "parent"


class DayOfWeekEnum(StrEnum):
    """Weekday of a recurring schedule window."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class AppointmentStatusEnum(StrEnum):
    """Appointment lifecycle status."""

    AVAILABLE = "available"
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class LocationEnum(StrEnum):
    """Where a session takes place."""

    IN_PERSON = "in-person"
    ONLINE = "online"
    HYBRID = "hybrid"


class AttendanceEnum(StrEnum):
    """Attendance outcome of a session."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    CANCELLED = "cancelled"


class CompletionStatusEnum(StrEnum):
    """Progress of the session content."""

    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LearningStyleEnum(StrEnum):
    """Preferred learning style of a student."""

    VISUAL = "visual"
    AUDITORY = "auditory"
    KINESTHETIC = "kinesthetic"
    READING = "reading"
    MIXED = "mixed"


class RecurrenceFrequencyEnum(StrEnum):
    """Recurrence frequency stored on recurring appointments."""

    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
