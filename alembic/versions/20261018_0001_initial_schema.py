"""Initial schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _role_enum() -> sa.Enum:
    return sa.Enum("admin", "teacher", "parent", name="role_enum", native_enum=False)


def _day_of_week_enum() -> sa.Enum:
    return sa.Enum(
        "monday",
        "tuesday",
        "wednesday",
        "thursday",
        "friday",
        "saturday",
        "sunday",
        name="day_of_week_enum",
        native_enum=False,
    )


appointment_status_enum = sa.Enum(
    "available",
    "booked",
    "confirmed",
    "in-progress",
    "completed",
    "cancelled",
    "rescheduled",
    name="appointment_status_enum",
    native_enum=False,
)
location_enum = sa.Enum("in-person", "online", "hybrid", name="location_enum", native_enum=False)
attendance_enum = sa.Enum("present", "absent", "late", "cancelled", name="attendance_enum", native_enum=False)
completion_status_enum = sa.Enum(
    "not-started",
    "in-progress",
    "completed",
    "cancelled",
    name="completion_status_enum",
    native_enum=False,
)
learning_style_enum = sa.Enum(
    "visual",
    "auditory",
    "kinesthetic",
    "reading",
    "mixed",
    name="learning_style_enum",
    native_enum=False,
)
recurrence_frequency_enum = sa.Enum(
    "weekly",
    "bi-weekly",
    "monthly",
    name="recurrence_frequency_enum",
    native_enum=False,
)


def _id_col() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _created_col() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated_col() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def _uuid_col(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "roles",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("name", _role_enum(), nullable=False),
        sa.UniqueConstraint("name", name="uq_roles_name"),
    )

    op.create_table(
        "users",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        _uuid_col("role_id"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], name="fk_users_role_id_roles", ondelete="RESTRICT"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "teacher_profiles",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("user_id"),
        sa.Column("subjects", postgresql.JSONB(), nullable=False),
        sa.Column("qualifications", postgresql.JSONB(), nullable=False),
        sa.Column("bio", sa.Text(), nullable=False),
        sa.Column("experience_years", sa.Integer(), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_teacher_profiles_user_id_users", ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", name="uq_teacher_profiles_user_id"),
    )

    op.create_table(
        "teacher_availability",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("profile_id"),
        sa.Column("day_of_week", _day_of_week_enum(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.ForeignKeyConstraint(
            ["profile_id"],
            ["teacher_profiles.id"],
            name="fk_teacher_availability_profile_id_teacher_profiles",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_teacher_availability_profile_id", "teacher_availability", ["profile_id"], unique=False)

    op.create_table(
        "students",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=False),
        sa.Column("grade", sa.String(length=20), nullable=False),
        sa.Column("subjects", postgresql.JSONB(), nullable=False),
        _uuid_col("parent_id"),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("emergency_contact", postgresql.JSONB(), nullable=True),
        sa.Column("learning_style", learning_style_enum, nullable=False),
        sa.Column("preferred_times", postgresql.JSONB(), nullable=False),
        sa.ForeignKeyConstraint(["parent_id"], ["users.id"], name="fk_students_parent_id_users", ondelete="RESTRICT"),
    )
    op.create_index("ix_students_parent_id", "students", ["parent_id"], unique=False)
    op.create_index("ix_students_is_active", "students", ["is_active"], unique=False)

    op.create_table(
        "schedules",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("teacher_id"),
        sa.Column("day_of_week", _day_of_week_enum(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("subjects", postgresql.JSONB(), nullable=False),
        sa.Column("max_students", sa.Integer(), nullable=False),
        sa.Column("current_bookings", sa.Integer(), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("effective_until", sa.Date(), nullable=True),
        sa.Column("notes", sa.String(length=200), nullable=True),
        sa.ForeignKeyConstraint(["teacher_id"], ["users.id"], name="fk_schedules_teacher_id_users", ondelete="CASCADE"),
        sa.CheckConstraint("current_bookings >= 0", name="ck_schedules_current_bookings_non_negative"),
        sa.CheckConstraint("current_bookings <= max_students", name="ck_schedules_current_bookings_within_capacity"),
        sa.CheckConstraint("max_students BETWEEN 1 AND 10", name="ck_schedules_max_students_range"),
    )
    op.create_index("ix_schedules_teacher_id", "schedules", ["teacher_id"], unique=False)
    op.create_index("ix_schedules_teacher_day", "schedules", ["teacher_id", "day_of_week"], unique=False)
    op.create_index("ix_schedules_day_start", "schedules", ["day_of_week", "start_time"], unique=False)

    op.create_table(
        "schedule_breaks",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("schedule_id"),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.ForeignKeyConstraint(
            ["schedule_id"],
            ["schedules.id"],
            name="fk_schedule_breaks_schedule_id_schedules",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_schedule_breaks_schedule_id", "schedule_breaks", ["schedule_id"], unique=False)

    op.create_table(
        "schedule_special_dates",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("schedule_id"),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("reason", sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(
            ["schedule_id"],
            ["schedules.id"],
            name="fk_schedule_special_dates_schedule_id_schedules",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_schedule_special_dates_schedule_id", "schedule_special_dates", ["schedule_id"], unique=False)

    op.create_table(
        "appointments",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("student_id", nullable=True),
        _uuid_col("teacher_id"),
        _uuid_col("schedule_id", nullable=True),
        sa.Column("subject", sa.String(length=100), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("status", appointment_status_enum, nullable=False),
        sa.Column("location", location_enum, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("teacher_notes", sa.Text(), nullable=True),
        sa.Column("parent_notes", sa.Text(), nullable=True),
        _uuid_col("booked_by_id", nullable=True),
        sa.Column("booked_at", sa.DateTime(timezone=True), nullable=True),
        _uuid_col("original_appointment_id", nullable=True),
        sa.Column("reschedule_reason", sa.String(length=200), nullable=True),
        sa.Column("reschedule_requested_by", _role_enum(), nullable=True),
        sa.Column("reschedule_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attendance", attendance_enum, nullable=False),
        sa.Column("completion_status", completion_status_enum, nullable=False),
        sa.Column("is_paid", sa.Boolean(), nullable=False),
        sa.Column("payment_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("is_recurring", sa.Boolean(), nullable=False),
        sa.Column("recurring_frequency", recurrence_frequency_enum, nullable=True),
        sa.Column("recurring_end_date", sa.Date(), nullable=True),
        _uuid_col("next_appointment_id", nullable=True),
        sa.ForeignKeyConstraint(
            ["student_id"],
            ["students.id"],
            name="fk_appointments_student_id_students",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(["teacher_id"], ["users.id"], name="fk_appointments_teacher_id_users", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["schedule_id"],
            ["schedules.id"],
            name="fk_appointments_schedule_id_schedules",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["booked_by_id"],
            ["users.id"],
            name="fk_appointments_booked_by_id_users",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["original_appointment_id"],
            ["appointments.id"],
            name="fk_appointments_original_appointment_id_appointments",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["next_appointment_id"],
            ["appointments.id"],
            name="fk_appointments_next_appointment_id_appointments",
            ondelete="SET NULL",
        ),
        sa.CheckConstraint("duration BETWEEN 15 AND 480", name="ck_appointments_duration_range"),
        sa.CheckConstraint("end_time > start_time", name="ck_appointments_end_after_start"),
    )
    op.create_index("ix_appointments_schedule_id", "appointments", ["schedule_id"], unique=False)
    op.create_index("ix_appointments_teacher_date", "appointments", ["teacher_id", "scheduled_date"], unique=False)
    op.create_index("ix_appointments_student_date", "appointments", ["student_id", "scheduled_date"], unique=False)
    op.create_index("ix_appointments_status_date", "appointments", ["status", "scheduled_date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_appointments_status_date", table_name="appointments")
    op.drop_index("ix_appointments_student_date", table_name="appointments")
    op.drop_index("ix_appointments_teacher_date", table_name="appointments")
    op.drop_index("ix_appointments_schedule_id", table_name="appointments")
    op.drop_table("appointments")

    op.drop_index("ix_schedule_special_dates_schedule_id", table_name="schedule_special_dates")
    op.drop_table("schedule_special_dates")

    op.drop_index("ix_schedule_breaks_schedule_id", table_name="schedule_breaks")
    op.drop_table("schedule_breaks")

    op.drop_index("ix_schedules_day_start", table_name="schedules")
    op.drop_index("ix_schedules_teacher_day", table_name="schedules")
    op.drop_index("ix_schedules_teacher_id", table_name="schedules")
    op.drop_table("schedules")

    op.drop_index("ix_students_is_active", table_name="students")
    op.drop_index("ix_students_parent_id", table_name="students")
    op.drop_table("students")

    op.drop_index("ix_teacher_availability_profile_id", table_name="teacher_availability")
    op.drop_table("teacher_availability")

    op.drop_table("teacher_profiles")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    op.drop_table("roles")
