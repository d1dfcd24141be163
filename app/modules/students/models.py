"""Students ORM models."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin, enum_column
from app.core.enums import LearningStyleEnum
from app.shared.utils import utc_today

if TYPE_CHECKING:
    from app.modules.identity.models import User


class Student(BaseModelMixin, Base):
    """A parent's child who attends sessions."""

    __tablename__ = "students"

    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    grade: Mapped[str] = mapped_column(String(20), nullable=False)
    subjects: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    parent_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    emergency_contact: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    learning_style: Mapped[LearningStyleEnum] = mapped_column(
        enum_column(LearningStyleEnum, "learning_style_enum"),
        default=LearningStyleEnum.MIXED,
        nullable=False,
    )
    preferred_times: Mapped[list[dict]] = mapped_column(JSONB, default=list, nullable=False)

    parent: Mapped["User"] = relationship(back_populates="children")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def current_age(self) -> int:
        today = utc_today()
        birth = self.date_of_birth
        had_birthday = (today.month, today.day) >= (birth.month, birth.day)
        return today.year - birth.year - (0 if had_birthday else 1)
