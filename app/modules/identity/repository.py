"""Identity repository layer."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.enums import RoleEnum
from app.modules.identity.models import Role, User


class IdentityRepository:
    """DB operations for identity domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_role_by_name(self, role_name: RoleEnum) -> Role | None:
        stmt = select(Role).where(Role.name == role_name)
        return await self.session.scalar(stmt)

    async def create_role(self, role_name: RoleEnum) -> Role:
        role = Role(name=role_name)
        self.session.add(role)
        await self.session.flush()
        return role

    async def get_user_by_email(self, email: str) -> User | None:
        stmt = select(User).options(selectinload(User.role)).where(User.email == email.lower())
        return await self.session.scalar(stmt)

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        stmt = select(User).options(selectinload(User.role)).where(User.id == user_id)
        return await self.session.scalar(stmt)

    async def lock_user(self, user_id: UUID) -> bool:
        """Take a row lock on the user; serializes calendar writes per teacher."""
        stmt = select(User.id).where(User.id == user_id).with_for_update()
        return (await self.session.scalar(stmt)) is not None

    async def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        phone: str | None,
        role_id: UUID,
    ) -> User:
        user = User(
            email=email.lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role_id=role_id,
            is_active=True,
        )
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user, attribute_names=["role"])
        return user

    async def list_users(
        self,
        role_name: RoleEnum | None,
        is_active: bool | None,
        search: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[User], int]:
        base_stmt: Select[tuple[User]] = select(User).join(User.role).options(selectinload(User.role))
        if role_name is not None:
            base_stmt = base_stmt.where(Role.name == role_name)
        if is_active is not None:
            base_stmt = base_stmt.where(User.is_active.is_(is_active))
        if search:
            pattern = f"%{search.strip()}%"
            base_stmt = base_stmt.where(
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    User.email.ilike(pattern),
                ),
            )

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(User.last_name.asc(), User.first_name.asc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def count_active_admins(self) -> int:
        stmt = (
            select(func.count())
            .select_from(User)
            .join(User.role)
            .where(Role.name == RoleEnum.ADMIN, User.is_active.is_(True))
        )
        return int((await self.session.scalar(stmt)) or 0)

    async def update_user(self, user: User, **changes) -> User:
        for key, value in changes.items():
            setattr(user, key, value)
        await self.session.flush()
        return user

    async def touch_last_login(self, user: User, logged_in_at: datetime) -> None:
        user.last_login = logged_in_at
        await self.session.flush()
