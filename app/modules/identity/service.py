"""Identity business logic layer."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access_policy import Action, Resource, ensure_permitted, is_permitted
from app.core.database import get_db_session
from app.core.enums import RoleEnum
from app.core.security import create_access_token, decode_token, hash_password, oauth2_scheme, verify_password
from app.modules.identity.models import User
from app.modules.identity.repository import IdentityRepository
from app.modules.identity.schemas import LoginRequest, RegisterRequest, TokenResponse, UserCreate, UserRead, UserUpdate
from app.shared.exceptions import (
    AuthenticationException,
    BusinessRuleException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)


class IdentityService:
    """Identity domain service."""

    def __init__(self, repository: IdentityRepository) -> None:
        self.repository = repository

    async def ensure_default_roles(self) -> None:
        """Ensure all default roles exist."""
        for role_name in (RoleEnum.ADMIN, RoleEnum.TEACHER, RoleEnum.PARENT):
            role = await self.repository.get_role_by_name(role_name)
            if role is None:
                await self.repository.create_role(role_name)

    async def ensure_bootstrap_admin(self, email: str, password: str) -> None:
        """Create the configured admin account on first start."""
        if await self.repository.get_user_by_email(email) is not None:
            return
        role = await self.repository.get_role_by_name(RoleEnum.ADMIN)
        if role is None:
            raise NotFoundException("Role not found")
        await self.repository.create_user(
            email=email,
            password_hash=hash_password(password),
            first_name="System",
            last_name="Administrator",
            phone=None,
            role_id=role.id,
        )
        logger.info("Bootstrap admin account created")

    async def _create_account(self, payload: RegisterRequest, role_name: RoleEnum) -> User:
        existing_user = await self.repository.get_user_by_email(payload.email)
        if existing_user is not None:
            raise ValidationException("User with this email already exists")

        role = await self.repository.get_role_by_name(role_name)
        if role is None:
            raise NotFoundException("Role not found")

        return await self.repository.create_user(
            email=payload.email,
            password_hash=hash_password(payload.password),
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
            role_id=role.id,
        )

    async def register(self, payload: RegisterRequest) -> User:
        """Self-register a parent account."""
        return await self._create_account(payload, RoleEnum.PARENT)

    async def create_user(self, payload: UserCreate, actor: User) -> User:
        """Create an account of any role (admin only)."""
        ensure_permitted(actor.role.name, Resource.USERS, Action.CREATE, "Admin access required")
        return await self._create_account(payload, payload.role)

    async def login(self, payload: LoginRequest) -> TokenResponse:
        """Authenticate user and issue JWT access token."""
        user = await self.repository.get_user_by_email(payload.email)
        if user is None or not verify_password(payload.password, user.password_hash):
            raise AuthenticationException("Invalid credentials")

        if not user.is_active:
            raise AuthenticationException("Account is deactivated")

        await self.repository.touch_last_login(user, utc_now())
        token = create_access_token(subject=str(user.id), role=user.role.name)
        return TokenResponse(token=token, user=UserRead.model_validate(user))

    async def get_user_from_access_token(self, token: str | None) -> User:
        """Resolve user from access token."""
        if not token:
            raise AuthenticationException("Not authenticated")

        payload = decode_token(token)
        if payload.get("type") != "access":
            raise AuthenticationException("Invalid token")

        subject = payload.get("sub")
        if not subject:
            raise AuthenticationException("Invalid token")

        try:
            user_id = UUID(subject)
        except ValueError as exc:
            raise AuthenticationException("Invalid token") from exc

        user = await self.repository.get_user_by_id(user_id)
        if user is None:
            raise AuthenticationException("Invalid token")
        if not user.is_active:
            raise AuthenticationException("Account is deactivated")

        return user

    async def list_users(
        self,
        actor: User,
        role_name: RoleEnum | None,
        is_active: bool | None,
        search: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[User], int]:
        """List accounts (admin only)."""
        ensure_permitted(actor.role.name, Resource.USERS, Action.READ, "Admin access required")
        return await self.repository.list_users(role_name, is_active, search, limit, offset)

    async def get_user(self, user_id: UUID, actor: User) -> User:
        """Return an account visible to actor."""
        is_owner = actor.id == user_id
        if not is_permitted(actor.role.name, Resource.USERS, Action.READ, is_owner=is_owner):
            raise NotFoundException("User not found")
        user = await self.repository.get_user_by_id(user_id)
        if user is None:
            raise NotFoundException("User not found")
        return user

    async def update_user(self, user_id: UUID, payload: UserUpdate, actor: User) -> User:
        """Update profile fields; only admins toggle activation."""
        ensure_permitted(
            actor.role.name,
            Resource.USERS,
            Action.UPDATE,
            "Access denied",
            is_owner=actor.id == user_id,
        )
        user = await self.repository.get_user_by_id(user_id)
        if user is None:
            raise NotFoundException("User not found")

        changes = payload.model_dump(exclude_unset=True)
        if "is_active" in changes and actor.role.name != RoleEnum.ADMIN:
            raise UnauthorizedException("Admin access required")
        for key in ("first_name", "last_name", "is_active"):
            if key in changes and changes[key] is None:
                raise ValidationException(f"{key} cannot be null")
        if changes.get("is_active") is False:
            await self._guard_last_admin(user)
        return await self.repository.update_user(user, **changes)

    async def deactivate_user(self, user_id: UUID, actor: User) -> User:
        """Soft-delete an account by clearing is_active."""
        ensure_permitted(actor.role.name, Resource.USERS, Action.DELETE, "Admin access required")
        user = await self.repository.get_user_by_id(user_id)
        if user is None:
            raise NotFoundException("User not found")
        if user.id == actor.id:
            raise BusinessRuleException("You cannot deactivate your own account")
        await self._guard_last_admin(user)
        return await self.repository.update_user(user, is_active=False)

    async def _guard_last_admin(self, user: User) -> None:
        if user.role.name != RoleEnum.ADMIN or not user.is_active:
            return
        if await self.repository.count_active_admins() <= 1:
            raise BusinessRuleException("Cannot deactivate the last active admin")


async def get_identity_service(session: AsyncSession = Depends(get_db_session)) -> IdentityService:
    """Dependency to provide identity service."""
    return IdentityService(IdentityRepository(session))


async def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    service: IdentityService = Depends(get_identity_service),
) -> User:
    """Resolve currently authenticated user from bearer token."""
    user = await service.get_user_from_access_token(token)
    request.state.user_id = user.id
    return user

