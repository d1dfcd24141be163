"""Identity API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.core.enums import RoleEnum
from app.modules.identity.schemas import LoginRequest, RegisterRequest, TokenResponse, UserCreate, UserRead, UserUpdate
from app.modules.identity.service import IdentityService, get_current_user, get_identity_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(tags=["identity"])


@router.post("/auth/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    service: IdentityService = Depends(get_identity_service),
) -> UserRead:
    """Register a new parent account."""
    user = await service.register(payload)
    return UserRead.model_validate(user)


@router.post("/auth/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    service: IdentityService = Depends(get_identity_service),
) -> TokenResponse:
    """Sign in by email/password and return an access token."""
    return await service.login(payload)


@router.get("/auth/me", response_model=UserRead)
async def get_me(current_user=Depends(get_current_user)) -> UserRead:
    """Return profile of authenticated user."""
    return UserRead.model_validate(current_user)


@router.get("/users", response_model=Page[UserRead])
async def list_users(
    role: RoleEnum | None = Query(default=None),
    is_active: bool | None = Query(default=None, alias="isActive"),
    search: str | None = Query(default=None, max_length=100),
    pagination=Depends(get_pagination_params),
    service: IdentityService = Depends(get_identity_service),
    current_user=Depends(get_current_user),
) -> Page[UserRead]:
    """List accounts with filters (admin)."""
    items, total = await service.list_users(
        current_user,
        role,
        is_active,
        search,
        pagination.limit,
        pagination.offset,
    )
    serialized = [UserRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/users/role/{role}", response_model=Page[UserRead])
async def list_users_by_role(
    role: RoleEnum,
    pagination=Depends(get_pagination_params),
    service: IdentityService = Depends(get_identity_service),
    current_user=Depends(get_current_user),
) -> Page[UserRead]:
    """List active accounts of one role (admin)."""
    items, total = await service.list_users(
        current_user,
        role,
        True,
        None,
        pagination.limit,
        pagination.offset,
    )
    serialized = [UserRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    service: IdentityService = Depends(get_identity_service),
    current_user=Depends(get_current_user),
) -> UserRead:
    """Create an account of any role (admin)."""
    user = await service.create_user(payload, current_user)
    return UserRead.model_validate(user)


@router.get("/users/{user_id}", response_model=UserRead)
async def get_user(
    user_id: UUID,
    service: IdentityService = Depends(get_identity_service),
    current_user=Depends(get_current_user),
) -> UserRead:
    """Return one account (admin or owner)."""
    user = await service.get_user(user_id, current_user)
    return UserRead.model_validate(user)


@router.put("/users/{user_id}", response_model=UserRead)
async def update_user(
    user_id: UUID,
    payload: UserUpdate,
    service: IdentityService = Depends(get_identity_service),
    current_user=Depends(get_current_user),
) -> UserRead:
    """Update an account (admin or owner)."""
    user = await service.update_user(user_id, payload, current_user)
    return UserRead.model_validate(user)


@router.delete("/users/{user_id}", response_model=UserRead)
async def deactivate_user(
    user_id: UUID,
    service: IdentityService = Depends(get_identity_service),
    current_user=Depends(get_current_user),
) -> UserRead:
    """Deactivate an account (admin)."""
    user = await service.deactivate_user(user_id, current_user)
    return UserRead.model_validate(user)
