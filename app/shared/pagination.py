"""Reusable pagination helpers."""

from __future__ import annotations

import math
from typing import Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel

from app.shared.schemas import CamelModel

T = TypeVar("T")


class PaginationParams(BaseModel):
    """Pagination query params."""

    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def get_pagination_params(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> PaginationParams:
    """FastAPI dependency for pagination params."""
    return PaginationParams(page=page, limit=limit)


class Page(CamelModel, Generic[T]):
    """Generic paginated response."""

    items: list[T]
    total: int
    page: int
    limit: int
    total_pages: int


def build_page(items: list[T], total: int, params: PaginationParams) -> Page[T]:
    """Build page object from query result and params."""
    return Page(
        items=items,
        total=total,
        page=params.page,
        limit=params.limit,
        total_pages=math.ceil(total / params.limit) if total else 0,
    )
