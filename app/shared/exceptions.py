"""Custom exception hierarchy and handlers."""

from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.shared.log_sanitizer import build_error_context

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    status_code = 400
    code = "app_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationException(AppException):
    """Raised when field values break a domain rule."""

    status_code = 400
    code = "validation_error"


class ConflictException(AppException):
    """Raised when a requested interval or state collides with existing data."""

    status_code = 400
    code = "conflict"

    def __init__(self, message: str, conflicts: list[dict[str, Any]] | None = None) -> None:
        self.conflicts = conflicts or []
        super().__init__(message, {"conflicts": self.conflicts} if self.conflicts else None)


class CapacityException(AppException):
    """Raised when a schedule booking counter would leave its bounds."""

    status_code = 400
    code = "capacity_error"


class StateTransitionException(AppException):
    """Raised when an appointment status change is not allowed."""

    status_code = 400
    code = "invalid_state_transition"


class BusinessRuleException(AppException):
    """Raised when business rule validation fails."""

    status_code = 400
    code = "business_rule_violation"


class AuthenticationException(AppException):
    """Raised when the caller cannot be authenticated."""

    status_code = 401
    code = "unauthorized"


class UnauthorizedException(AppException):
    """Raised when user has no rights for operation."""

    status_code = 403
    code = "forbidden"


class NotFoundException(AppException):
    """Raised when entity is not found."""

    status_code = 404
    code = "not_found"


def _error_body(code: str, message: str, details: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"error": error}


async def app_exception_handler(_: Request, exc: AppException) -> JSONResponse:
    """Handle custom domain exceptions."""
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationException) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(_error_body(exc.code, exc.message, exc.details)),
        headers=headers,
    )


async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Render body/query validation failures as 400 with per-field details."""
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())[1:]) or "body",
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder(_error_body("validation_error", "Validation failed", details)),
    )


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions in unified shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("http_error", str(exc.detail)),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    settings = get_settings()
    context = build_error_context(request, exc, development=settings.is_development)
    logger.error("Unhandled error: %s | context=%s", exc, context, exc_info=exc)

    if settings.is_development:
        details = {"traceback": traceback.format_exception(type(exc), exc, exc.__traceback__)}
        body = _error_body("internal_error", str(exc) or "Internal server error", details)
    else:
        body = _error_body("internal_error", "Internal server error")
    return JSONResponse(status_code=500, content=body)


def register_exception_handlers(app) -> None:
    """Register global exception handlers."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
