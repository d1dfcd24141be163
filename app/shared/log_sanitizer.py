"""Helpers that strip credentials and personal data before errors are logged."""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from typing import Any

from fastapi import Request

REDACTED = "[REDACTED]"
NO_USER = "[NO_USER]"
UNKNOWN = "[UNKNOWN]"

SENSITIVE_FIELD_MARKERS = (
    "password",
    "passwd",
    "pwd",
    "secret",
    "token",
    "key",
    "auth",
    "cookie",
    "ssn",
    "creditcard",
    "credit_card",
    "cardnumber",
    "card_number",
    "cvv",
    "cvc",
    "pin",
    "email",
    "phone",
    "telephone",
    "mobile",
    "address",
    "firstname",
    "first_name",
    "lastname",
    "last_name",
    "dateofbirth",
    "date_of_birth",
    "dob",
)


def is_sensitive_field(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in SENSITIVE_FIELD_MARKERS)


def _mask(value: Any) -> str:
    if isinstance(value, str) and value:
        return "*" * min(len(value), 8)
    return REDACTED


def sanitize_payload(payload: Any) -> Any:
    """Return a copy of payload with sensitive keys masked at any depth."""
    if isinstance(payload, Mapping):
        return {
            key: _mask(value) if is_sensitive_field(str(key)) else sanitize_payload(value)
            for key, value in payload.items()
        }
    if isinstance(payload, list | tuple):
        return [sanitize_payload(item) for item in payload]
    return payload


def safe_user_identifier(user_id: Any, *, development: bool) -> str:
    """Shorten the id in development, hash it everywhere else."""
    if user_id is None:
        return NO_USER
    raw = str(user_id)
    if development:
        return f"{raw[:4]}...{raw[-4:]}" if len(raw) > 8 else raw
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:8]


def build_error_context(request: Request, exc: Exception, *, development: bool) -> dict[str, Any]:
    """Collect request facts for an error log line without leaking secrets."""
    client_host = request.client.host if request.client else None
    context: dict[str, Any] = {
        "error": type(exc).__name__,
        "method": request.method,
        "path": request.url.path,
        "query": sanitize_payload(dict(request.query_params)),
        "user_agent": request.headers.get("user-agent", UNKNOWN),
        "ip": client_host or UNKNOWN,
        "user": safe_user_identifier(getattr(request.state, "user_id", None), development=development),
    }
    return context
