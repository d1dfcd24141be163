"""Shared utility functions."""

from __future__ import annotations

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Return current UTC calendar date."""
    return utc_now().date()
