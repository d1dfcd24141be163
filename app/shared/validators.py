"""Shared field validators used by request schemas."""

from __future__ import annotations

import re
from datetime import date

from app.shared.exceptions import ValidationException
from app.shared.time_intervals import is_valid_time, normalize_time

PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")


def validate_time(value: str | None) -> str | None:
    """
    Validate an "HH:MM" time and return it zero-padded.

    Raises:
        ValueError: If the value does not match HH:MM (00:00-23:59)
    """
    if value is None:
        return value
    value = value.strip()
    if not is_valid_time(value):
        raise ValueError("Time must be in HH:MM format")
    return normalize_time(value)


def validate_phone(phone: str | None) -> str | None:
    """
    Validate a phone number after stripping spaces, dashes and parentheses.

    Raises:
        ValueError: If the remaining digits do not form a valid number
    """
    if not phone:
        return phone
    cleaned = re.sub(r"[\s\-()]", "", phone)
    if not PHONE_PATTERN.match(cleaned):
        raise ValueError("Please enter a valid phone number")
    return cleaned


def validate_interval(start: str | None, end: str | None, label: str = "End time") -> None:
    """Reject intervals whose end is not after start."""
    if start is not None and end is not None and end <= start:
        raise ValueError(f"{label} must be after start time")


def validate_past_date(value: date | None, today: date) -> date | None:
    if value is not None and value > today:
        raise ValueError("Date of birth cannot be in the future")
    return value


def clean_subjects(subjects: list[str] | None) -> list[str] | None:
    """Strip blanks and duplicates while keeping order."""
    if subjects is None:
        return subjects
    seen: list[str] = []
    for subject in subjects:
        item = subject.strip()
        if item and item not in seen:
            seen.append(item)
    return seen


def parse_time_param(value: str | None, field: str) -> str | None:
    """Validate an HH:MM query parameter, reporting failures as a 400."""
    try:
        return validate_time(value)
    except ValueError as exc:
        raise ValidationException(f"{field}: {exc}") from exc
