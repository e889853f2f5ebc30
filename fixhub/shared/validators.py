"""Shared validation utilities"""

import re
from datetime import date
from typing import Optional

from ..models import ALLOWED_CATEGORIES

# 24-hour clock, zero padded: 00:00 .. 23:59
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

# Checkout ids and other opaque identifiers handed back by the gateway
EXTERNAL_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,255}$")


def validate_time(value: Optional[str], field: str = "time") -> Optional[str]:
    """
    Validate a time string in 24-hour HH:mm format.

    Raises:
        ValueError: If the value does not match HH:mm
    """
    if value is None:
        return value
    value = value.strip()
    if not TIME_PATTERN.match(value):
        raise ValueError(f"{field} must be a valid time in HH:mm format")
    return value


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_categories(categories: Optional[list[str]]) -> Optional[list[str]]:
    """Normalize and check categories against the allowed set"""
    if categories is None:
        return categories

    normalized = []
    for category in categories:
        value = category.strip().lower()
        if value not in ALLOWED_CATEGORIES:
            raise ValueError(
                f"Invalid category '{category}'. Allowed: {', '.join(ALLOWED_CATEGORIES)}"
            )
        if value not in normalized:
            normalized.append(value)
    return normalized


def validate_availability_window(
    from_date: Optional[date],
    to_date: Optional[date],
    from_time: Optional[str],
    to_time: Optional[str],
) -> bool:
    """
    Validate an optional availability window.

    The window is all-or-nothing: either every field is absent, or the dates
    and both times are present. Returns True when a window was supplied.

    Raises:
        ValueError: On a partial window, bad time format or inverted dates
    """
    fields = [from_date, to_date, from_time, to_time]
    if all(f is None for f in fields):
        return False
    if any(f is None for f in fields):
        raise ValueError(
            "Availability requires from/to date and from/to time when provided"
        )

    validate_time(from_time, "availableFromTime")
    validate_time(to_time, "availableToTime")

    if to_date < from_date:
        raise ValueError("availableToDate cannot be before availableFromDate")
    return True


def validate_external_id(value: Optional[str]) -> str:
    """Gateway identifiers are untrusted; only accept a conservative charset"""
    if not value or not isinstance(value, str) or not EXTERNAL_ID_PATTERN.match(value):
        raise ValueError("Invalid external payment identifier")
    return value
