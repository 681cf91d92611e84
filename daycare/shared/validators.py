"""Shared validation utilities"""

import re
from datetime import date, datetime, time
from typing import Optional

TIME_OF_DAY_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9](:[0-5][0-9])?$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


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

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_time_of_day(value) -> time:
    """
    Parse an ``HH:MM`` or ``HH:MM:SS`` wall-clock time.

    Raises:
        ValueError: If the value is not a valid 24-hour time
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str) or not TIME_OF_DAY_PATTERN.match(value):
        raise ValueError("Invalid time format. Use HH:MM or HH:MM:SS")
    parts = [int(p) for p in value.split(":")]
    return time(*parts)


def validate_iso_date(value) -> date:
    """Parse a ``YYYY-MM-DD`` calendar date."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        raise ValueError("Invalid date format. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValueError("Invalid date format. Use YYYY-MM-DD") from e


def validate_days_of_week(days: Optional[list[int]]) -> Optional[list[int]]:
    """
    Validate ISO weekday numbers (1 = Monday ... 7 = Sunday).

    Returns the days de-duplicated and sorted, or None for an empty list.
    """
    if days is None:
        return None
    if any(not isinstance(d, int) or isinstance(d, bool) or d < 1 or d > 7 for d in days):
        raise ValueError("days_of_week must contain ISO weekday numbers between 1 and 7")
    return sorted(set(days)) or None


def validate_schedule_window(start: Optional[time], end: Optional[time]) -> None:
    if start is not None and end is not None and end <= start:
        raise ValueError("End time must be after start time")


def validate_recurrence(days_of_week: Optional[list[int]], specific_date: Optional[date]) -> None:
    """A rule either repeats on weekdays or applies to one date, never both."""
    if days_of_week and specific_date:
        raise ValueError("Cannot set both days_of_week and specific_date")
    if not days_of_week and not specific_date:
        raise ValueError("Either days_of_week or specific_date is required")


def strip_required(value: Optional[str], field_name: str) -> str:
    """Trim a required text value, rejecting blanks."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Missing required field: {field_name}")
    return value.strip()
