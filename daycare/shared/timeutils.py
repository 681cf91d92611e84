"""Timezone helpers: bookings are stored in UTC, rules are written in business local time"""

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from ..config import BUSINESS_TIMEZONE


def business_tz() -> ZoneInfo:
    return ZoneInfo(BUSINESS_TIMEZONE)


def as_utc(value: datetime) -> datetime:
    """Naive values read back from the database are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_business_time(value: datetime) -> datetime:
    return as_utc(value).astimezone(business_tz())


def from_client_input(value: datetime) -> datetime:
    """Client-supplied timestamps without an offset are business wall-clock times."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=business_tz())
    return value.astimezone(timezone.utc)


def local_to_utc(day: date, at: time) -> datetime:
    return datetime.combine(day, at, tzinfo=business_tz()).astimezone(timezone.utc)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()
