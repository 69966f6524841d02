"""
Calendar arithmetic used by prediction, phase classification and reminders.

Dates are plain local calendar dates; no timezone conversion happens here
except in the helpers that build reminder timestamps.
"""

import logging
import math
from datetime import date, datetime, timedelta, timezone as dt_timezone
from typing import Union

import pytz

from cycletrack.exceptions import InvalidDateError

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]


def parse_date(value: DateLike) -> date:
    """
    Parse a calendar date.

    Args:
        value: date, datetime (its date part is used) or an ISO-8601 string
            ("YYYY-MM-DD" or a full datetime)

    Returns:
        The calendar date

    Raises:
        InvalidDateError: If the value is missing or not a valid calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidDateError(f"Invalid date: {value!r}. Use YYYY-MM-DD")

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        # "Z" suffix is not accepted by fromisoformat before 3.11
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError:
        raise InvalidDateError(f"Invalid date format: {value!r}. Use YYYY-MM-DD") from None


def parse_datetime(value: Union[datetime, str]) -> datetime:
    """
    Parse an ISO-8601 timestamp; a trailing "Z" means UTC.

    Raises:
        InvalidDateError: If the value is not a datetime or a valid timestamp
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidDateError(f"Invalid timestamp: {value!r}")

    try:
        return datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        raise InvalidDateError(f"Invalid timestamp format: {value!r}. Use ISO-8601") from None


def _require_date(value, name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise InvalidDateError(f"{name} must be a date, got {value!r}")


def add_days(day: date, n: int) -> date:
    """Return a new date n calendar days later (n may be negative)."""
    day = _require_date(day, "date")
    try:
        return day + timedelta(days=n)
    except OverflowError:
        raise InvalidDateError(f"{day} + {n} days is out of range") from None


def days_between(a: Union[date, datetime], b: Union[date, datetime]) -> int:
    """
    Whole days from a to b (b - a), truncated toward zero.

    Two datetimes are compared exactly; anything else is compared by
    calendar date.
    """
    if isinstance(a, datetime) and isinstance(b, datetime):
        return int((b - a).total_seconds() / 86400)
    return (_require_date(b, "b") - _require_date(a, "a")).days


def format_iso_date(day: Union[date, datetime]) -> str:
    """Format as YYYY-MM-DD."""
    return _require_date(day, "date").isoformat()


def whole_days(days: float) -> int:
    """Whole day count of a possibly fractional number of days."""
    return int(math.floor(days))


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(dt_timezone.utc)


def to_utc_naive(dt: datetime) -> datetime:
    """
    Convert a datetime to naive UTC, the form timestamps are stored in.

    Naive input is assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(dt_timezone.utc).replace(tzinfo=None)


def localize_at_hour(day: date, hour: int, timezone: str = 'UTC') -> datetime:
    """
    Build an aware datetime for `hour`:00 local time on `day`.

    Args:
        day: Calendar date
        hour: Local hour (0-23)
        timezone: IANA timezone name; unknown names fall back to UTC

    Returns:
        Localized datetime
    """
    try:
        tz = pytz.timezone(timezone)
    except pytz.exceptions.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone {timezone!r}, using UTC")
        tz = pytz.utc

    naive = datetime(day.year, day.month, day.day, hour, 0, 0)
    return tz.localize(naive)
