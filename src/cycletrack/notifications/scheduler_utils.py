"""
Utilities for computing reminder due times.
"""

from datetime import date, datetime
from typing import Any, Iterable, List, Optional

import pytz

from cycletrack.exceptions import InvalidCycleParametersError
from cycletrack.utils.cycle_calculator import MAX_CYCLE_LENGTH
from cycletrack.utils.date_math import add_days, localize_at_hour, to_utc_naive, utc_now


def validate_reminder_days(reminder_days: Optional[Iterable[Any]]) -> List[int]:
    """
    Validate reminder offsets.

    Args:
        reminder_days: Offsets in days before the predicted period

    Returns:
        De-duplicated offsets, largest first

    Raises:
        InvalidCycleParametersError: If an offset is not an integer in [0, 45]
    """
    if reminder_days is None:
        return []

    offsets = set()
    for value in reminder_days:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_CYCLE_LENGTH:
            raise InvalidCycleParametersError(
                f"Reminder days must be integers between 0 and {MAX_CYCLE_LENGTH}, got {value!r}"
            )
        offsets.add(value)
    return sorted(offsets, reverse=True)


def validate_notification_hour(hour: Any) -> int:
    """
    Raises:
        InvalidCycleParametersError: If hour is not an integer in [0, 23]
    """
    if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23:
        raise InvalidCycleParametersError(f"Notification hour must be between 0 and 23, got {hour!r}")
    return hour


def validate_timezone(timezone: Any) -> str:
    """
    Raises:
        InvalidCycleParametersError: If timezone is not a known IANA name
    """
    try:
        pytz.timezone(timezone)
    except (pytz.exceptions.UnknownTimeZoneError, AttributeError):
        raise InvalidCycleParametersError(f"Unknown timezone: {timezone!r}") from None
    return timezone


def calculate_reminder_datetime(
    base_date: date,
    notification_hour: int,
    timezone: str = 'UTC',
    offset_days: int = 0
) -> datetime:
    """
    Due time of a reminder as naive UTC.

    Args:
        base_date: Event date (e.g. predicted period start)
        notification_hour: Local hour the reminder fires at
        timezone: Subject's timezone
        offset_days: Days added to base_date (negative for "days before")

    Returns:
        Naive UTC datetime of `notification_hour`:00 local on the target day
    """
    target_date = add_days(base_date, offset_days)
    return to_utc_naive(localize_at_hour(target_date, notification_hour, timezone))


def normalize_now(now: Optional[datetime] = None) -> datetime:
    """Naive UTC "now"; aware values are converted, naive ones taken as UTC."""
    return to_utc_naive(now if now is not None else utc_now())
