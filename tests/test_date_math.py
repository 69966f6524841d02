"""
Tests for calendar arithmetic helpers.
"""

from datetime import date, datetime, timezone

import pytest

from cycletrack.exceptions import InvalidDateError
from cycletrack.utils.date_math import (
    add_days,
    days_between,
    format_iso_date,
    localize_at_hour,
    parse_date,
    parse_datetime,
    to_utc_naive,
    whole_days,
)


class TestParseDate:
    """Test date parsing."""

    def test_iso_date(self):
        assert parse_date("2024-01-01") == date(2024, 1, 1)

    def test_full_iso_datetime(self):
        assert parse_date("2024-03-05T10:30:00Z") == date(2024, 3, 5)

    def test_date_and_datetime_objects(self):
        assert parse_date(date(2024, 2, 29)) == date(2024, 2, 29)
        assert parse_date(datetime(2024, 2, 29, 23, 59)) == date(2024, 2, 29)

    @pytest.mark.parametrize("value", ["", "not-a-date", "2023-02-29", None, 20240101])
    def test_invalid_values(self, value):
        with pytest.raises(InvalidDateError):
            parse_date(value)

    def test_invalid_date_is_value_error(self):
        with pytest.raises(ValueError):
            parse_date("2024-13-01")


class TestParseDatetime:
    """Test timestamp parsing."""

    def test_utc_suffix(self):
        assert parse_datetime("2024-01-01T08:30:00Z") == datetime(2024, 1, 1, 8, 30, tzinfo=timezone.utc)

    def test_datetime_passes_through(self):
        value = datetime(2024, 1, 1, 8, 30)
        assert parse_datetime(value) is value

    @pytest.mark.parametrize("value", ["garbage", "", "2024-01-32T00:00:00", 1704067200])
    def test_invalid_values(self, value):
        with pytest.raises(InvalidDateError):
            parse_datetime(value)


class TestDayArithmetic:
    """Test adding and counting days."""

    def test_add_days_leap_year(self):
        assert format_iso_date(add_days(date(2024, 2, 28), 1)) == "2024-02-29"

    def test_add_days_non_leap_year(self):
        assert format_iso_date(add_days(date(2023, 2, 28), 1)) == "2023-03-01"

    def test_add_days_across_year(self):
        assert add_days(date(2023, 12, 20), 15) == date(2024, 1, 4)

    def test_add_negative_days(self):
        assert add_days(date(2024, 3, 1), -1) == date(2024, 2, 29)

    def test_add_days_overflow(self):
        with pytest.raises(InvalidDateError):
            add_days(date(9999, 12, 31), 1)

    def test_days_between_dates(self):
        assert days_between(date(2024, 1, 1), date(2024, 1, 31)) == 30
        assert days_between(date(2024, 1, 31), date(2024, 1, 1)) == -30

    def test_days_between_datetimes_truncates(self):
        start = datetime(2024, 1, 1, 12, 0)
        assert days_between(start, datetime(2024, 1, 3, 11, 0)) == 1
        assert days_between(start, datetime(2023, 12, 30, 13, 0)) == -1

    def test_whole_days_floors(self):
        assert whole_days(29.333) == 29
        assert whole_days(30.0) == 30
        assert whole_days(-0.5) == -1


class TestTimestamps:
    """Test reminder timestamp helpers."""

    def test_localize_at_hour_utc(self):
        result = localize_at_hour(date(2024, 1, 10), 9, 'UTC')
        assert to_utc_naive(result) == datetime(2024, 1, 10, 9, 0)

    def test_localize_at_hour_timezone(self):
        # New York is UTC-5 in January
        result = localize_at_hour(date(2024, 1, 10), 9, 'America/New_York')
        assert to_utc_naive(result) == datetime(2024, 1, 10, 14, 0)

    def test_localize_unknown_timezone_falls_back_to_utc(self):
        result = localize_at_hour(date(2024, 1, 10), 9, 'Mars/Olympus')
        assert to_utc_naive(result) == datetime(2024, 1, 10, 9, 0)

    def test_to_utc_naive(self):
        aware = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)
        assert to_utc_naive(aware) == datetime(2024, 1, 10, 9, 0)
        naive = datetime(2024, 1, 10, 9, 0)
        assert to_utc_naive(naive) is naive
