"""
Integration tests for profile CRUD operations.

Uses the SQLite in-memory database from conftest as the default database.
"""

from datetime import date, timedelta

import pytest

from cycletrack.database.crud import (
    HISTORY_WINDOW,
    create_profile,
    delete_profile,
    get_or_create_profile,
    get_profile,
    record_period_start,
    require_profile,
    update_cycle_settings,
)
from cycletrack.database.session import DatabaseSession
from cycletrack.exceptions import (
    InvalidCycleParametersError,
    InvalidDateError,
    ProfileNotFoundError,
)
from cycletrack.models import CycleEntry


class TestProfileCRUD:
    """Test CycleProfile CRUD operations."""

    def test_create_profile_defaults(self, database):
        profile = create_profile("subject-1")

        assert profile.id is not None
        assert profile.subject_id == "subject-1"
        assert profile.last_period_start is None
        assert profile.average_cycle_length == 28
        assert profile.period_duration == 5
        assert profile.reminder_days == [3, 1]
        assert profile.notification_hour == 9
        assert profile.timezone == "UTC"
        assert profile.history == []
        assert profile.has_cycle_data() is False

    def test_create_profile_with_settings(self, database):
        profile = create_profile(
            "subject-1",
            last_period_start="2024-01-01",
            average_cycle_length=30,
            reminder_days=[1, 5, 1],
            timezone="Europe/Berlin",
        )

        assert profile.last_period_start == date(2024, 1, 1)
        assert profile.average_cycle_length == 30
        assert profile.reminder_days == [5, 1]
        assert profile.has_cycle_data() is True

    def test_create_existing_profile_returns_it(self, database):
        first = create_profile("subject-1", average_cycle_length=30)
        second = create_profile("subject-1", average_cycle_length=25)

        assert second.id == first.id
        assert second.average_cycle_length == 30

    def test_create_profile_validates(self, database):
        with pytest.raises(InvalidCycleParametersError):
            create_profile("subject-1", average_cycle_length=50)
        with pytest.raises(InvalidCycleParametersError):
            create_profile("subject-1", notification_hour=24)
        with pytest.raises(InvalidCycleParametersError):
            create_profile("subject-1", timezone="Nowhere/City")
        with pytest.raises(InvalidCycleParametersError):
            create_profile("subject-1", reminder_days=[-1])

        assert get_profile("subject-1") is None

    def test_get_profile(self, database):
        create_profile("subject-1")

        assert get_profile("subject-1").subject_id == "subject-1"
        assert get_profile("missing") is None

    def test_require_profile(self, database):
        with pytest.raises(ProfileNotFoundError) as exc_info:
            require_profile("missing")
        assert exc_info.value.status_code == 404

    def test_get_or_create_profile(self, database):
        created = get_or_create_profile("subject-1")
        fetched = get_or_create_profile("subject-1")

        assert created.id == fetched.id

    def test_explicit_session(self, engine, database):
        with database.get_session() as session:
            create_profile("subject-1", session=session)
            profile = get_profile("subject-1", session=session)

        assert profile.subject_id == "subject-1"
        assert get_profile("subject-1") is not None

    def test_delete_profile_cascades(self, database):
        create_profile("subject-1", last_period_start="2024-01-01")
        record_period_start("subject-1", "2024-01-29")

        assert delete_profile("subject-1") is True
        assert get_profile("subject-1") is None
        assert delete_profile("subject-1") is False

        with database.get_session() as session:
            assert session.query(CycleEntry).count() == 0


class TestUpdateCycleSettings:
    """Test settings updates."""

    def test_update_fields(self, database):
        create_profile("subject-1")

        profile = update_cycle_settings("subject-1", {
            'last_period_start': "2024-02-01",
            'average_cycle_length': 32,
            'reminder_days': [2, 7],
            'notification_hour': 20,
            'fertile_window_reminders': True,
        })

        assert profile.last_period_start == date(2024, 2, 1)
        assert profile.average_cycle_length == 32
        assert profile.reminder_days == [7, 2]
        assert profile.notification_hour == 20
        assert profile.fertile_window_reminders is True
        assert profile.updated_at is not None

    def test_unknown_fields_are_ignored(self, database):
        create_profile("subject-1")

        profile = update_cycle_settings("subject-1", {'subject_id': "other", 'period_duration': 6})

        assert profile.subject_id == "subject-1"
        assert profile.period_duration == 6

    def test_invalid_values_change_nothing(self, database):
        create_profile("subject-1")

        with pytest.raises(InvalidCycleParametersError):
            update_cycle_settings("subject-1", {'average_cycle_length': 28, 'period_duration': 11})
        with pytest.raises(InvalidDateError):
            update_cycle_settings("subject-1", {'last_period_start': "2024-02-30"})

        assert get_profile("subject-1").period_duration == 5

    def test_unknown_subject(self, database):
        with pytest.raises(ProfileNotFoundError):
            update_cycle_settings("missing", {'period_duration': 6})

    def test_replace_history_keeps_newest(self, database):
        create_profile("subject-1")
        start = date(2023, 1, 1)
        history = [
            {'startDate': (start + timedelta(days=28 * i)).isoformat(), 'length': 28}
            for i in range(HISTORY_WINDOW + 2)
        ]

        profile = update_cycle_settings("subject-1", {'cycle_history': list(reversed(history))})

        assert len(profile.history) == HISTORY_WINDOW
        assert profile.history[0].start_date == start + timedelta(days=28 * 2)
        assert profile.history[-1].start_date == start + timedelta(days=28 * (HISTORY_WINDOW + 1))
        assert profile.history_to_list()[0]['length'] == 28


class TestRecordPeriodStart:
    """Test logging period starts."""

    def test_first_start_without_previous(self, database):
        create_profile("subject-1")

        profile, cycle_length = record_period_start("subject-1", "2024-01-01")

        assert cycle_length is None
        assert profile.last_period_start == date(2024, 1, 1)
        assert profile.average_cycle_length == 28
        assert [entry.start_date for entry in profile.history] == [date(2024, 1, 1)]

    def test_length_and_average(self, database):
        create_profile("subject-1", last_period_start="2024-01-01")

        profile, cycle_length = record_period_start("subject-1", "2024-01-29")
        assert cycle_length == 28
        assert profile.average_cycle_length == 28

        profile, cycle_length = record_period_start("subject-1", "2024-02-28")
        assert cycle_length == 30
        assert profile.average_cycle_length == 29
        assert [entry.length for entry in profile.history] == [28, 30]

    def test_average_rounds_half_up(self, database):
        create_profile("subject-1", last_period_start="2024-01-01")
        record_period_start("subject-1", "2024-01-29")
        profile, _ = record_period_start("subject-1", "2024-02-27")

        # (28 + 29) / 2 = 28.5
        assert profile.average_cycle_length == 29

    def test_average_is_clamped(self, database):
        create_profile("subject-1", last_period_start="2024-01-01")

        profile, cycle_length = record_period_start("subject-1", "2024-03-01")

        assert cycle_length == 60
        assert profile.average_cycle_length == 45

    def test_same_date_is_noop(self, database):
        create_profile("subject-1", last_period_start="2024-01-01")
        record_period_start("subject-1", "2024-01-29")

        profile, cycle_length = record_period_start("subject-1", "2024-01-29")

        assert cycle_length is None
        assert len(profile.history) == 1

    def test_earlier_date_rejected(self, database):
        create_profile("subject-1", last_period_start="2024-01-29")

        with pytest.raises(InvalidDateError):
            record_period_start("subject-1", "2024-01-01")

        assert get_profile("subject-1").history == []

    def test_history_window(self, database):
        create_profile("subject-1")
        start = date(2023, 1, 1)
        for i in range(HISTORY_WINDOW + 3):
            record_period_start("subject-1", start + timedelta(days=28 * i))

        profile = get_profile("subject-1")

        assert len(profile.history) == HISTORY_WINDOW
        assert profile.history[-1].start_date == start + timedelta(days=28 * (HISTORY_WINDOW + 2))
        with database.get_session() as session:
            assert session.query(CycleEntry).count() == HISTORY_WINDOW

    def test_unknown_subject(self, database):
        with pytest.raises(ProfileNotFoundError):
            record_period_start("missing", "2024-01-01")


class TestDatabaseSession:
    """Test the session manager."""

    def test_rollback_on_error(self, database):
        with pytest.raises(RuntimeError):
            with database.get_session() as session:
                session.add(CycleEntry(profile_id=1, start_date=date(2024, 1, 1)))
                session.flush()
                raise RuntimeError("boom")

        with database.get_session() as session:
            assert session.query(CycleEntry).count() == 0

    def test_connection(self, database):
        assert database.test_connection() is True

    def test_transaction_reuses_given_session(self, database):
        with database.get_session() as session:
            with database.transaction(session) as inner:
                assert inner is session

    def test_default_factory_is_not_required(self, engine):
        from sqlalchemy.orm import sessionmaker

        manager = DatabaseSession(sessionmaker(bind=engine))
        assert manager.test_connection() is True
