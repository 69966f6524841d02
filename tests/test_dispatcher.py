"""
Tests for reminder delivery and purging.
"""

from datetime import date, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from cycletrack.exceptions import DeliveryError
from cycletrack.models import Reminder
from cycletrack.notifications.dispatcher import PURGE_TASK, ReminderDispatcher
from cycletrack.notifications.reminders import add_wellness_tip, schedule_cycle_reminders


class FakeChannel:
    """Records deliveries and fails for chosen messages."""

    def __init__(self, fail_messages=(), error=None):
        self.delivered = []
        self.fail_messages = set(fail_messages)
        self.error = error

    async def deliver(self, reminder):
        if reminder.message in self.fail_messages:
            raise self.error or DeliveryError(f"cannot deliver {reminder.message}")
        self.delivered.append(reminder.message)


def _add_due(store, message, due_at, subject_id="subject-1"):
    return add_wellness_tip(store, subject_id, "Tip", message, due_at)


class TestDispatchDue:
    """Test delivering due reminders."""

    @pytest.mark.asyncio
    async def test_delivers_due_reminders_once(self, store, now):
        _add_due(store, "first", now - timedelta(hours=2))
        _add_due(store, "second", now)
        _add_due(store, "future", now + timedelta(minutes=1))
        channel = FakeChannel()
        dispatcher = ReminderDispatcher(store, channel)

        first = await dispatcher.dispatch_due(now)
        second = await dispatcher.dispatch_due(now)

        assert first.sent == 2
        assert first.failures == []
        assert second.sent == 0
        assert channel.delivered == ["first", "second"]

        sent = [r for r in store.find_by_subject("subject-1") if r.sent]
        assert {r.message for r in sent} == {"first", "second"}
        assert all(r.sent_at == now for r in sent)

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, store, now):
        failing = _add_due(store, "broken", now - timedelta(hours=1))
        _add_due(store, "fine", now)
        dispatcher = ReminderDispatcher(store, FakeChannel(fail_messages=["broken"]))

        result = await dispatcher.dispatch_due(now)

        assert result.sent == 1
        assert result.failed == 1
        assert result.failures[0].reminder_id == failing.id
        assert [r.message for r in store.find_due(now)] == ["broken"]

    @pytest.mark.asyncio
    async def test_failed_reminder_is_retried_next_time(self, store, now):
        _add_due(store, "flaky", now)
        channel = FakeChannel(fail_messages=["flaky"])
        dispatcher = ReminderDispatcher(store, channel)

        await dispatcher.dispatch_due(now)
        channel.fail_messages.clear()
        result = await dispatcher.dispatch_due(now + timedelta(minutes=5))

        assert result.sent == 1
        assert channel.delivered == ["flaky"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, store, now):
        _add_due(store, "boom", now)
        dispatcher = ReminderDispatcher(store, FakeChannel(fail_messages=["boom"], error=RuntimeError("down")))

        result = await dispatcher.dispatch_due(now)

        assert result.sent == 0
        assert isinstance(result.failures[0], DeliveryError)
        assert "down" in result.failures[0].message
        assert len(store.find_due(now)) == 1

    @pytest.mark.asyncio
    async def test_store_error_on_mark_sent_is_isolated(self, store, now):
        first = _add_due(store, "first", now - timedelta(hours=1))
        _add_due(store, "second", now)
        calls = []
        mark_sent = store.mark_sent

        def flaky_mark_sent(reminder_id, sent_at):
            calls.append(reminder_id)
            if reminder_id == first.id:
                raise OperationalError("UPDATE reminders", {}, Exception("database is locked"))
            return mark_sent(reminder_id, sent_at)

        store.mark_sent = flaky_mark_sent
        channel = FakeChannel()

        result = await ReminderDispatcher(store, channel).dispatch_due(now)

        assert channel.delivered == ["first", "second"]
        assert len(calls) == 2
        assert result.sent == 1
        assert result.failed == 1
        assert result.failures[0].reminder_id == first.id
        assert [r.message for r in store.find_due(now)] == ["first"]

    @pytest.mark.asyncio
    async def test_channel_called_with_reminder(self, store, now):
        _add_due(store, "hello", now)
        channel = AsyncMock()

        await ReminderDispatcher(store, channel).dispatch_due(now)

        channel.deliver.assert_awaited_once()
        reminder = channel.deliver.await_args.args[0]
        assert isinstance(reminder, Reminder)
        assert reminder.message == "hello"

    @pytest.mark.asyncio
    async def test_scheduled_period_reminders_become_due(self, store, now):
        schedule_cycle_reminders(store, "subject-1", date(2024, 1, 20), now=now)
        channel = FakeChannel()
        dispatcher = ReminderDispatcher(store, channel)

        assert (await dispatcher.dispatch_due(now)).sent == 0
        result = await dispatcher.dispatch_due(datetime(2024, 1, 17, 9, 0))

        assert result.sent == 1
        assert channel.delivered == ["Your next period is predicted in 3 days."]


class TestPurge:
    """Test purging old sent reminders."""

    def _sent_at(self, store, message, sent_at):
        reminder = _add_due(store, message, sent_at)
        store.mark_sent(reminder.id, sent_at)

    def test_purge_sent(self, store, now):
        self._sent_at(store, "old", now - timedelta(days=31))
        self._sent_at(store, "recent", now - timedelta(days=29))
        _add_due(store, "unsent", now - timedelta(days=40))
        dispatcher = ReminderDispatcher(store, FakeChannel(), retention_days=30)

        purged = dispatcher.purge_sent(now)

        assert purged == 1
        assert sorted(r.message for r in store.find_by_subject("subject-1")) == ["recent", "unsent"]
        assert store.get_last_run(PURGE_TASK) == now

    def test_purge_if_due_respects_interval(self, store, now):
        dispatcher = ReminderDispatcher(store, FakeChannel(), purge_interval=timedelta(days=1))
        self._sent_at(store, "old", now - timedelta(days=40))
        assert dispatcher.purge_if_due(now) == 1

        self._sent_at(store, "older", now - timedelta(days=50))
        assert dispatcher.purge_if_due(now + timedelta(hours=23)) == 0
        assert dispatcher.purge_if_due(now + timedelta(days=1)) == 1

    def test_purge_is_idempotent(self, store, now):
        self._sent_at(store, "old", now - timedelta(days=40))
        dispatcher = ReminderDispatcher(store, FakeChannel())

        assert dispatcher.purge_sent(now) == 1
        assert dispatcher.purge_sent(now) == 0


class TestSweep:
    """Test a full sweep."""

    @pytest.mark.asyncio
    async def test_back_to_back_sweeps(self, store, now):
        _add_due(store, "due", now)
        reminder = _add_due(store, "old", now - timedelta(days=60))
        store.mark_sent(reminder.id, now - timedelta(days=60))
        channel = FakeChannel()
        dispatcher = ReminderDispatcher(store, channel)

        first = await dispatcher.sweep(now)
        second = await dispatcher.sweep(now)

        assert (first.sent, first.failed, first.purged) == (1, 0, 1)
        assert (second.sent, second.failed, second.purged) == (0, 0, 0)
        assert channel.delivered == ["due"]
