"""
Delivery of due reminders and cleanup of old sent ones.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from cycletrack.config import PURGE_INTERVAL_HOURS, REMINDER_RETENTION_DAYS
from cycletrack.database.reminder_store import ReminderStore
from cycletrack.exceptions import DeliveryError
from cycletrack.notifications.scheduler_utils import normalize_now
from cycletrack.notifications.sender import DeliveryChannel
from cycletrack.utils.logger import get_logger, log_error, log_reminder_event

logger = get_logger(__name__)

# Name of the persisted last-purge timestamp
PURGE_TASK = 'purge'


@dataclass
class DispatchResult:
    """Outcome of one delivery pass."""

    sent: int = 0
    failures: List[DeliveryError] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)


@dataclass
class SweepResult:
    """Outcome of one sweep: delivery plus purge."""

    sent: int = 0
    failed: int = 0
    purged: int = 0


class ReminderDispatcher:
    """
    Delivers due reminders through a channel and purges old sent ones.

    Args:
        store: Reminder store
        channel: Delivery channel
        retention_days: Sent reminders older than this are purged
        purge_interval: Minimum time between two purges
    """

    def __init__(
        self,
        store: ReminderStore,
        channel: DeliveryChannel,
        retention_days: int = REMINDER_RETENTION_DAYS,
        purge_interval: timedelta = timedelta(hours=PURGE_INTERVAL_HOURS)
    ):
        self.store = store
        self.channel = channel
        self.retention_days = retention_days
        self.purge_interval = purge_interval

    async def dispatch_due(self, now: Optional[datetime] = None) -> DispatchResult:
        """
        Deliver every unsent reminder due at `now`.

        A reminder is marked sent only after the channel accepted it. A
        failure is recorded and the pass moves on; the reminder stays unsent
        for the next pass.

        Returns:
            DispatchResult with the sent count and the failures
        """
        current = normalize_now(now)
        result = DispatchResult()

        for reminder in self.store.find_due(current):
            try:
                await self.channel.deliver(reminder)
            except DeliveryError as e:
                if e.reminder_id is None:
                    e.reminder_id = reminder.id
                result.failures.append(e)
                log_error(
                    logger,
                    f"Failed to deliver reminder {reminder.id}",
                    e,
                    subject_id=reminder.subject_id,
                    reminder_id=reminder.id,
                )
                continue
            except Exception as e:
                error = DeliveryError(
                    f"Unexpected error delivering reminder {reminder.id}: {e}",
                    reminder_id=reminder.id
                )
                result.failures.append(error)
                log_error(
                    logger,
                    f"Unexpected error delivering reminder {reminder.id}",
                    e,
                    subject_id=reminder.subject_id,
                    reminder_id=reminder.id,
                )
                continue

            try:
                marked = self.store.mark_sent(reminder.id, current)
            except Exception as e:
                error = DeliveryError(
                    f"Could not mark reminder {reminder.id} as sent: {e}",
                    reminder_id=reminder.id
                )
                result.failures.append(error)
                log_error(
                    logger,
                    f"Failed to mark reminder {reminder.id} as sent",
                    e,
                    subject_id=reminder.subject_id,
                    reminder_id=reminder.id,
                )
                continue

            if marked:
                result.sent += 1
                log_reminder_event(
                    logger,
                    'sent',
                    reminder.subject_id,
                    reminder_id=reminder.id,
                    category=reminder.category,
                    status='sent',
                )
            else:
                logger.warning(f"Reminder {reminder.id} was already marked sent")

        if result.sent or result.failures:
            logger.info(f"Dispatched {result.sent} reminders, {result.failed} failed")
        return result

    def purge_sent(self, now: Optional[datetime] = None) -> int:
        """
        Delete sent reminders older than the retention period.

        Returns:
            Number of purged reminders
        """
        current = normalize_now(now)
        cutoff = current - timedelta(days=self.retention_days)
        purged = self.store.delete_many(sent=True, sent_before=cutoff)
        self.store.set_last_run(PURGE_TASK, current)

        if purged:
            logger.info(f"Purged {purged} reminders sent before {cutoff}")
        return purged

    def purge_if_due(self, now: Optional[datetime] = None) -> int:
        """Purge when no purge ran within the purge interval."""
        current = normalize_now(now)
        last_run = self.store.get_last_run(PURGE_TASK)
        if last_run is not None and current - last_run < self.purge_interval:
            return 0
        return self.purge_sent(current)

    async def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """Deliver due reminders, then purge if due."""
        current = normalize_now(now)
        dispatched = await self.dispatch_due(current)
        purged = self.purge_if_due(current)
        return SweepResult(sent=dispatched.sent, failed=dispatched.failed, purged=purged)
