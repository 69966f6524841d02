"""
Creating reminders from cycle predictions.

Period, fertile-window and mid-cycle reminders are regenerated as a batch
every time the cycle info of a subject changes; wellness tips are added one
by one and are never replaced.
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cycletrack.database.reminder_store import ReminderStore
from cycletrack.exceptions import CycleTrackError, SchedulingError
from cycletrack.models.reminder import Reminder
from cycletrack.notifications.scheduler_utils import (
    calculate_reminder_datetime,
    normalize_now,
    validate_reminder_days,
)
from cycletrack.notifications.types import (
    DEFAULT_NOTIFICATION_HOUR,
    DEFAULT_REMINDER_DAYS,
    FERTILE_WINDOW_MESSAGES,
    MID_CYCLE_MESSAGE,
    MID_CYCLE_TITLE,
    PERIOD_REMINDER_TEMPLATE,
    PERIOD_REMINDER_TITLE,
    REPLACEABLE_CATEGORIES,
    ReminderCategory,
    ReminderPriority,
    format_period_reminder,
    priority_for_offset,
)
from cycletrack.utils.cycle_calculator import CyclePrediction, predict_cycle
from cycletrack.utils.date_math import (
    add_days,
    format_iso_date,
    parse_date,
    to_utc_naive,
    whole_days,
)
from cycletrack.utils.logger import get_logger, log_reminder_event

logger = get_logger(__name__)


def _period_reminders(
    subject_id: str,
    next_period_start: date,
    offsets: List[int],
    notification_hour: int,
    timezone: str,
    now: datetime,
    message_template: str
) -> List[Reminder]:
    reminders = []
    for days_before in offsets:
        due_at = calculate_reminder_datetime(
            next_period_start, notification_hour, timezone, offset_days=-days_before
        )
        if due_at <= now:
            logger.debug(
                f"Skipping past reminder for subject {subject_id}: "
                f"{days_before} days before, due {due_at}"
            )
            continue

        reminders.append(Reminder(
            subject_id=subject_id,
            category=ReminderCategory.PERIOD_REMINDER.value,
            title=PERIOD_REMINDER_TITLE,
            message=format_period_reminder(days_before, message_template),
            priority=priority_for_offset(days_before).value,
            due_at=due_at,
            sent=False,
            payload={'daysBefore': days_before},
        ))
    return reminders


def _fertile_window_reminders(
    subject_id: str,
    fertile_window: Tuple[Any, Any],
    notification_hour: int,
    timezone: str,
    now: datetime
) -> List[Reminder]:
    reminders = []
    edges = (
        ('start', parse_date(fertile_window[0]), ReminderPriority.MEDIUM),
        ('end', parse_date(fertile_window[1]), ReminderPriority.LOW),
    )
    for edge, day, priority in edges:
        due_at = calculate_reminder_datetime(day, notification_hour, timezone)
        if due_at <= now:
            continue

        title, message = FERTILE_WINDOW_MESSAGES[edge]
        reminders.append(Reminder(
            subject_id=subject_id,
            category=ReminderCategory.FERTILE_WINDOW.value,
            title=title,
            message=message,
            priority=priority.value,
            due_at=due_at,
            sent=False,
            payload={'edge': edge},
        ))
    return reminders


def _mid_cycle_reminder(
    subject_id: str,
    mid_cycle_date: date,
    notification_hour: int,
    timezone: str,
    now: datetime
) -> Optional[Reminder]:
    due_at = calculate_reminder_datetime(mid_cycle_date, notification_hour, timezone)
    if due_at <= now:
        return None

    return Reminder(
        subject_id=subject_id,
        category=ReminderCategory.CYCLE_PREDICTION.value,
        title=MID_CYCLE_TITLE,
        message=MID_CYCLE_MESSAGE,
        priority=ReminderPriority.LOW.value,
        due_at=due_at,
        sent=False,
        payload={'date': format_iso_date(mid_cycle_date)},
    )


def schedule_cycle_reminders(
    store: ReminderStore,
    subject_id: str,
    next_period_start: Optional[Any],
    reminder_days: Iterable[int] = DEFAULT_REMINDER_DAYS,
    notification_hour: int = DEFAULT_NOTIFICATION_HOUR,
    timezone: str = 'UTC',
    fertile_window: Optional[Tuple[Any, Any]] = None,
    now: Optional[datetime] = None,
    message_template: str = PERIOD_REMINDER_TEMPLATE,
    mid_cycle_date: Optional[Any] = None
) -> int:
    """
    Replace a subject's pending cycle reminders with a fresh batch.

    One period reminder is created per offset, due at `notification_hour`
    local time that many days before the predicted period. Reminders whose
    due time is not in the future are skipped. With `fertile_window`, a
    reminder is also created on its first and last day. With `mid_cycle_date`,
    a mid-cycle check is created on that day.

    Args:
        store: Reminder store
        subject_id: Owning subject
        next_period_start: Predicted start of the next period
        reminder_days: Offsets in days before the period
        notification_hour: Local hour reminders fire at
        timezone: Subject's timezone
        fertile_window: Optional (first day, last day) of the fertile window
        now: Current time (defaults to the current UTC time)
        message_template: Period reminder text with {days} and {day_word}
        mid_cycle_date: Optional halfway day of the current cycle

    Returns:
        Number of reminders created

    Raises:
        SchedulingError: If next_period_start is missing
        InvalidCycleParametersError: If reminder_days are invalid
    """
    if next_period_start is None:
        raise SchedulingError(f"Cannot schedule reminders for subject {subject_id}: next period unknown")

    period_start = parse_date(next_period_start)
    offsets = validate_reminder_days(reminder_days)
    current = normalize_now(now)

    reminders = _period_reminders(
        subject_id, period_start, offsets, notification_hour, timezone, current, message_template
    )
    if fertile_window is not None:
        reminders.extend(_fertile_window_reminders(
            subject_id, fertile_window, notification_hour, timezone, current
        ))
    if mid_cycle_date is not None:
        mid_cycle = _mid_cycle_reminder(
            subject_id, parse_date(mid_cycle_date), notification_hour, timezone, current
        )
        if mid_cycle is not None:
            reminders.append(mid_cycle)

    created = store.replace_pending(subject_id, REPLACEABLE_CATEGORIES, reminders)

    for reminder in created:
        log_reminder_event(
            logger,
            'scheduled',
            subject_id,
            reminder_id=reminder.id,
            category=reminder.category,
            status='pending',
        )
    return len(created)


def reschedule_for_profile(
    store: ReminderStore,
    profile,
    now: Optional[datetime] = None
) -> Tuple[CyclePrediction, int]:
    """
    Predict the next cycle of a profile and schedule its reminders.

    Args:
        store: Reminder store
        profile: CycleProfile (detached is fine)
        now: Current time

    Returns:
        Tuple of (prediction, number of reminders created)

    Raises:
        SchedulingError: If the profile cannot be predicted
    """
    try:
        prediction = predict_cycle(
            last_period_start=profile.last_period_start,
            average_cycle_length=profile.average_cycle_length,
            period_duration=profile.period_duration,
            cycle_history=profile.history,
        )
    except CycleTrackError as e:
        raise SchedulingError(
            f"Cannot schedule reminders for subject {profile.subject_id}: {e.message}"
        ) from e

    created = schedule_cycle_reminders(
        store,
        profile.subject_id,
        prediction.next_period_start,
        reminder_days=profile.get_reminder_days(),
        notification_hour=profile.notification_hour,
        timezone=profile.timezone,
        fertile_window=prediction.fertile_window if profile.fertile_window_reminders else None,
        now=now,
        mid_cycle_date=add_days(
            prediction.last_period_start, whole_days(prediction.predicted_length / 2)
        ),
    )
    return prediction, created


def add_wellness_tip(
    store: ReminderStore,
    subject_id: str,
    title: str,
    message: str,
    due_at: datetime,
    payload: Optional[Dict[str, Any]] = None,
    priority: ReminderPriority = ReminderPriority.LOW
) -> Reminder:
    """
    Store a wellness tip reminder.

    The payload is kept as given and never interpreted.
    """
    reminder = Reminder(
        subject_id=subject_id,
        category=ReminderCategory.WELLNESS_TIP.value,
        title=title,
        message=message,
        payload=payload,
        priority=ReminderPriority(priority).value,
        due_at=to_utc_naive(due_at),
        sent=False,
    )
    saved = store.upsert(reminder)
    log_reminder_event(
        logger, 'scheduled', subject_id, reminder_id=saved.id, category=saved.category, status='pending'
    )
    return saved
