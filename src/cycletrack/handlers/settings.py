"""
Handler for updating a subject's cycle settings.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from cycletrack.database import crud
from cycletrack.database.reminder_store import ReminderStore
from cycletrack.exceptions import IncompleteCycleDataError
from cycletrack.notifications.reminders import reschedule_for_profile
from cycletrack.notifications.types import DEFAULT_REMINDER_DAYS
from cycletrack.utils.date_math import format_iso_date
from cycletrack.utils.logger import get_logger

logger = get_logger(__name__)

# Request keys and the profile fields they set
BODY_FIELDS = {
    'lastPeriodDate': 'last_period_start',
    'lastPeriodStart': 'last_period_start',
    'avgCycleLength': 'average_cycle_length',
    'averageCycleLength': 'average_cycle_length',
    'periodDuration': 'period_duration',
    'cycleHistory': 'cycle_history',
    'reminderDays': 'reminder_days',
    'notificationHour': 'notification_hour',
    'timezone': 'timezone',
    'fertileWindowReminders': 'fertile_window_reminders',
}


def _settings_from_body(body: Dict[str, Any]) -> Dict[str, Any]:
    updates = {}
    for key, field in BODY_FIELDS.items():
        if key in body and body[key] is not None:
            updates[field] = body[key]
    return updates


def update_cycle_settings(
    subject_id: str,
    body: Dict[str, Any],
    store: ReminderStore,
    now: Optional[datetime] = None,
    session: Optional[Session] = None
) -> Dict[str, Any]:
    """
    Save cycle settings and regenerate the subject's reminders.

    The profile is created on first use.

    Args:
        subject_id: Owning subject
        body: {lastPeriodDate, avgCycleLength, cycleHistory?, reminderDays?,
            periodDuration?, notificationHour?, timezone?,
            fertileWindowReminders?}
        store: Reminder store
        now: Current time
        session: Optional database session

    Returns:
        {message, nextPeriod, remindersCreated}

    Raises:
        IncompleteCycleDataError: If lastPeriodDate or avgCycleLength is missing
        InvalidCycleParametersError: If a setting is out of range
        InvalidDateError: If a date is malformed
    """
    updates = _settings_from_body(body or {})
    if not updates.get('last_period_start') or not updates.get('average_cycle_length'):
        raise IncompleteCycleDataError("lastPeriodDate and avgCycleLength are required")

    # Omitted reminder days fall back to the defaults, as on creation
    updates.setdefault('reminder_days', list(DEFAULT_REMINDER_DAYS))
    updates.setdefault('cycle_history', [])

    crud.get_or_create_profile(subject_id, session=session)
    profile = crud.update_cycle_settings(subject_id, updates, session=session)

    prediction, created = reschedule_for_profile(store, profile, now=now)

    logger.info(f"Cycle info updated for subject {subject_id}, {created} reminders created")
    return {
        'message': 'Cycle info updated',
        'nextPeriod': format_iso_date(prediction.next_period_start),
        'remindersCreated': created,
    }
