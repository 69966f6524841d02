"""
Handler for logging the start of a period.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from cycletrack.database.crud import record_period_start
from cycletrack.database.reminder_store import ReminderStore
from cycletrack.exceptions import IncompleteCycleDataError
from cycletrack.notifications.reminders import reschedule_for_profile
from cycletrack.notifications.scheduler_utils import normalize_now
from cycletrack.utils.date_math import format_iso_date
from cycletrack.utils.logger import get_logger

logger = get_logger(__name__)


def start_period(
    subject_id: str,
    body: Dict[str, Any],
    store: ReminderStore,
    now: Optional[datetime] = None,
    session: Optional[Session] = None
) -> Dict[str, Any]:
    """
    Record a period start, update the average and reschedule reminders.

    Args:
        subject_id: Owning subject
        body: {startDate: "YYYY-MM-DD"}
        store: Reminder store
        now: Current time
        session: Optional database session

    Returns:
        {message, nextPeriod, cycleLength, newAvgCycleLength, remindersCreated}

    Raises:
        IncompleteCycleDataError: If startDate is missing
        ProfileNotFoundError: If the subject has no profile
        InvalidDateError: If the date is malformed or before the last start
    """
    start_date = (body or {}).get('startDate')
    if not start_date:
        raise IncompleteCycleDataError("startDate is required")

    current = normalize_now(now)
    profile, cycle_length = record_period_start(
        subject_id, start_date, recorded_at=current, session=session
    )
    prediction, created = reschedule_for_profile(store, profile, now=current)

    return {
        'message': 'Period started successfully',
        'nextPeriod': format_iso_date(prediction.next_period_start),
        'cycleLength': cycle_length,
        'newAvgCycleLength': profile.average_cycle_length,
        'remindersCreated': created,
    }
