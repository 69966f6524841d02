"""
Handler for the cycle status of a subject: next period, current phase and
upcoming reminders.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from cycletrack.database.crud import require_profile
from cycletrack.database.reminder_store import ReminderStore
from cycletrack.exceptions import IncompleteCycleDataError
from cycletrack.notifications.scheduler_utils import normalize_now
from cycletrack.notifications.types import ReminderCategory
from cycletrack.utils.cycle_calculator import predict_cycle
from cycletrack.utils.date_math import days_between, format_iso_date, parse_date
from cycletrack.utils.logger import get_logger
from cycletrack.utils.phase_classifier import PhaseStrategy, classify_phase

logger = get_logger(__name__)


def get_cycle_status(
    subject_id: str,
    store: ReminderStore,
    today: Optional[Any] = None,
    now: Optional[datetime] = None,
    strategy: PhaseStrategy = PhaseStrategy.RELATIVE_DAY,
    session: Optional[Session] = None
) -> Dict[str, Any]:
    """
    Current cycle status of a subject.

    Args:
        subject_id: Owning subject
        store: Reminder store
        today: Calendar day to report for (defaults to the UTC date of `now`)
        now: Current time, used to select upcoming reminders
        strategy: Phase classification policy
        session: Optional database session

    Returns:
        {nextPeriod, daysUntilNext, isOverdue, cyclePhase, dayOfCycle,
        upcomingReminders, cycleHistory, reminderDays}

    Raises:
        ProfileNotFoundError: If the subject has no profile
        IncompleteCycleDataError: If no period start is known
    """
    current = normalize_now(now)
    day: date = parse_date(today) if today is not None else current.date()

    profile = require_profile(subject_id, session=session)
    if not profile.has_cycle_data():
        raise IncompleteCycleDataError("Cycle info incomplete")

    prediction = predict_cycle(
        last_period_start=profile.last_period_start,
        average_cycle_length=profile.average_cycle_length,
        period_duration=profile.period_duration,
        cycle_history=profile.history,
    )
    phase = classify_phase(
        day,
        prediction.last_period_start,
        profile.average_cycle_length,
        period_duration=profile.period_duration,
        strategy=strategy,
    )

    days_until_next = days_between(day, prediction.next_period_start)
    upcoming = [
        reminder for reminder in store.find_upcoming(subject_id, current)
        if reminder.category == ReminderCategory.PERIOD_REMINDER.value
    ]

    return {
        'nextPeriod': format_iso_date(prediction.next_period_start),
        'daysUntilNext': days_until_next,
        'isOverdue': days_until_next < 0,
        'cyclePhase': phase.phase.value,
        'dayOfCycle': phase.day_of_cycle,
        'upcomingReminders': [reminder.to_dict() for reminder in upcoming],
        'cycleHistory': profile.history_to_list(),
        'reminderDays': profile.get_reminder_days(),
    }
