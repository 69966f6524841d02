"""
CRUD operations for cycle profiles and their period history.
"""

import math
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from cycletrack.config import DEFAULT_NOTIFICATION_HOUR, DEFAULT_TIMEZONE
from cycletrack.database.session import get_default_session
from cycletrack.exceptions import InvalidDateError, ProfileNotFoundError
from cycletrack.models.cycle_entry import CycleEntry
from cycletrack.models.cycle_profile import CycleProfile
from cycletrack.models.base import utcnow
from cycletrack.notifications.scheduler_utils import (
    validate_notification_hour,
    validate_reminder_days,
    validate_timezone,
)
from cycletrack.notifications.types import DEFAULT_REMINDER_DAYS
from cycletrack.utils.cycle_calculator import (
    DEFAULT_CYCLE_LENGTH,
    DEFAULT_PERIOD_DURATION,
    MAX_CYCLE_LENGTH,
    MIN_CYCLE_LENGTH,
    coerce_history,
    validate_cycle_parameters,
)
from cycletrack.utils.date_math import days_between, parse_date
from cycletrack.utils.logger import get_logger

# Set up logging
logger = get_logger(__name__)

# Logged period starts kept per profile
HISTORY_WINDOW = 12

SETTINGS_FIELDS = {
    'last_period_start',
    'average_cycle_length',
    'period_duration',
    'reminder_days',
    'notification_hour',
    'timezone',
    'fertile_window_reminders',
    'cycle_history',
}


def _run(func, session: Optional[Session]):
    if session is not None:
        return func(session)
    with get_default_session().get_session() as db:
        return func(db)


def _detach(db: Session, profile: CycleProfile) -> CycleProfile:
    # Load columns and history before detaching so callers can read them
    # without a session
    db.refresh(profile)
    _ = list(profile.history)
    db.expunge(profile)
    return profile


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _average_from_history(entries: List[CycleEntry], current: Optional[int]) -> int:
    """
    Mean of the valid history lengths, clamped to the allowed cycle range.

    Keeps `current` (or the default) when no entry has a valid length.
    """
    valid = [entry.length for entry in entries if entry.length and entry.length > 0]
    if not valid:
        return current or DEFAULT_CYCLE_LENGTH

    average = _round_half_up(sum(valid) / len(valid))
    if not MIN_CYCLE_LENGTH <= average <= MAX_CYCLE_LENGTH:
        clamped = min(max(average, MIN_CYCLE_LENGTH), MAX_CYCLE_LENGTH)
        logger.warning(
            f"Average cycle length {average} outside {MIN_CYCLE_LENGTH}-{MAX_CYCLE_LENGTH}, "
            f"clamped to {clamped}"
        )
        return clamped
    return average


def _evict_old_entries(profile: CycleProfile) -> None:
    # delete-orphan removes evicted rows on flush
    while len(profile.history) > HISTORY_WINDOW:
        profile.history.pop(0)


def _validated_settings(profile: CycleProfile, updates: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(updates) - SETTINGS_FIELDS
    if unknown:
        logger.warning(f"Ignoring unknown settings fields: {sorted(unknown)}")

    values = {key: value for key, value in updates.items() if key in SETTINGS_FIELDS}

    validate_cycle_parameters(
        values.get('average_cycle_length', profile.average_cycle_length),
        values.get('period_duration', profile.period_duration),
    )

    if 'last_period_start' in values and values['last_period_start'] is not None:
        values['last_period_start'] = parse_date(values['last_period_start'])
    if 'reminder_days' in values:
        values['reminder_days'] = validate_reminder_days(values['reminder_days'])
    if 'notification_hour' in values:
        validate_notification_hour(values['notification_hour'])
    if 'timezone' in values:
        validate_timezone(values['timezone'])
    if 'fertile_window_reminders' in values:
        values['fertile_window_reminders'] = bool(values['fertile_window_reminders'])

    return values


# ============================================================================
# Profile CRUD Operations
# ============================================================================

def create_profile(
    subject_id: str,
    last_period_start: Optional[Any] = None,
    average_cycle_length: int = DEFAULT_CYCLE_LENGTH,
    period_duration: int = DEFAULT_PERIOD_DURATION,
    reminder_days: Optional[List[int]] = None,
    notification_hour: int = DEFAULT_NOTIFICATION_HOUR,
    timezone: str = DEFAULT_TIMEZONE,
    fertile_window_reminders: bool = False,
    session: Optional[Session] = None
) -> CycleProfile:
    """
    Create a cycle profile for a subject.

    Args:
        subject_id: Owning user ID
        last_period_start: Start of the most recent period
        average_cycle_length: Average cycle length in days (21-45)
        period_duration: Period duration in days (1-10)
        reminder_days: Offsets before the predicted period (default [3, 1])
        notification_hour: Local hour reminders fire at (0-23)
        timezone: Subject's IANA timezone
        fertile_window_reminders: Also remind about the fertile window
        session: Optional database session

    Returns:
        CycleProfile: Created profile, or the existing one for this subject

    Raises:
        InvalidCycleParametersError: If any setting is out of range
        InvalidDateError: If last_period_start cannot be parsed
    """
    validate_cycle_parameters(average_cycle_length, period_duration)
    validate_notification_hour(notification_hour)
    validate_timezone(timezone)
    offsets = validate_reminder_days(
        DEFAULT_REMINDER_DAYS if reminder_days is None else reminder_days
    )
    start = parse_date(last_period_start) if last_period_start is not None else None

    def _create(db: Session):
        existing = db.query(CycleProfile).filter_by(subject_id=subject_id).first()
        if existing:
            logger.warning(f"Profile for subject {subject_id} already exists")
            return _detach(db, existing)

        profile = CycleProfile(
            subject_id=subject_id,
            last_period_start=start,
            average_cycle_length=average_cycle_length,
            period_duration=period_duration,
            reminder_days=offsets,
            notification_hour=notification_hour,
            timezone=timezone,
            fertile_window_reminders=fertile_window_reminders,
            created_at=utcnow()
        )
        try:
            db.add(profile)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.error(f"Integrity error creating profile: {str(e)}")
            raise

        logger.info(f"Created cycle profile for subject {subject_id}")
        return _detach(db, profile)

    return _run(_create, session)


def get_profile(
    subject_id: str,
    session: Optional[Session] = None
) -> Optional[CycleProfile]:
    """
    Get a subject's cycle profile.

    Args:
        subject_id: Owning user ID
        session: Optional database session

    Returns:
        CycleProfile or None if not found
    """
    def _get(db: Session):
        try:
            profile = db.query(CycleProfile).filter_by(subject_id=subject_id).first()
            if profile is None:
                logger.debug(f"Profile not found: subject_id={subject_id}")
                return None
            return _detach(db, profile)
        except SQLAlchemyError as e:
            logger.error(f"Database error getting profile: {str(e)}")
            return None

    return _run(_get, session)


def require_profile(
    subject_id: str,
    session: Optional[Session] = None
) -> CycleProfile:
    """
    Get a subject's cycle profile or fail.

    Raises:
        ProfileNotFoundError: If the subject has no profile
    """
    profile = get_profile(subject_id, session=session)
    if profile is None:
        raise ProfileNotFoundError(f"No cycle profile for subject {subject_id}")
    return profile


def get_or_create_profile(
    subject_id: str,
    session: Optional[Session] = None
) -> CycleProfile:
    """Get the subject's profile, creating one with defaults if missing."""
    profile = get_profile(subject_id, session=session)
    if profile is not None:
        return profile
    return create_profile(subject_id, session=session)


def update_cycle_settings(
    subject_id: str,
    updates: Dict[str, Any],
    session: Optional[Session] = None
) -> CycleProfile:
    """
    Update cycle settings of a profile.

    Args:
        subject_id: Owning user ID
        updates: Fields to update (see SETTINGS_FIELDS); `cycle_history`
            replaces the logged history, keeping the newest 12 entries
        session: Optional database session

    Returns:
        CycleProfile: Updated profile

    Raises:
        ProfileNotFoundError: If the subject has no profile
        InvalidCycleParametersError: If a value is out of range
        InvalidDateError: If a date cannot be parsed
    """
    def _update(db: Session):
        profile = db.query(CycleProfile).filter_by(subject_id=subject_id).first()
        if profile is None:
            raise ProfileNotFoundError(f"No cycle profile for subject {subject_id}")

        values = _validated_settings(profile, updates)
        history = values.pop('cycle_history', None)

        try:
            for field, value in values.items():
                setattr(profile, field, value)

            if history is not None:
                entries = coerce_history(history)
                profile.history = [
                    CycleEntry(
                        start_date=entry.start_date,
                        length=entry.length,
                        recorded_at=entry.recorded_at or utcnow()
                    )
                    for entry in sorted(entries, key=lambda e: e.start_date)
                ]
                _evict_old_entries(profile)

            profile.updated_at = utcnow()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error updating profile: {str(e)}")
            raise

        logger.info(f"Updated cycle settings for subject {subject_id}: {sorted(values)}")
        return _detach(db, profile)

    return _run(_update, session)


def record_period_start(
    subject_id: str,
    start_date: Any,
    recorded_at: Optional[datetime] = None,
    session: Optional[Session] = None
) -> Tuple[CycleProfile, Optional[int]]:
    """
    Log the start of a period.

    Appends a history entry whose length is the number of days since the
    previous start, keeps the newest 12 entries and recomputes the average
    cycle length from the valid entries. Logging the current start date
    again changes nothing.

    Args:
        subject_id: Owning user ID
        start_date: First day of the new period
        recorded_at: When the entry was logged (defaults to now)
        session: Optional database session

    Returns:
        Tuple of (updated profile, length of the cycle that just ended or None)

    Raises:
        ProfileNotFoundError: If the subject has no profile
        InvalidDateError: If the date is invalid or earlier than the last start
    """
    start = parse_date(start_date)

    def _record(db: Session):
        profile = db.query(CycleProfile).filter_by(subject_id=subject_id).first()
        if profile is None:
            raise ProfileNotFoundError(f"No cycle profile for subject {subject_id}")

        previous = profile.last_period_start
        if previous is None and profile.history:
            previous = profile.history[-1].start_date

        cycle_length = None
        if previous is not None:
            if start < previous:
                raise InvalidDateError(
                    f"Period start {start} is earlier than the last recorded start {previous}"
                )
            if start == previous:
                logger.info(f"Period start {start} already recorded for subject {subject_id}")
                return _detach(db, profile), None
            cycle_length = days_between(previous, start)

        try:
            profile.history.append(CycleEntry(
                start_date=start,
                length=cycle_length,
                recorded_at=recorded_at or utcnow()
            ))
            _evict_old_entries(profile)

            profile.average_cycle_length = _average_from_history(
                profile.history, profile.average_cycle_length
            )
            profile.last_period_start = start
            profile.updated_at = utcnow()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error recording period start: {str(e)}")
            raise

        logger.info(
            f"Recorded period start {start} for subject {subject_id}: "
            f"cycle_length={cycle_length}, average={profile.average_cycle_length}"
        )
        return _detach(db, profile), cycle_length

    return _run(_record, session)


def delete_profile(
    subject_id: str,
    session: Optional[Session] = None
) -> bool:
    """
    Delete a profile and its history (cascading delete).

    Returns:
        bool: True if deleted, False if not found or on error
    """
    def _delete(db: Session):
        try:
            profile = db.query(CycleProfile).filter_by(subject_id=subject_id).first()
            if profile is None:
                logger.error(f"Profile for subject {subject_id} not found")
                return False

            db.delete(profile)
            db.commit()

            logger.info(f"Deleted cycle profile of subject {subject_id}")
            return True

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error deleting profile: {str(e)}")
            return False

    return _run(_delete, session)
