"""
Reminder store: the repository every reminder component is given.

`ReminderStore` is the interface; `SQLAlchemyReminderStore` implements it on
top of a DatabaseSession. All returned Reminder objects are detached from
their session.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from cycletrack.database.session import DatabaseSession, get_default_session
from cycletrack.models.reminder import Reminder
from cycletrack.models.sweep_state import SweepState
from cycletrack.utils.logger import get_logger, log_database_operation

logger = get_logger(__name__)


def _category_values(categories: Optional[Iterable]) -> Optional[List[str]]:
    if categories is None:
        return None
    return [getattr(c, 'value', c) for c in categories]


class ReminderStore(Protocol):
    """Operations the scheduler, dispatcher and handlers need from storage."""

    def find_by_subject(
        self,
        subject_id: str,
        categories: Optional[Iterable] = None,
        include_sent: bool = True
    ) -> List[Reminder]: ...

    def find_upcoming(self, subject_id: str, now: datetime, limit: Optional[int] = None) -> List[Reminder]: ...

    def upsert(self, reminder: Reminder) -> Reminder: ...

    def delete_many(
        self,
        subject_id: Optional[str] = None,
        categories: Optional[Iterable] = None,
        sent: Optional[bool] = None,
        sent_before: Optional[datetime] = None
    ) -> int: ...

    def replace_pending(
        self,
        subject_id: str,
        categories: Iterable,
        reminders: List[Reminder]
    ) -> List[Reminder]: ...

    def find_due(self, now: datetime, limit: Optional[int] = None) -> List[Reminder]: ...

    def mark_sent(self, reminder_id: int, sent_at: datetime) -> bool: ...

    def get_last_run(self, name: str) -> Optional[datetime]: ...

    def set_last_run(self, name: str, at: datetime) -> None: ...


class SQLAlchemyReminderStore:
    """
    ReminderStore backed by SQLAlchemy.

    Args:
        database: Session manager to run queries in; defaults to the
            configured application database
    """

    def __init__(self, database: Optional[DatabaseSession] = None):
        self.database = database or get_default_session()

    def find_by_subject(
        self,
        subject_id: str,
        categories: Optional[Iterable] = None,
        include_sent: bool = True
    ) -> List[Reminder]:
        """
        Reminders of a subject ordered by due time.

        Args:
            subject_id: Owning subject
            categories: Restrict to these categories
            include_sent: Include already delivered reminders
        """
        stmt = select(Reminder).where(Reminder.subject_id == subject_id)
        values = _category_values(categories)
        if values is not None:
            stmt = stmt.where(Reminder.category.in_(values))
        if not include_sent:
            stmt = stmt.where(Reminder.sent.is_(False))
        stmt = stmt.order_by(Reminder.due_at, Reminder.id)

        with self.database.get_session() as session:
            reminders = list(session.scalars(stmt))
            session.expunge_all()
        return reminders

    def find_upcoming(self, subject_id: str, now: datetime, limit: Optional[int] = None) -> List[Reminder]:
        """Unsent reminders of a subject due at or after `now`, soonest first."""
        stmt = (
            select(Reminder)
            .where(
                Reminder.subject_id == subject_id,
                Reminder.sent.is_(False),
                Reminder.due_at >= now
            )
            .order_by(Reminder.due_at, Reminder.id)
        )
        if limit:
            stmt = stmt.limit(limit)

        with self.database.get_session() as session:
            reminders = list(session.scalars(stmt))
            session.expunge_all()
        return reminders

    def upsert(self, reminder: Reminder) -> Reminder:
        """Insert a new reminder or update an existing one by ID."""
        with self.database.get_session() as session:
            merged = session.merge(reminder)
            session.flush()
            session.refresh(merged)
            session.expunge(merged)

        log_database_operation(logger, 'upsert', Reminder.__tablename__, True, subject_id=merged.subject_id)
        return merged

    def delete_many(
        self,
        subject_id: Optional[str] = None,
        categories: Optional[Iterable] = None,
        sent: Optional[bool] = None,
        sent_before: Optional[datetime] = None
    ) -> int:
        """
        Delete reminders matching all given filters.

        Returns:
            Number of deleted reminders
        """
        stmt = delete(Reminder)
        if subject_id is not None:
            stmt = stmt.where(Reminder.subject_id == subject_id)
        values = _category_values(categories)
        if values is not None:
            stmt = stmt.where(Reminder.category.in_(values))
        if sent is not None:
            stmt = stmt.where(Reminder.sent.is_(sent))
        if sent_before is not None:
            stmt = stmt.where(Reminder.sent_at < sent_before)

        with self.database.get_session() as session:
            deleted = session.execute(stmt.execution_options(synchronize_session=False)).rowcount

        log_database_operation(logger, 'delete', Reminder.__tablename__, True, subject_id=subject_id)
        return deleted or 0

    def replace_pending(
        self,
        subject_id: str,
        categories: Iterable,
        reminders: List[Reminder]
    ) -> List[Reminder]:
        """
        Replace a subject's unsent reminders of `categories` with `reminders`.

        Delete and insert run in one transaction, so readers see either the
        old set or the new one.

        Returns:
            The inserted reminders
        """
        values = _category_values(categories)
        stmt = (
            delete(Reminder)
            .where(
                Reminder.subject_id == subject_id,
                Reminder.category.in_(values),
                Reminder.sent.is_(False)
            )
            .execution_options(synchronize_session=False)
        )

        try:
            with self.database.get_session() as session:
                removed = session.execute(stmt).rowcount
                session.add_all(reminders)
                session.flush()
                for reminder in reminders:
                    session.refresh(reminder)
                session.expunge_all()
        except SQLAlchemyError:
            log_database_operation(logger, 'replace', Reminder.__tablename__, False, subject_id=subject_id)
            raise

        logger.info(
            f"Replaced {removed or 0} pending reminders of subject {subject_id} "
            f"with {len(reminders)} new"
        )
        return reminders

    def find_due(self, now: datetime, limit: Optional[int] = None) -> List[Reminder]:
        """Unsent reminders with due_at <= now, oldest first."""
        stmt = (
            select(Reminder)
            .where(Reminder.sent.is_(False), Reminder.due_at <= now)
            .order_by(Reminder.due_at, Reminder.id)
        )
        if limit:
            stmt = stmt.limit(limit)

        with self.database.get_session() as session:
            reminders = list(session.scalars(stmt))
            session.expunge_all()
        return reminders

    def mark_sent(self, reminder_id: int, sent_at: datetime) -> bool:
        """
        Flip a reminder to sent.

        Only an unsent reminder is updated, so a reminder is marked exactly
        once even if two sweeps race.

        Returns:
            True if this call marked the reminder
        """
        stmt = (
            update(Reminder)
            .where(Reminder.id == reminder_id, Reminder.sent.is_(False))
            .values(sent=True, sent_at=sent_at)
            .execution_options(synchronize_session=False)
        )
        with self.database.get_session() as session:
            updated = session.execute(stmt).rowcount
        return updated == 1

    def get_last_run(self, name: str) -> Optional[datetime]:
        """Last recorded run of a maintenance task."""
        with self.database.get_session() as session:
            state = session.get(SweepState, name)
            return state.last_run_at if state else None

    def set_last_run(self, name: str, at: datetime) -> None:
        """Record the run time of a maintenance task."""
        with self.database.get_session() as session:
            session.merge(SweepState(name=name, last_run_at=at))
