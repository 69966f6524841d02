"""
CycleProfile model: per-subject cycle settings and reminder preferences.
"""

from sqlalchemy import Column, Integer, String, Date, Boolean, DateTime, JSON, CheckConstraint
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class CycleProfile(Base):
    """
    Model for storing a subject's cycle settings.
    """
    __tablename__ = 'cycle_profiles'

    # Primary key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Owning user, as known to the outer application
    subject_id = Column(String(64), unique=True, nullable=False, index=True)

    # Cycle parameters
    last_period_start = Column(Date, nullable=True)
    average_cycle_length = Column(Integer, default=28, nullable=False)
    period_duration = Column(Integer, default=5, nullable=False)

    # Reminder preferences
    reminder_days = Column(JSON, default=lambda: [3, 1], nullable=False)
    notification_hour = Column(Integer, default=9, nullable=False)
    timezone = Column(String(50), default='UTC', nullable=False)
    fertile_window_reminders = Column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    history = relationship(
        'CycleEntry',
        back_populates='profile',
        cascade='all, delete-orphan',
        order_by='CycleEntry.start_date',
        lazy='selectin'
    )

    # Constraints
    __table_args__ = (
        CheckConstraint(
            'average_cycle_length >= 21 AND average_cycle_length <= 45',
            name='check_average_cycle_length'
        ),
        CheckConstraint('period_duration >= 1 AND period_duration <= 10', name='check_period_duration'),
        CheckConstraint('notification_hour >= 0 AND notification_hour <= 23', name='check_notification_hour'),
    )

    def __repr__(self):
        """String representation of the CycleProfile model."""
        return (
            f"<CycleProfile(id={self.id}, "
            f"subject_id='{self.subject_id}', "
            f"last_period_start={self.last_period_start}, "
            f"average_cycle_length={self.average_cycle_length}, "
            f"period_duration={self.period_duration})>"
        )

    def has_cycle_data(self):
        """Check whether there is enough data to predict a cycle."""
        return bool(self.history) or self.last_period_start is not None

    def get_reminder_days(self):
        """Reminder offsets as a sorted, de-duplicated list (largest first)."""
        return sorted(set(self.reminder_days or []), reverse=True)

    def history_to_list(self):
        """Cycle history as JSON-ready dictionaries, oldest first."""
        return [entry.to_dict() for entry in self.history]
