"""
CycleEntry model: one logged period start in a profile's history.
"""

from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class CycleEntry(Base):
    """
    Model for a logged period start.

    `length` is the number of days since the previous logged start and is
    NULL for the first entry of a profile.
    """
    __tablename__ = 'cycle_entries'

    # Primary key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Foreign key to profile
    profile_id = Column(
        Integer,
        ForeignKey('cycle_profiles.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )

    start_date = Column(Date, nullable=False, index=True)
    length = Column(Integer, nullable=True)
    recorded_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    profile = relationship('CycleProfile', back_populates='history')

    def __repr__(self):
        """String representation of the CycleEntry model."""
        return (
            f"<CycleEntry(id={self.id}, "
            f"profile_id={self.profile_id}, "
            f"start_date={self.start_date}, "
            f"length={self.length})>"
        )

    def to_dict(self):
        """JSON-ready representation."""
        return {
            'startDate': self.start_date.isoformat(),
            'length': self.length,
            'recordedAt': self.recorded_at.isoformat() if self.recorded_at else None,
        }
