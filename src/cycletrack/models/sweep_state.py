"""
SweepState model: persisted timestamps of periodic maintenance tasks.
"""

from sqlalchemy import Column, String, DateTime

from .base import Base


class SweepState(Base):
    """
    Last run time of a named maintenance task (for example 'purge').
    """
    __tablename__ = 'sweep_state'

    name = Column(String(50), primary_key=True)
    last_run_at = Column(DateTime, nullable=False)

    def __repr__(self):
        """String representation of the SweepState model."""
        return f"<SweepState(name='{self.name}', last_run_at={self.last_run_at})>"
