"""
Base model for all SQLAlchemy models.
"""

from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

# Create base class for all models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form all DateTime columns are stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
