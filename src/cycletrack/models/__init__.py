"""
Models package.
Imports all SQLAlchemy models for easy access.
"""

from .base import Base, utcnow
from .cycle_profile import CycleProfile
from .cycle_entry import CycleEntry
from .reminder import Reminder
from .sweep_state import SweepState

# Export all models
__all__ = [
    'Base',
    'utcnow',
    'CycleProfile',
    'CycleEntry',
    'Reminder',
    'SweepState',
]
