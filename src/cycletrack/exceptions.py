"""
Error types raised by the cycle prediction and reminder core.

Validation errors are raised synchronously to the caller and never retried.
Delivery errors are isolated per reminder by the dispatcher; the reminder
stays unsent and is picked up again by the next sweep.
"""

from typing import Optional


class CycleTrackError(Exception):
    """Base class for all cycletrack errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidDateError(CycleTrackError, ValueError):
    """Unparseable or out-of-range date input."""

    status_code = 400


class InvalidCycleParametersError(CycleTrackError, ValueError):
    """Cycle length, period duration or reminder settings outside their domain."""

    status_code = 400


class IncompleteCycleDataError(CycleTrackError, ValueError):
    """Required cycle fields are missing."""

    status_code = 400


class ProfileNotFoundError(CycleTrackError):
    """No cycle profile is stored for the subject."""

    status_code = 404


class SchedulingError(CycleTrackError):
    """Reminders could not be generated because prediction failed upstream."""

    status_code = 422


class DeliveryError(CycleTrackError):
    """
    Delivery of a single reminder failed.

    Args:
        message: Human-readable reason
        reminder_id: ID of the reminder that failed, if known
        retryable: Whether a later sweep may succeed
    """

    def __init__(
        self,
        message: str,
        reminder_id: Optional[int] = None,
        retryable: bool = True
    ):
        super().__init__(message)
        self.reminder_id = reminder_id
        self.retryable = retryable
