"""
Classification of a calendar day into a menstrual cycle phase.

Two policies are supported and must be chosen explicitly by the caller:

- RELATIVE_DAY: boundaries derived from the cycle length and period duration
  (ovulation at cycle_length - 14).
- FIXED_BUCKET: fixed day ranges (0-5, 6-13, 14-15, 16-28, 29+) independent of
  the period duration.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from cycletrack.exceptions import (
    IncompleteCycleDataError,
    InvalidCycleParametersError,
    InvalidDateError,
)
from cycletrack.utils.cycle_calculator import DEFAULT_PERIOD_DURATION, LUTEAL_PHASE_DAYS
from cycletrack.utils.date_math import days_between, parse_date

logger = logging.getLogger(__name__)


class CyclePhase(str, Enum):
    MENSTRUAL = "menstrual"
    FOLLICULAR = "follicular"
    OVULATORY = "ovulatory"
    LUTEAL = "luteal"
    PREMENSTRUAL = "premenstrual"


class PhaseStrategy(str, Enum):
    RELATIVE_DAY = "relative_day"
    FIXED_BUCKET = "fixed_bucket"


@dataclass
class PhaseInfo:
    """Phase of a day and its 1-indexed position in the cycle."""

    phase: CyclePhase
    day_of_cycle: int
    strategy: PhaseStrategy

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "dayOfCycle": self.day_of_cycle,
            "strategy": self.strategy.value,
        }


def classify_relative_day(cycle_day: int, cycle_length: int, period_duration: int) -> CyclePhase:
    """Phase of a 0-indexed cycle day under the relative-day policy."""
    ovulation_day = cycle_length - LUTEAL_PHASE_DAYS

    if cycle_day < period_duration:
        return CyclePhase.MENSTRUAL
    if cycle_day < max(ovulation_day - 1, period_duration):
        return CyclePhase.FOLLICULAR
    if cycle_day <= ovulation_day + 1:
        return CyclePhase.OVULATORY
    return CyclePhase.LUTEAL


def classify_fixed_bucket(cycle_day: int) -> CyclePhase:
    """Phase of a 0-indexed cycle day under the fixed-bucket policy."""
    if cycle_day <= 5:
        return CyclePhase.MENSTRUAL
    if cycle_day <= 13:
        return CyclePhase.FOLLICULAR
    if cycle_day <= 15:
        return CyclePhase.OVULATORY
    if cycle_day <= 28:
        return CyclePhase.LUTEAL
    return CyclePhase.PREMENSTRUAL


def classify_phase(
    today: Any,
    last_period_start: Optional[Any],
    cycle_length: Optional[int],
    period_duration: int = DEFAULT_PERIOD_DURATION,
    strategy: PhaseStrategy = PhaseStrategy.RELATIVE_DAY
) -> PhaseInfo:
    """
    Classify `today` into a cycle phase.

    Args:
        today: Day to classify
        last_period_start: Start of the most recent period
        cycle_length: Cycle length in days
        period_duration: Period duration in days (relative-day policy only)
        strategy: Classification policy

    Returns:
        PhaseInfo with a 1-indexed day_of_cycle

    Raises:
        IncompleteCycleDataError: If last_period_start is missing or invalid,
            or cycle_length is missing
        InvalidCycleParametersError: If cycle_length or period_duration is not positive
    """
    if last_period_start is None or cycle_length is None:
        raise IncompleteCycleDataError("Cycle info incomplete: last period start and cycle length are required")

    try:
        start = parse_date(last_period_start)
    except InvalidDateError as e:
        raise IncompleteCycleDataError(f"Cycle info incomplete: {e.message}") from e

    if isinstance(cycle_length, bool) or not isinstance(cycle_length, int) or cycle_length <= 0:
        raise InvalidCycleParametersError(f"Cycle length must be a positive integer, got {cycle_length!r}")

    strategy = PhaseStrategy(strategy)
    days_since = days_between(start, parse_date(today))
    # Python's modulo is non-negative for a positive divisor, so days before
    # the recorded start wrap into the previous cycle
    cycle_day = days_since % cycle_length

    if strategy is PhaseStrategy.RELATIVE_DAY:
        if isinstance(period_duration, bool) or not isinstance(period_duration, int) or period_duration <= 0:
            raise InvalidCycleParametersError(
                f"Period duration must be a positive integer, got {period_duration!r}"
            )
        phase = classify_relative_day(cycle_day, cycle_length, period_duration)
    else:
        phase = classify_fixed_bucket(cycle_day)

    logger.debug(f"Cycle day {cycle_day + 1} classified as {phase.value} ({strategy.value})")
    return PhaseInfo(phase=phase, day_of_cycle=cycle_day + 1, strategy=strategy)
