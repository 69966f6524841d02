"""
Cycle prediction: next period date, ovulation, fertile window and the
upcoming period start dates.

Prediction uses a recency-weighted average of the logged cycle lengths and
falls back to the profile's average cycle length when the history has no
usable lengths. The luteal phase is treated as a fixed 14 days.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cycletrack.exceptions import IncompleteCycleDataError, InvalidCycleParametersError
from cycletrack.utils.date_math import (
    add_days,
    format_iso_date,
    parse_date,
    parse_datetime,
    whole_days,
)

logger = logging.getLogger(__name__)

MIN_CYCLE_LENGTH = 21
MAX_CYCLE_LENGTH = 45
MIN_PERIOD_DURATION = 1
MAX_PERIOD_DURATION = 10
DEFAULT_CYCLE_LENGTH = 28
DEFAULT_PERIOD_DURATION = 5

LUTEAL_PHASE_DAYS = 14
# Fertile window never opens before this cycle day
MIN_FERTILE_START_DAY = 8
UPCOMING_CYCLES_COUNT = 3


@dataclass
class CycleHistoryEntry:
    """
    One logged period start.

    Attributes:
        start_date: First day of the period
        length: Days since the previous logged start, None for the first entry
        recorded_at: When the entry was logged
    """

    start_date: date
    length: Optional[int] = None
    recorded_at: Optional[datetime] = None


@dataclass
class CyclePrediction:
    """
    Result of a cycle prediction.

    Attributes:
        last_period_start: Anchor date the prediction is counted from
        predicted_length: Predicted cycle length in days (may be fractional)
        next_period_start: Predicted start of the next period
        ovulation_day: Offset of ovulation from the anchor (predicted_length - 14)
        ovulation_date: Anchor plus the whole part of ovulation_day
        fertile_window: (first fertile day, last fertile day)
        upcoming_cycles: The next three predicted period starts
        used_history: True when the weighted history average was used
    """

    last_period_start: date
    predicted_length: float
    next_period_start: date
    ovulation_day: float
    ovulation_date: date
    fertile_window: Tuple[date, date]
    upcoming_cycles: List[date] = field(default_factory=list)
    used_history: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """JSON payload of the predict-cycle response."""
        return {
            "nextPeriodStart": format_iso_date(self.next_period_start),
            "fertileWindow": [format_iso_date(d) for d in self.fertile_window],
            "upcomingCycles": [format_iso_date(d) for d in self.upcoming_cycles],
            "ovulationDate": format_iso_date(self.ovulation_date),
            "predictedCycleLength": self.predicted_length,
        }


def validate_cycle_parameters(cycle_length: Any, period_duration: Any) -> None:
    """
    Check cycle length and period duration against their allowed ranges.

    Raises:
        InvalidCycleParametersError: If either value is outside its domain
    """
    if (
        isinstance(cycle_length, bool)
        or not isinstance(cycle_length, int)
        or not MIN_CYCLE_LENGTH <= cycle_length <= MAX_CYCLE_LENGTH
    ):
        raise InvalidCycleParametersError(
            f"Cycle length must be between {MIN_CYCLE_LENGTH} and {MAX_CYCLE_LENGTH} days, "
            f"got {cycle_length!r}"
        )
    if (
        isinstance(period_duration, bool)
        or not isinstance(period_duration, int)
        or not MIN_PERIOD_DURATION <= period_duration <= MAX_PERIOD_DURATION
    ):
        raise InvalidCycleParametersError(
            f"Period duration must be between {MIN_PERIOD_DURATION} and {MAX_PERIOD_DURATION} days, "
            f"got {period_duration!r}"
        )


def _entry_from_mapping(item: Dict[str, Any]) -> CycleHistoryEntry:
    start = item.get("startDate", item.get("start_date"))
    recorded = item.get("recordedAt", item.get("recorded_at"))
    if recorded is not None:
        recorded = parse_datetime(recorded)
    return CycleHistoryEntry(
        start_date=parse_date(start),
        length=item.get("length"),
        recorded_at=recorded,
    )


def coerce_history(items: Optional[Iterable[Any]]) -> List[CycleHistoryEntry]:
    """
    Normalize history items to CycleHistoryEntry, keeping their order.

    Accepts CycleHistoryEntry instances, ORM rows with start_date/length
    attributes, or JSON mappings with camelCase or snake_case keys.
    """
    if not items:
        return []

    entries = []
    for item in items:
        if isinstance(item, CycleHistoryEntry):
            entries.append(item)
        elif isinstance(item, dict):
            entries.append(_entry_from_mapping(item))
        else:
            entries.append(CycleHistoryEntry(
                start_date=parse_date(item.start_date),
                length=getattr(item, "length", None),
                recorded_at=getattr(item, "recorded_at", None),
            ))
    return entries


def _is_valid_length(length: Any) -> bool:
    return (
        length is not None
        and not isinstance(length, bool)
        and isinstance(length, (int, float))
        and length > 0
    )


def weighted_average_length(history: Iterable[Any]) -> Optional[float]:
    """
    Recency-weighted average cycle length.

    Entry i (1-based position, oldest first) has weight i. Entries without a
    positive length are skipped but keep their position.

    Returns:
        The weighted average, or None when no entry has a usable length
    """
    weighted_sum = 0.0
    weight_sum = 0
    for index, entry in enumerate(coerce_history(history), start=1):
        if not _is_valid_length(entry.length):
            continue
        weighted_sum += entry.length * index
        weight_sum += index

    if weight_sum == 0:
        return None
    return weighted_sum / weight_sum


def calculate_fertile_window(
    anchor: date,
    cycle_length: float
) -> Tuple[date, date]:
    """
    Fertile window counted from the period start.

    start = anchor + max(8, ovulation_day - 5)
    end   = anchor + min(cycle_length - 3, ovulation_day + 1)
    """
    ovulation_day = cycle_length - LUTEAL_PHASE_DAYS
    start_offset = max(MIN_FERTILE_START_DAY, ovulation_day - 5)
    end_offset = min(cycle_length - 3, ovulation_day + 1)
    return (
        add_days(anchor, whole_days(start_offset)),
        add_days(anchor, whole_days(end_offset)),
    )


def calculate_upcoming_cycles(
    next_period_start: date,
    cycle_length: float,
    count: int = UPCOMING_CYCLES_COUNT
) -> List[date]:
    """Consecutive predicted period starts beginning with next_period_start."""
    step = whole_days(cycle_length)
    return [add_days(next_period_start, step * i) for i in range(count)]


def predict_cycle(
    last_period_start: Optional[Any] = None,
    average_cycle_length: int = DEFAULT_CYCLE_LENGTH,
    period_duration: int = DEFAULT_PERIOD_DURATION,
    cycle_history: Optional[Iterable[Any]] = None
) -> CyclePrediction:
    """
    Predict the next period, ovulation and fertile window.

    Args:
        last_period_start: Start of the most recent period; used as the anchor
            when the history is empty
        average_cycle_length: Fallback cycle length (21-45)
        period_duration: Period duration in days (1-10)
        cycle_history: Logged period starts, oldest first

    Returns:
        CyclePrediction

    Raises:
        InvalidCycleParametersError: If length or duration are out of range
        IncompleteCycleDataError: If there is no anchor date at all
        InvalidDateError: If a supplied date cannot be parsed
    """
    validate_cycle_parameters(average_cycle_length, period_duration)

    history = coerce_history(cycle_history)
    weighted = weighted_average_length(history) if history else None

    if weighted is not None:
        predicted_length = weighted
    else:
        predicted_length = float(average_cycle_length)

    if history:
        anchor = history[-1].start_date
    elif last_period_start is not None:
        anchor = parse_date(last_period_start)
    else:
        raise IncompleteCycleDataError("Last period start date is required")

    if not MIN_CYCLE_LENGTH <= predicted_length <= MAX_CYCLE_LENGTH:
        logger.warning(f"Unusual predicted cycle length: {predicted_length:.2f} days")

    next_period_start = add_days(anchor, whole_days(predicted_length))
    ovulation_day = predicted_length - LUTEAL_PHASE_DAYS

    prediction = CyclePrediction(
        last_period_start=anchor,
        predicted_length=predicted_length,
        next_period_start=next_period_start,
        ovulation_day=ovulation_day,
        ovulation_date=add_days(anchor, whole_days(ovulation_day)),
        fertile_window=calculate_fertile_window(anchor, predicted_length),
        upcoming_cycles=calculate_upcoming_cycles(next_period_start, predicted_length),
        used_history=weighted is not None,
    )

    logger.debug(
        f"Predicted next period {next_period_start} "
        f"(length={predicted_length:.2f}, weighted={prediction.used_history})"
    )
    return prediction


def generate_recommendations(cycle_length: int, period_duration: int) -> List[str]:
    """
    Static lifestyle tips for the predict-cycle response.

    Returns:
        At most four tips, cycle-specific ones first
    """
    recommendations = []

    if cycle_length < 25:
        recommendations.append(
            "Your cycle is shorter than average - consider consulting a healthcare "
            "provider if this is a new pattern"
        )
    elif cycle_length > 35:
        recommendations.append(
            "Your cycle is longer than average - stress management and regular "
            "exercise may help regulate it"
        )

    if period_duration > 7:
        recommendations.append(
            "Heavy or long periods may benefit from iron-rich foods and medical consultation"
        )

    recommendations.extend([
        "Track your cycle regularly to identify patterns and improve predictions",
        "Stay hydrated and maintain a balanced diet rich in iron during your period",
        "Consider light exercise like yoga or walking to help with period symptoms",
        "Get adequate sleep (7-9 hours) to support hormonal balance throughout your cycle",
    ])
    return recommendations[:4]
