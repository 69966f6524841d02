"""
Handler for stateless cycle prediction requests.
"""

from typing import Any, Dict

from cycletrack.exceptions import IncompleteCycleDataError
from cycletrack.utils.cycle_calculator import (
    DEFAULT_CYCLE_LENGTH,
    DEFAULT_PERIOD_DURATION,
    generate_recommendations,
    predict_cycle,
)
from cycletrack.utils.logger import get_logger

logger = get_logger(__name__)


def predict_cycle_request(body: Dict[str, Any]) -> Dict[str, Any]:
    """
    Predict the next cycles from a single period start.

    Args:
        body: {lastPeriodStart: "YYYY-MM-DD", averageCycleLength?: int,
            periodDuration?: int, cycleHistory?: list}

    Returns:
        {nextPeriodStart, fertileWindow, upcomingCycles, ovulationDate,
        predictedCycleLength, recommendations}

    Raises:
        IncompleteCycleDataError: If lastPeriodStart is missing
        InvalidCycleParametersError: If length or duration are out of range
        InvalidDateError: If the date is malformed
    """
    body = body or {}
    if not body.get('lastPeriodStart'):
        raise IncompleteCycleDataError("Last period start date is required")

    cycle_length = body.get('averageCycleLength')
    if cycle_length is None:
        cycle_length = DEFAULT_CYCLE_LENGTH
    period_duration = body.get('periodDuration')
    if period_duration is None:
        period_duration = DEFAULT_PERIOD_DURATION

    prediction = predict_cycle(
        last_period_start=body['lastPeriodStart'],
        average_cycle_length=cycle_length,
        period_duration=period_duration,
        cycle_history=body.get('cycleHistory'),
    )

    response = prediction.to_dict()
    response['recommendations'] = generate_recommendations(
        round(prediction.predicted_length), period_duration
    )

    logger.info(f"Predicted next period {response['nextPeriodStart']}")
    return response
