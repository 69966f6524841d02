"""
Request handlers.

Each handler takes a JSON-like body (camelCase keys) and returns a JSON-like
dictionary. Errors are raised as CycleTrackError subclasses;
`error_response` turns any exception into a status code and error body.
"""

from typing import Any, Dict, Tuple

from cycletrack.exceptions import CycleTrackError
from cycletrack.utils.logger import get_logger, log_error

logger = get_logger(__name__)


def error_response(exc: Exception) -> Tuple[int, Dict[str, Any]]:
    """
    Map an exception to a response.

    Args:
        exc: Exception raised by a handler

    Returns:
        Tuple of (status code, {"error": message}); unexpected errors are
        logged and reported as 500 without their details
    """
    if isinstance(exc, CycleTrackError):
        if exc.status_code >= 500:
            log_error(logger, "Handler failed", exc)
        return exc.status_code, {"error": exc.message}

    log_error(logger, "Unexpected handler error", exc)
    return 500, {"error": "Internal server error"}
