"""
Error taxonomy for the scheduling core.

"No availability" is never an error: it is an empty slot list. Only malformed
input, missing referenced entities and booking-time conflicts raise. Nothing
here is retried automatically; choosing another slot is the caller's decision.
"""

from typing import Any, Optional

from ..core.responses import ErrorCodes


class SchedulingError(Exception):
    """Base class. Carries a stable error code for the HTTP layer."""

    code = "SCHEDULING_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(SchedulingError):
    """Malformed date, time, duration, identifier or interval."""

    code = ErrorCodes.VALIDATION_ERROR


class NotFoundError(SchedulingError):
    """Unknown salon, service or explicitly requested stylist."""

    code = ErrorCodes.NOT_FOUND


class ScheduleConflictError(SchedulingError):
    """The requested slot is not valid under current schedule/closure data."""

    code = ErrorCodes.SLOT_UNAVAILABLE


class BookingConflictError(SchedulingError):
    """The slot overlaps an existing appointment; the user should pick another one."""

    code = ErrorCodes.BOOKING_CONFLICT


class ConfigurationError(SchedulingError):
    """
    Stored schedule data is malformed (e.g. an "open" row without times).

    Raised by providers; the availability service treats the affected day
    as closed instead of failing the request.
    """

    code = ErrorCodes.CONFIGURATION_ERROR
