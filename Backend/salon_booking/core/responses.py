"""
Standardized API Response Module

Provides consistent error formatting across the booking endpoints.

RESPONSE FORMAT:
    Success responses are the endpoint's own Pydantic model.

    Error:
        {
            "error": {
                "code": "ERROR_CODE",
                "message": "Human-readable message",
                "details": {...}  # Optional extra context
            },
            "status": "error"
        }

ERROR CODES:
    - VALIDATION_ERROR: Malformed date, time, duration or interval
    - NOT_FOUND: Unknown salon, service or explicitly requested stylist
    - SLOT_UNAVAILABLE: Requested slot is not valid under current schedule data
    - BOOKING_CONFLICT: Slot was taken by a concurrent booking, choose another
    - CONFIGURATION_ERROR: Schedule data for the salon is malformed
"""

from typing import Any, Optional
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Structured error information."""
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Error envelope, used for OpenAPI documentation of error responses."""
    error: ErrorDetail
    status: str = "error"


# ============================================================================
# COMMON ERROR CODES
# ============================================================================

class ErrorCodes:
    """Standard error codes for API responses."""

    # Not found errors (404)
    NOT_FOUND = "NOT_FOUND"

    # Validation errors (422)
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Conflict errors (409)
    SLOT_UNAVAILABLE = "SLOT_UNAVAILABLE"
    BOOKING_CONFLICT = "BOOKING_CONFLICT"

    # Server errors (500)
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def error_response(
    code: str,
    message: str,
    details: Optional[dict] = None,
) -> dict:
    """
    Create a standardized error response dict.

    Use this for simple error responses.
    """
    response = {
        "error": {
            "code": code,
            "message": message,
        },
        "status": "error",
    }
    if details:
        response["error"]["details"] = details
    return response
