"""
Core module - configuration, database and response formatting.

salon_booking.core.db is not imported here: it builds the engine on import,
so callers import it explicitly once settings are final.
"""
from .config import Settings, get_settings
from .responses import (
    ErrorDetail,
    ErrorResponse,
    ErrorCodes,
    error_response,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Responses
    "ErrorDetail",
    "ErrorResponse",
    "ErrorCodes",
    "error_response",
]
