"""
Booking configuration for slot calculation.
"""

from dataclasses import dataclass

from ..core.config import Settings, get_settings


# Grid step for candidate start times.
DEFAULT_SLOT_STEP_MINUTES = 15

# Fallback when a service or an appointment has no stored duration.
DEFAULT_DURATION_MINUTES = 30


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the availability engine.

    Attributes:
        slot_step_minutes: Distance between two candidate start times
        default_duration_minutes: Duration assumed for services/appointments
            stored without one
    """
    slot_step_minutes: int = DEFAULT_SLOT_STEP_MINUTES
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES

    def __post_init__(self):
        if self.slot_step_minutes <= 0:
            raise ValueError(f"slot_step_minutes must be positive, got {self.slot_step_minutes}")
        if self.default_duration_minutes <= 0:
            raise ValueError(
                f"default_duration_minutes must be positive, got {self.default_duration_minutes}"
            )

    def duration_or_default(self, duration_minutes: int | None) -> int:
        """Return the stored duration, or the configured fallback when it is missing."""
        if not duration_minutes:
            return self.default_duration_minutes
        return duration_minutes

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "BookingConfig":
        settings = settings or get_settings()
        return cls(
            slot_step_minutes=settings.slot_step_minutes,
            default_duration_minutes=settings.default_duration_minutes,
        )
