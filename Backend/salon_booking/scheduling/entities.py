"""
Read-side snapshots handed to the scheduling core by its providers.

These are plain frozen dataclasses, detached from any ORM session, so the core
functions stay pure and can be shared across threads and requests.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from ..tenancy.context import SalonId, StylistId
from .config import DEFAULT_DURATION_MINUTES


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ServiceInfo:
    id: str
    duration_minutes: Optional[int] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class StylistInfo:
    id: StylistId
    salon_id: SalonId
    name: str = ""
    active: bool = True


@dataclass(frozen=True)
class Appointment:
    id: str
    stylist_id: StylistId
    start_at: datetime
    duration_minutes: Optional[int] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    salon_id: Optional[SalonId] = None
    service_id: Optional[str] = None
    client_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        """Only non-cancelled appointments block a stylist's time."""
        return self.status != AppointmentStatus.CANCELLED

    @property
    def day(self) -> date:
        return self.start_at.date()

    def end_at(self, default_duration: int = DEFAULT_DURATION_MINUTES) -> datetime:
        return self.start_at + timedelta(minutes=self.duration_minutes or default_duration)


@dataclass(frozen=True)
class NewAppointment:
    """Appointment about to be inserted by the booking transaction."""

    salon_id: SalonId
    stylist_id: StylistId
    service_id: str
    client_id: str
    start_at: datetime
    duration_minutes: int

    @property
    def end_at(self) -> datetime:
        return self.start_at + timedelta(minutes=self.duration_minutes)


@dataclass(frozen=True)
class InsertConflict:
    """Returned by the repository when the atomic insert found an overlap."""

    conflicting_appointment_ids: tuple[str, ...] = ()
