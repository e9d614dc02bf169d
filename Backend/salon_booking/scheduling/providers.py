"""
Collaborator interfaces the scheduling core depends on.

Weekdays follow Python's date.weekday() convention (0 = Monday ... 6 = Sunday).
Implementations live in sql_store (SQLAlchemy) and memory_store (in-process).
"""

from datetime import date
from typing import Optional, Protocol, Union

from ..tenancy.context import SalonId, StylistId
from .closures import ClosureWindow
from .entities import Appointment, InsertConflict, NewAppointment, ServiceInfo, StylistInfo
from .schedule import BusinessDay, StylistDay


class BusinessHoursProvider(Protocol):
    async def get_day(self, salon_id: SalonId, weekday: int) -> BusinessDay:
        """Opening intervals of the salon, or CLOSED. May raise ConfigurationError."""
        ...


class StylistScheduleProvider(Protocol):
    async def get_day(self, stylist_id: StylistId, weekday: int) -> StylistDay:
        """Working intervals of the stylist, or UNAVAILABLE. May raise ConfigurationError."""
        ...


class ClosureProvider(Protocol):
    async def get_for_date(self, salon_id: SalonId, day: date) -> list[ClosureWindow]:
        ...


class AppointmentRepository(Protocol):
    async def get_active_for_stylist_on_date(self, stylist_id: StylistId, day: date) -> list[Appointment]:
        """Non-cancelled appointments of the stylist starting on `day`."""
        ...

    async def insert_if_no_conflict(self, new: NewAppointment) -> Union[Appointment, InsertConflict]:
        """
        Atomically re-check overlap for new.stylist_id and insert.

        No two concurrent calls for the same stylist may both succeed with
        overlapping ranges.
        """
        ...


class ServiceCatalog(Protocol):
    async def get_service(self, salon_id: SalonId, service_id: str) -> ServiceInfo:
        """Raises NotFoundError for unknown services or services of another salon."""
        ...


class SalonDirectory(Protocol):
    async def salon_exists(self, salon_id: SalonId) -> bool:
        ...

    async def get_stylist(self, stylist_id: StylistId) -> Optional[StylistInfo]:
        ...

    async def list_active_stylists(self, salon_id: SalonId) -> list[StylistInfo]:
        ...

    async def list_stylists(self, salon_id: SalonId) -> list[StylistInfo]:
        """All stylists of the salon, inactive ones included."""
        ...
