"""
In-process implementation of the scheduling providers.

Used by the test-suite and for local experiments without a database. All
providers share one MemoryStore; the appointment repository serialises its
check-then-insert with an asyncio.Lock, so concurrent bookings in one event
loop behave like the row-locked SQL path.

Usage:
    store = MemoryStore()
    store.add_salon("s1")
    store.set_salon_hours("s1", 0, ("09:00", "12:00"), ("13:00", "18:00"))
    service = AvailabilityService(**store.providers())
"""

import asyncio
import logging
from datetime import date
from typing import Optional, Union
from uuid import uuid4

from ..tenancy.context import SalonId, StylistId
from .closures import ClosureWindow
from .conflicts import conflicting_appointments
from .config import DEFAULT_DURATION_MINUTES
from .entities import Appointment, AppointmentStatus, InsertConflict, NewAppointment, ServiceInfo, StylistInfo
from .errors import NotFoundError
from .schedule import CLOSED, UNAVAILABLE, BusinessDay, OpenDay, StylistDay


logger = logging.getLogger(__name__)


class MemoryStore:
    def __init__(self, default_duration: int = DEFAULT_DURATION_MINUTES):
        self.default_duration = default_duration
        self.salons: dict[SalonId, str] = {}
        self.stylists: dict[StylistId, StylistInfo] = {}
        self.services: dict[tuple[SalonId, str], ServiceInfo] = {}
        self.salon_hours: dict[tuple[SalonId, int], BusinessDay] = {}
        self.stylist_hours: dict[tuple[StylistId, int], StylistDay] = {}
        self.closures: list[tuple[SalonId, ClosureWindow]] = []
        self.appointments: list[Appointment] = []
        self.lock = asyncio.Lock()

    # ── Fixtures ─────────────────────────────────────────────────────

    def add_salon(self, salon_id: SalonId, name: str = "") -> None:
        self.salons[salon_id] = name

    def add_stylist(self, salon_id: SalonId, stylist_id: StylistId, name: str = "", active: bool = True) -> None:
        self.stylists[stylist_id] = StylistInfo(id=stylist_id, salon_id=salon_id, name=name, active=active)

    def add_service(self, salon_id: SalonId, service_id: str, duration_minutes: Optional[int] = None) -> None:
        self.services[(salon_id, service_id)] = ServiceInfo(id=service_id, duration_minutes=duration_minutes)

    def set_salon_hours(self, salon_id: SalonId, weekday: int, *spans: tuple[str, str]) -> None:
        self.salon_hours[(salon_id, weekday)] = OpenDay.of(*spans) if spans else CLOSED

    def set_stylist_hours(self, stylist_id: StylistId, weekday: int, *spans: tuple[str, str]) -> None:
        self.stylist_hours[(stylist_id, weekday)] = OpenDay.of(*spans) if spans else UNAVAILABLE

    def add_closure(self, salon_id: SalonId, closure: ClosureWindow) -> None:
        self.closures.append((salon_id, closure))

    def add_appointment(self, appointment: Appointment) -> None:
        self.appointments.append(appointment)

    def providers(self) -> dict:
        """Keyword arguments for AvailabilityService / BookingService."""
        return {
            "directory": MemoryDirectory(self),
            "services": MemoryServiceCatalog(self),
            "business_hours": MemoryBusinessHours(self),
            "stylist_schedules": MemoryStylistSchedules(self),
            "closures": MemoryClosures(self),
            "appointments": MemoryAppointments(self),
        }


class MemoryDirectory:
    def __init__(self, store: MemoryStore):
        self.store = store

    async def salon_exists(self, salon_id: SalonId) -> bool:
        return salon_id in self.store.salons

    async def get_stylist(self, stylist_id: StylistId) -> Optional[StylistInfo]:
        return self.store.stylists.get(stylist_id)

    async def list_active_stylists(self, salon_id: SalonId) -> list[StylistInfo]:
        return [s for s in self.store.stylists.values() if s.salon_id == salon_id and s.active]

    async def list_stylists(self, salon_id: SalonId) -> list[StylistInfo]:
        return sorted((s for s in self.store.stylists.values() if s.salon_id == salon_id), key=lambda s: s.id)


class MemoryServiceCatalog:
    def __init__(self, store: MemoryStore):
        self.store = store

    async def get_service(self, salon_id: SalonId, service_id: str) -> ServiceInfo:
        service = self.store.services.get((salon_id, service_id))
        if service is None:
            raise NotFoundError("Service not found", {"service_id": service_id})
        return service


class MemoryBusinessHours:
    def __init__(self, store: MemoryStore):
        self.store = store
        self.calls = 0

    async def get_day(self, salon_id: SalonId, weekday: int) -> BusinessDay:
        self.calls += 1
        return self.store.salon_hours.get((salon_id, weekday), CLOSED)


class MemoryStylistSchedules:
    def __init__(self, store: MemoryStore):
        self.store = store
        self.calls = 0

    async def get_day(self, stylist_id: StylistId, weekday: int) -> StylistDay:
        self.calls += 1
        return self.store.stylist_hours.get((stylist_id, weekday), UNAVAILABLE)


class MemoryClosures:
    def __init__(self, store: MemoryStore):
        self.store = store

    async def get_for_date(self, salon_id: SalonId, day: date) -> list[ClosureWindow]:
        return [c for owner, c in self.store.closures if owner == salon_id and c.date == day]


class MemoryAppointments:
    def __init__(self, store: MemoryStore):
        self.store = store

    async def get_active_for_stylist_on_date(self, stylist_id: StylistId, day: date) -> list[Appointment]:
        return [
            a for a in self.store.appointments
            if a.stylist_id == stylist_id and a.day == day and a.is_active
        ]

    async def insert_if_no_conflict(self, new: NewAppointment) -> Union[Appointment, InsertConflict]:
        async with self.store.lock:
            existing = await self.get_active_for_stylist_on_date(new.stylist_id, new.start_at.date())
            # Yield while holding the lock, as a storage round-trip would
            await asyncio.sleep(0)
            clashes = conflicting_appointments(
                new.start_at, new.end_at, existing, (new.stylist_id,), self.store.default_duration
            )
            if clashes:
                logger.info("Insert refused for stylist %s at %s", new.stylist_id, new.start_at)
                return InsertConflict(tuple(a.id for a in clashes))

            appointment = Appointment(
                id=uuid4().hex,
                stylist_id=new.stylist_id,
                start_at=new.start_at,
                duration_minutes=new.duration_minutes,
                status=AppointmentStatus.SCHEDULED,
                salon_id=new.salon_id,
                service_id=new.service_id,
                client_id=new.client_id,
            )
            self.store.appointments.append(appointment)
            return appointment
