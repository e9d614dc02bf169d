"""
Availability Aggregator

Computes the bookable slots for a salon, date and service, optionally
restricted to one stylist:

    for each candidate stylist:
        salon hours ∩ stylist hours      (schedule.resolve_day)
        -> fixed-step candidates         (slots.generate_slots)
        -> minus closures                (closures.filter_closures)
        -> minus existing appointments   (conflicts.has_conflict)
    union by start time, eligible stylists sorted by id

An empty list means "no availability"; it is not an error.
"""

import logging
from datetime import date, datetime
from typing import Optional

from ..tenancy.context import SalonId, StylistId
from .cache import CachedBusinessHours, CachedStylistSchedules, ScheduleCache
from .closures import ClosureWindow, filter_closures
from .config import BookingConfig
from .conflicts import has_conflict
from .entities import ServiceInfo, StylistInfo
from .errors import ConfigurationError, NotFoundError
from .intervals import DayInterval
from .providers import (
    AppointmentRepository,
    BusinessHoursProvider,
    ClosureProvider,
    SalonDirectory,
    ServiceCatalog,
    StylistScheduleProvider,
)
from .schedule import CLOSED, UNAVAILABLE, BusinessDay, StylistDay, resolve_day
from .slots import Slot, generate_slots


logger = logging.getLogger(__name__)


async def load_business_day(
    provider: BusinessHoursProvider, salon_id: SalonId, day: date
) -> BusinessDay:
    """Salon hours for `day`; malformed rows are logged and read as CLOSED."""
    try:
        return await provider.get_day(salon_id, day.weekday())
    except ConfigurationError as exc:
        logger.warning("Salon %s has malformed hours for %s, treating as closed: %s", salon_id, day, exc)
        return CLOSED


async def load_stylist_day(
    provider: StylistScheduleProvider, stylist_id: StylistId, day: date
) -> StylistDay:
    """Stylist hours for `day`; malformed rows are logged and read as UNAVAILABLE."""
    try:
        return await provider.get_day(stylist_id, day.weekday())
    except ConfigurationError as exc:
        logger.warning(
            "Stylist %s has a malformed schedule for %s, treating as unavailable: %s", stylist_id, day, exc
        )
        return UNAVAILABLE


class AvailabilityService:
    """
    Read-only availability queries.

    Args:
        directory: Salons and stylists
        services: Service catalog (durations)
        business_hours: Salon opening hours per weekday
        stylist_schedules: Stylist working hours per weekday
        closures: Exceptional closures per date
        appointments: Existing appointments
        config: Slot step and default duration
        cache: Optional ScheduleCache; weekly schedules are read through it
    """

    def __init__(
        self,
        directory: SalonDirectory,
        services: ServiceCatalog,
        business_hours: BusinessHoursProvider,
        stylist_schedules: StylistScheduleProvider,
        closures: ClosureProvider,
        appointments: AppointmentRepository,
        config: Optional[BookingConfig] = None,
        cache: Optional[ScheduleCache] = None,
    ):
        self.directory = directory
        self.services = services
        self.closures = closures
        self.appointments = appointments
        self.config = config or BookingConfig()
        self.cache = cache
        if cache is not None:
            business_hours = CachedBusinessHours(business_hours, cache)
            stylist_schedules = CachedStylistSchedules(stylist_schedules, cache)
        self.business_hours = business_hours
        self.stylist_schedules = stylist_schedules

    async def compute_availability(
        self,
        salon_id: SalonId,
        day: date,
        service_id: str,
        stylist_id: Optional[StylistId] = None,
        now: Optional[datetime] = None,
    ) -> list[Slot]:
        """
        Bookable slots on `day`, ascending by start time.

        Raises:
            NotFoundError: unknown salon, service, or requested stylist
        """
        if not await self.directory.salon_exists(salon_id):
            raise NotFoundError("Salon not found", {"salon_id": salon_id})

        service = await self.services.get_service(salon_id, service_id)
        candidates = await self._candidate_stylists(salon_id, stylist_id)
        if not candidates:
            return []

        now = now or datetime.now()
        business = await load_business_day(self.business_hours, salon_id, day)
        if business is CLOSED:
            logger.debug("Salon %s closed on %s", salon_id, day)
            return []

        closures = await self.closures.get_for_date(salon_id, day)

        merged: dict[datetime, tuple[datetime, set[StylistId]]] = {}
        for stylist in candidates:
            for slot in await self._slots_for_stylist(stylist, business, day, service, closures, now):
                end_at, eligible = merged.setdefault(slot.start_at, (slot.end_at, set()))
                eligible.add(stylist.id)

        result = [
            Slot(start_at=start_at, end_at=end_at, eligible_stylist_ids=tuple(sorted(eligible)))
            for start_at, (end_at, eligible) in sorted(merged.items())
        ]
        logger.debug(
            "Availability salon=%s day=%s service=%s stylist=%s -> %d slots",
            salon_id, day, service.id, stylist_id, len(result),
        )
        return result

    async def _candidate_stylists(
        self, salon_id: SalonId, stylist_id: Optional[StylistId]
    ) -> list[StylistInfo]:
        if stylist_id is None:
            stylists = await self.directory.list_active_stylists(salon_id)
            return sorted(stylists, key=lambda s: s.id)

        stylist = await self.directory.get_stylist(stylist_id)
        if stylist is None or stylist.salon_id != salon_id:
            raise NotFoundError("Stylist not found", {"stylist_id": stylist_id})
        if not stylist.active:
            return []
        return [stylist]

    async def _slots_for_stylist(
        self,
        stylist: StylistInfo,
        business: BusinessDay,
        day: date,
        service: ServiceInfo,
        closures: list[ClosureWindow],
        now: datetime,
    ) -> list[Slot]:
        stylist_day = await load_stylist_day(self.stylist_schedules, stylist.id, day)
        intervals: list[DayInterval] = resolve_day(business, stylist_day)
        if not intervals:
            return []

        candidates = generate_slots(
            day,
            intervals,
            self.config.duration_or_default(service.duration_minutes),
            self.config.slot_step_minutes,
            not_before=now,
            stylist_id=stylist.id,
        )
        open_slots = filter_closures(candidates, closures, stylist.id)
        if not open_slots:
            return []

        existing = await self.appointments.get_active_for_stylist_on_date(stylist.id, day)
        return [
            slot
            for slot in open_slots
            if not has_conflict(slot, existing, stylist.id, self.config.default_duration_minutes)
        ]
