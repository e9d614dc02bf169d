"""
Stylist Selector & Booking Transaction

Booking re-validates a requested slot against fresh provider data (never the
schedule cache), then hands the insert to the repository, whose
insert_if_no_conflict re-checks overlap and inserts atomically. Two clients
racing for the same stylist and time therefore cannot both succeed: the loser
gets a BookingConflictError and picks another slot.

Re-check outcomes:
    salon closed / stylist not working / slot outside hours / closure  -> ScheduleConflictError
    slot in the past                                                   -> ScheduleConflictError
    slot crossing midnight                                             -> ValidationError
    overlap with an existing appointment (before or during insert)     -> BookingConflictError
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional, Sequence

from ..tenancy.context import SalonId, StylistId
from .availability import load_business_day, load_stylist_day
from .closures import ClosureWindow, is_closed
from .config import BookingConfig
from .conflicts import conflicting_appointments
from .entities import Appointment, InsertConflict, NewAppointment, StylistInfo
from .errors import BookingConflictError, NotFoundError, ScheduleConflictError, ValidationError
from .intervals import DayInterval, fits_within, interval_of
from .providers import (
    AppointmentRepository,
    BusinessHoursProvider,
    ClosureProvider,
    SalonDirectory,
    ServiceCatalog,
    StylistScheduleProvider,
)
from .schedule import CLOSED, UNAVAILABLE, BusinessDay, OpenDay, resolve_day


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StylistCandidate:
    """A stylist able to take the requested slot, with their resolved hours that day."""

    stylist_id: StylistId
    intervals: tuple[DayInterval, ...]

    @property
    def shift_start(self) -> int:
        return self.intervals[0].start


SelectionPolicy = Callable[[Sequence[StylistCandidate]], Optional[StylistId]]


def earliest_shift_start(candidates: Sequence[StylistCandidate]) -> Optional[StylistId]:
    """
    Prefer the stylist whose working day starts earliest; ties go to the
    smallest stylist id so the choice is deterministic.
    """
    if not candidates:
        return None
    return min(candidates, key=lambda c: (c.shift_start, c.stylist_id)).stylist_id


class BookingService:
    """
    Stylist selection and race-safe booking.

    Reads go straight to the providers on every call; pass uncached providers.
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
        policy: SelectionPolicy = earliest_shift_start,
    ):
        self.directory = directory
        self.services = services
        self.business_hours = business_hours
        self.stylist_schedules = stylist_schedules
        self.closures = closures
        self.appointments = appointments
        self.config = config or BookingConfig()
        self.policy = policy

    # ────────────────────────────────────────────────────────────────
    # Selection
    # ────────────────────────────────────────────────────────────────

    async def select_stylist(
        self,
        salon_id: SalonId,
        day: date,
        start_at: datetime,
        duration_minutes: int,
        candidate_stylist_ids: Optional[Iterable[StylistId]] = None,
    ) -> Optional[StylistId]:
        """
        Pick a stylist who can take [start_at, start_at + duration) on `day`.

        Returns None when nobody fits. Candidates default to every active
        stylist of the salon; unknown, inactive or foreign candidates are skipped.
        """
        if not await self.directory.salon_exists(salon_id):
            raise NotFoundError("Salon not found", {"salon_id": salon_id})
        if start_at.date() != day:
            raise ValidationError(
                "start time must fall on the requested date",
                {"date": day.isoformat(), "start_at": start_at.isoformat()},
            )
        window = interval_of(start_at, duration_minutes)

        business = await load_business_day(self.business_hours, salon_id, day)
        if business is CLOSED:
            return None

        stylists = await self._candidates(salon_id, candidate_stylist_ids)
        closures = await self.closures.get_for_date(salon_id, day)
        end_at = start_at + timedelta(minutes=window.duration)

        eligible: list[StylistCandidate] = []
        for stylist in stylists:
            stylist_day = await load_stylist_day(self.stylist_schedules, stylist.id, day)
            intervals = resolve_day(business, stylist_day)
            if not fits_within(intervals, window):
                continue
            if is_closed(start_at, end_at, closures, stylist.id):
                continue
            existing = await self.appointments.get_active_for_stylist_on_date(stylist.id, day)
            if conflicting_appointments(
                start_at, end_at, existing, (stylist.id,), self.config.default_duration_minutes
            ):
                continue
            eligible.append(StylistCandidate(stylist.id, tuple(intervals)))

        chosen = self.policy(eligible)
        logger.debug(
            "Stylist selection salon=%s start=%s: %d eligible -> %s",
            salon_id, start_at, len(eligible), chosen,
        )
        return chosen

    async def _candidates(
        self, salon_id: SalonId, candidate_stylist_ids: Optional[Iterable[StylistId]]
    ) -> list[StylistInfo]:
        if candidate_stylist_ids is None:
            return sorted(await self.directory.list_active_stylists(salon_id), key=lambda s: s.id)

        stylists = []
        for stylist_id in sorted(set(candidate_stylist_ids)):
            stylist = await self.directory.get_stylist(stylist_id)
            if stylist is not None and stylist.salon_id == salon_id and stylist.active:
                stylists.append(stylist)
        return stylists

    # ────────────────────────────────────────────────────────────────
    # Booking
    # ────────────────────────────────────────────────────────────────

    async def book_slot(
        self,
        salon_id: SalonId,
        stylist_id: Optional[StylistId],
        start_at: datetime,
        service_id: str,
        client_id: str,
        now: Optional[datetime] = None,
    ) -> Appointment:
        """
        Re-validate and book a slot. `stylist_id=None` means "no preference".

        Raises:
            NotFoundError: unknown salon, service or stylist
            ValidationError: the appointment would cross midnight
            ScheduleConflictError: the slot is not valid under current schedule data
            BookingConflictError: the slot overlaps an existing appointment
        """
        if not await self.directory.salon_exists(salon_id):
            raise NotFoundError("Salon not found", {"salon_id": salon_id})

        service = await self.services.get_service(salon_id, service_id)
        duration = self.config.duration_or_default(service.duration_minutes)
        window = interval_of(start_at, duration)
        end_at = start_at + timedelta(minutes=duration)
        day = start_at.date()

        now = now or datetime.now()
        if start_at <= now:
            raise ScheduleConflictError(
                "Cannot book a slot in the past", {"start_at": start_at.isoformat()}
            )

        if stylist_id is not None:
            await self._require_bookable_stylist(salon_id, stylist_id)

        # Fresh read; malformed hours surface as ConfigurationError here
        business: BusinessDay = await self.business_hours.get_day(salon_id, day.weekday())
        if not isinstance(business, OpenDay):
            raise ScheduleConflictError("Salon is closed on this day", {"date": day.isoformat()})

        if stylist_id is None:
            stylist_id = await self.select_stylist(salon_id, day, start_at, duration)
            if stylist_id is None:
                raise ScheduleConflictError(
                    "No stylist is available for this time", {"start_at": start_at.isoformat()}
                )

        stylist_day = await self.stylist_schedules.get_day(stylist_id, day.weekday())
        if stylist_day is UNAVAILABLE:
            raise ScheduleConflictError(
                "Stylist is not working on this day", {"stylist_id": stylist_id, "date": day.isoformat()}
            )

        if not fits_within(resolve_day(business, stylist_day), window):
            raise ScheduleConflictError(
                "Selected time is outside working hours",
                {"stylist_id": stylist_id, "start": str(window)},
            )

        closures: list[ClosureWindow] = await self.closures.get_for_date(salon_id, day)
        if is_closed(start_at, end_at, closures, stylist_id):
            raise ScheduleConflictError(
                "Selected time falls within a closure", {"stylist_id": stylist_id, "start": str(window)}
            )

        existing = await self.appointments.get_active_for_stylist_on_date(stylist_id, day)
        clashes = conflicting_appointments(
            start_at, end_at, existing, (stylist_id,), self.config.default_duration_minutes
        )
        if clashes:
            logger.info("Booking rejected: stylist %s already booked at %s", stylist_id, start_at)
            raise BookingConflictError(
                "Time slot is no longer available",
                {"conflicting_appointment_ids": [a.id for a in clashes]},
            )

        result = await self.appointments.insert_if_no_conflict(
            NewAppointment(
                salon_id=salon_id,
                stylist_id=stylist_id,
                service_id=service.id,
                client_id=client_id,
                start_at=start_at,
                duration_minutes=duration,
            )
        )
        if isinstance(result, InsertConflict):
            logger.info("Booking lost a race: stylist %s at %s", stylist_id, start_at)
            raise BookingConflictError(
                "Time slot is no longer available",
                {"conflicting_appointment_ids": list(result.conflicting_appointment_ids)},
            )

        logger.info(
            "Booked appointment %s: salon=%s stylist=%s start=%s duration=%d",
            result.id, salon_id, stylist_id, start_at, duration,
        )
        return result

    async def _require_bookable_stylist(self, salon_id: SalonId, stylist_id: StylistId) -> StylistInfo:
        stylist = await self.directory.get_stylist(stylist_id)
        if stylist is None or stylist.salon_id != salon_id:
            raise NotFoundError("Stylist not found", {"stylist_id": stylist_id})
        if not stylist.active:
            raise ScheduleConflictError("Stylist is not taking bookings", {"stylist_id": stylist_id})
        return stylist
