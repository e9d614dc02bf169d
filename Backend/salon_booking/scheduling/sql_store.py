"""
SQLAlchemy implementation of the scheduling providers.

Every call opens its own short session from the async_sessionmaker, so reads
always see committed data and nothing is held across requests.

insert_if_no_conflict runs in a single transaction:
    1. UPDATE stylists SET booking_version = booking_version + 1  (stylist write lock)
    2. re-read the stylist's non-cancelled appointments for the day
    3. overlap check (conflicts.conflicting_appointments)
    4. INSERT
A concurrent booking for the same stylist blocks at step 1 until the first one
commits, then sees its row at step 2. The partial unique index
uq_appointment_stylist_start backs this up; its IntegrityError is reported as
an InsertConflict as well.
"""

import logging
from datetime import date, time
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .. import models
from ..tenancy import queries
from ..tenancy.context import SalonId, StylistId, canonical_salon_id, canonical_stylist_id
from .closures import ClosureWindow, closure_from_record
from .config import DEFAULT_DURATION_MINUTES
from .conflicts import conflicting_appointments
from .entities import Appointment, AppointmentStatus, InsertConflict, NewAppointment, ServiceInfo, StylistInfo
from .errors import ConfigurationError, NotFoundError, ValidationError
from .intervals import MINUTES_PER_DAY, DayInterval, parse_time
from .schedule import BusinessDay, StylistDay, business_day_from, stylist_day_from


logger = logging.getLogger(__name__)

UNIQUE_START_INDEX = "uq_appointment_stylist_start"


def _row_interval(start: Optional[time], end: Optional[time], owner: str, weekday: int) -> DayInterval:
    """Interval of one stored schedule row. A 00:00 end is read as midnight (24:00)."""
    if start is None or end is None:
        raise ConfigurationError(
            "open schedule row is missing its times", {"owner": owner, "weekday": weekday}
        )
    end_minutes = parse_time(end)
    try:
        return DayInterval(parse_time(start), end_minutes or MINUTES_PER_DAY)
    except ValidationError as exc:
        raise ConfigurationError(exc.message, {"owner": owner, "weekday": weekday, **exc.details})


def _stylist_info(row: models.Stylist) -> StylistInfo:
    return StylistInfo(
        id=canonical_stylist_id(row.id),
        salon_id=canonical_salon_id(row.salon_id),
        name=row.name,
        active=row.active,
    )


def _appointment(row: models.Appointment) -> Appointment:
    return Appointment(
        id=row.id,
        stylist_id=canonical_stylist_id(row.stylist_id),
        start_at=row.start_at,
        duration_minutes=row.duration_minutes,
        status=AppointmentStatus(row.status),
        salon_id=canonical_salon_id(row.salon_id),
        service_id=row.service_id,
        client_id=row.client_id,
    )


class _SqlProvider:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory


class SqlSalonDirectory(_SqlProvider):
    async def salon_exists(self, salon_id: SalonId) -> bool:
        async with self.session_factory() as session:
            return await queries.get_salon_by_id(session, salon_id) is not None

    async def get_stylist(self, stylist_id: StylistId) -> Optional[StylistInfo]:
        async with self.session_factory() as session:
            row = await queries.get_stylist_by_id(session, stylist_id)
            return _stylist_info(row) if row else None

    async def list_active_stylists(self, salon_id: SalonId) -> list[StylistInfo]:
        async with self.session_factory() as session:
            rows = await queries.list_active_stylists(session, salon_id)
            return [_stylist_info(row) for row in rows]

    async def list_stylists(self, salon_id: SalonId) -> list[StylistInfo]:
        async with self.session_factory() as session:
            rows = await queries.list_stylists(session, salon_id)
            return [_stylist_info(row) for row in rows]


class SqlServiceCatalog(_SqlProvider):
    async def get_service(self, salon_id: SalonId, service_id: str) -> ServiceInfo:
        async with self.session_factory() as session:
            row = await queries.get_service_by_id(session, salon_id, service_id)
        if row is None:
            raise NotFoundError("Service not found", {"service_id": service_id})
        return ServiceInfo(id=row.id, duration_minutes=row.duration_minutes, name=row.name)


class SqlBusinessHours(_SqlProvider):
    async def get_day(self, salon_id: SalonId, weekday: int) -> BusinessDay:
        async with self.session_factory() as session:
            rows = await queries.list_salon_hours(session, salon_id, weekday)
        intervals = [
            _row_interval(row.open_time, row.close_time, salon_id, weekday)
            for row in rows
            if row.is_open
        ]
        try:
            return business_day_from(intervals)
        except ValidationError as exc:
            raise ConfigurationError(exc.message, {"salon_id": salon_id, "weekday": weekday, **exc.details})


class SqlStylistSchedules(_SqlProvider):
    async def get_day(self, stylist_id: StylistId, weekday: int) -> StylistDay:
        async with self.session_factory() as session:
            rows = await queries.list_stylist_schedule(session, stylist_id, weekday)
        intervals = [
            _row_interval(row.start_time, row.end_time, stylist_id, weekday)
            for row in rows
            if row.is_working
        ]
        try:
            return stylist_day_from(intervals)
        except ValidationError as exc:
            raise ConfigurationError(exc.message, {"stylist_id": stylist_id, "weekday": weekday, **exc.details})


class SqlClosures(_SqlProvider):
    async def get_for_date(self, salon_id: SalonId, day: date) -> list[ClosureWindow]:
        async with self.session_factory() as session:
            rows = await queries.list_closures_on(session, salon_id, day)
        closures = []
        for row in rows:
            try:
                closures.append(
                    closure_from_record(row.closure_date, row.start_time, row.end_time, row.stylist_id, row.reason)
                )
            except ValidationError as exc:
                raise ConfigurationError(
                    f"malformed closure {row.id}: {exc.message}", {"salon_id": salon_id, **exc.details}
                )
        return closures


class SqlAppointmentRepository(_SqlProvider):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        default_duration: int = DEFAULT_DURATION_MINUTES,
    ):
        super().__init__(session_factory)
        self.default_duration = default_duration

    async def get_active_for_stylist_on_date(self, stylist_id: StylistId, day: date) -> list[Appointment]:
        async with self.session_factory() as session:
            rows = await queries.list_active_appointments_on(session, stylist_id, day)
            return [_appointment(row) for row in rows]

    async def insert_if_no_conflict(self, new: NewAppointment) -> Union[Appointment, InsertConflict]:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    if not await queries.lock_stylist_for_booking(session, new.stylist_id):
                        raise NotFoundError("Stylist not found", {"stylist_id": new.stylist_id})

                    rows = await queries.list_active_appointments_on(session, new.stylist_id, new.start_at.date())
                    clashes = conflicting_appointments(
                        new.start_at,
                        new.end_at,
                        [_appointment(row) for row in rows],
                        (new.stylist_id,),
                        self.default_duration,
                    )
                    if clashes:
                        logger.info("Insert refused for stylist %s at %s", new.stylist_id, new.start_at)
                        return InsertConflict(tuple(a.id for a in clashes))

                    row = models.Appointment(
                        salon_id=new.salon_id,
                        stylist_id=new.stylist_id,
                        service_id=new.service_id,
                        client_id=new.client_id,
                        start_at=new.start_at,
                        duration_minutes=new.duration_minutes,
                        status=AppointmentStatus.SCHEDULED,
                    )
                    session.add(row)
                    await session.flush()
                    created = _appointment(row)
        except IntegrityError as exc:
            message = str(exc.orig)
            if UNIQUE_START_INDEX in message or "appointments.stylist_id, appointments.start_at" in message:
                logger.warning("Unique start index rejected booking for stylist %s at %s", new.stylist_id, new.start_at)
                return InsertConflict()
            logger.exception("Unexpected integrity error while booking stylist %s", new.stylist_id)
            raise
        return created


def sql_providers(
    session_factory: async_sessionmaker[AsyncSession],
    default_duration: int = DEFAULT_DURATION_MINUTES,
) -> dict:
    """Keyword arguments for AvailabilityService / BookingService backed by the database."""
    return {
        "directory": SqlSalonDirectory(session_factory),
        "services": SqlServiceCatalog(session_factory),
        "business_hours": SqlBusinessHours(session_factory),
        "stylist_schedules": SqlStylistSchedules(session_factory),
        "closures": SqlClosures(session_factory),
        "appointments": SqlAppointmentRepository(session_factory, default_duration),
    }
