"""
Salon-scoped query helpers.

ALL queries for salon data go through these helpers or include explicit
salon_id filtering. The SQL providers in scheduling.sql_store are built on
them; they take an open session and never commit.

Usage:
    from salon_booking.tenancy.queries import get_service_by_id, scoped_select

    service = await get_service_by_id(session, salon_id, service_id)
    stmt = scoped_select(Service, salon_id).where(Service.name == "Haircut")
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence, Type, TypeVar

from sqlalchemy import Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase

from ..models import (
    Appointment,
    Salon,
    SalonClosedDate,
    SalonHours,
    Service,
    Stylist,
    StylistSchedule,
)
from ..scheduling.entities import AppointmentStatus

# Type variable for generic model functions
T = TypeVar("T", bound=DeclarativeBase)


# ────────────────────────────────────────────────────────────────
# Composable Query Helpers
# ────────────────────────────────────────────────────────────────

def scoped_select(model: Type[T], salon_id: str) -> Select:
    """
    Create a SELECT statement pre-filtered by salon_id.

    Usage:
        stmt = scoped_select(Stylist, salon_id).where(Stylist.active == True)
    """
    return select(model).where(model.salon_id == salon_id)


async def require_owned(
    session: AsyncSession,
    model: Type[T],
    entity_id: str,
    salon_id: str,
) -> Optional[T]:
    """
    Fetch an entity by ID, validating salon ownership.
    Returns None if not found or wrong salon.
    """
    result = await session.execute(
        select(model).where(
            model.id == entity_id,
            model.salon_id == salon_id
        )
    )
    return result.scalar_one_or_none()


# ────────────────────────────────────────────────────────────────
# Salon / Stylist / Service
# ────────────────────────────────────────────────────────────────

async def get_salon_by_id(session: AsyncSession, salon_id: str) -> Optional[Salon]:
    return await session.get(Salon, salon_id)


async def get_stylist_by_id(session: AsyncSession, stylist_id: str) -> Optional[Stylist]:
    """Unscoped lookup; callers compare salon_id themselves to tell 'foreign' from 'unknown'."""
    return await session.get(Stylist, stylist_id)


async def list_stylists(session: AsyncSession, salon_id: str, active_only: bool = False) -> Sequence[Stylist]:
    stmt = scoped_select(Stylist, salon_id)
    if active_only:
        stmt = stmt.where(Stylist.active.is_(True))
    result = await session.execute(stmt.order_by(Stylist.id))
    return result.scalars().all()


async def list_active_stylists(session: AsyncSession, salon_id: str) -> Sequence[Stylist]:
    return await list_stylists(session, salon_id, active_only=True)


async def get_service_by_id(session: AsyncSession, salon_id: str, service_id: str) -> Optional[Service]:
    return await require_owned(session, Service, service_id, salon_id)


# ────────────────────────────────────────────────────────────────
# Schedules & closures
# ────────────────────────────────────────────────────────────────

async def list_salon_hours(session: AsyncSession, salon_id: str, weekday: int) -> Sequence[SalonHours]:
    result = await session.execute(
        scoped_select(SalonHours, salon_id)
        .where(SalonHours.weekday == weekday)
        .order_by(SalonHours.open_time)
    )
    return result.scalars().all()


async def list_stylist_schedule(
    session: AsyncSession, stylist_id: str, weekday: int
) -> Sequence[StylistSchedule]:
    result = await session.execute(
        select(StylistSchedule)
        .where(StylistSchedule.stylist_id == stylist_id, StylistSchedule.weekday == weekday)
        .order_by(StylistSchedule.start_time)
    )
    return result.scalars().all()


async def list_closures_on(session: AsyncSession, salon_id: str, day: date) -> Sequence[SalonClosedDate]:
    result = await session.execute(
        scoped_select(SalonClosedDate, salon_id)
        .where(SalonClosedDate.closure_date == day)
        .order_by(SalonClosedDate.id)
    )
    return result.scalars().all()


# ────────────────────────────────────────────────────────────────
# Appointments
# ────────────────────────────────────────────────────────────────

async def list_active_appointments_on(
    session: AsyncSession, stylist_id: str, day: date
) -> Sequence[Appointment]:
    """Non-cancelled appointments of a stylist starting on `day`."""
    day_start = datetime.combine(day, time.min)
    result = await session.execute(
        select(Appointment)
        .where(
            Appointment.stylist_id == stylist_id,
            Appointment.start_at >= day_start,
            Appointment.start_at < day_start + timedelta(days=1),
            Appointment.status != AppointmentStatus.CANCELLED,
        )
        .order_by(Appointment.start_at)
    )
    return result.scalars().all()


async def lock_stylist_for_booking(session: AsyncSession, stylist_id: str) -> bool:
    """
    Bump the stylist's booking_version inside the current transaction.

    The UPDATE holds the stylist's row lock (PostgreSQL) or the database write
    lock (SQLite) until commit, so concurrent bookings for one stylist run
    one after another. Returns False if the stylist row does not exist.
    """
    result = await session.execute(
        update(Stylist)
        .where(Stylist.id == stylist_id)
        .values(booking_version=Stylist.booking_version + 1)
    )
    return result.rowcount == 1
