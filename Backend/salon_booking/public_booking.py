"""
Public Booking API.

Salon-scoped endpoints for checking availability, choosing a stylist and
booking a slot. All times are salon-local wall-clock values:

    dates  -> "YYYY-MM-DD"
    times  -> "HH:MM" (24-hour)

Salon and stylist IDs pass through the canonical-ID boundary, so legacy
spellings ("salon-<id>", upper case) are accepted. Domain errors raised by
the scheduling core are translated to the standard error envelope by the
handler registered in main.py.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .core.config import get_settings
from .core.db import get_session_factory
from .core.responses import ErrorResponse
from .scheduling.availability import AvailabilityService
from .scheduling.booking import BookingService
from .scheduling.cache import ScheduleCache
from .scheduling.config import BookingConfig
from .scheduling.entities import Appointment
from .scheduling.intervals import at_minutes, parse_date, parse_time
from .scheduling.sql_store import sql_providers
from .tenancy.context import canonical_salon_id, canonical_stylist_id, optional_stylist_id


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/salons", tags=["booking"])

ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


# ────────────────────────────────────────────────────────────────
# Dependencies
# ────────────────────────────────────────────────────────────────

def get_booking_config() -> BookingConfig:
    return BookingConfig.from_settings(get_settings())


def get_schedule_cache(request: Request) -> ScheduleCache:
    return request.app.state.schedule_cache


def get_availability_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    cache: ScheduleCache = Depends(get_schedule_cache),
    config: BookingConfig = Depends(get_booking_config),
) -> AvailabilityService:
    return AvailabilityService(
        **sql_providers(session_factory, config.default_duration_minutes),
        config=config,
        cache=cache,
    )


def get_booking_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    config: BookingConfig = Depends(get_booking_config),
) -> BookingService:
    # Booking always re-reads schedules; no cache here
    return BookingService(**sql_providers(session_factory, config.default_duration_minutes), config=config)


# ────────────────────────────────────────────────────────────────
# Pydantic Models
# ────────────────────────────────────────────────────────────────

class SlotResponse(BaseModel):
    """One bookable start time and the stylists who can take it."""
    time: str  # "10:00"
    end_time: str  # "10:30"
    stylist_ids: list[str]


class AvailabilityResponse(BaseModel):
    date: str
    service_id: str
    stylist_id: Optional[str] = None
    slot_interval_minutes: int
    slots: list[SlotResponse]


class StylistSelectionRequest(BaseModel):
    """Either duration_minutes or service_id must be given."""
    date: str = Field(..., description="Date in YYYY-MM-DD format")
    start_time: str = Field(..., description="Time in HH:MM format 24-hour")
    duration_minutes: Optional[int] = Field(None, gt=0)
    service_id: Optional[str] = None
    stylist_ids: Optional[list[str]] = Field(None, description="Optional: restrict the choice to these stylists")

    @model_validator(mode='after')
    def validate_duration_source(self):
        if self.duration_minutes is None and not self.service_id:
            raise ValueError("Either duration_minutes or service_id is required.")
        return self


class StylistSelectionResponse(BaseModel):
    stylist_id: Optional[str] = None


class BookingRequest(BaseModel):
    date: str = Field(..., description="Date in YYYY-MM-DD format")
    start_time: str = Field(..., description="Time in HH:MM format 24-hour")
    service_id: str
    client_id: str = Field(..., min_length=1, max_length=64)
    stylist_id: Optional[str] = Field(None, description='Stylist ID, or null / "none" for no preference')


class AppointmentResponse(BaseModel):
    id: str
    salon_id: str
    stylist_id: str
    service_id: str
    client_id: str
    date: str
    start_time: str
    end_time: str
    duration_minutes: int
    status: str

    @classmethod
    def from_appointment(cls, appointment: Appointment, default_duration: int) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            salon_id=appointment.salon_id,
            stylist_id=appointment.stylist_id,
            service_id=appointment.service_id,
            client_id=appointment.client_id,
            date=appointment.day.isoformat(),
            start_time=appointment.start_at.strftime("%H:%M"),
            end_time=appointment.end_at(default_duration).strftime("%H:%M"),
            duration_minutes=appointment.duration_minutes or default_duration,
            status=appointment.status.value,
        )


class CacheInvalidationRequest(BaseModel):
    stylist_id: Optional[str] = None


class CacheInvalidationResponse(BaseModel):
    invalidated: int


# ────────────────────────────────────────────────────────────────
# Endpoints
# ────────────────────────────────────────────────────────────────

@router.get("/{salon_id}/availability", response_model=AvailabilityResponse, responses=ERROR_RESPONSES)
async def check_availability(
    salon_id: str,
    date: str,
    service_id: str,
    stylist_id: Optional[str] = None,
    service: AvailabilityService = Depends(get_availability_service),
):
    """
    Available start times for a service on a date.

    - stylist_id: Optional - restrict to one stylist ("none" means any)
    """
    salon = canonical_salon_id(salon_id)
    stylist = optional_stylist_id(stylist_id)
    day = parse_date(date)

    slots = await service.compute_availability(salon, day, service_id, stylist)
    return AvailabilityResponse(
        date=day.isoformat(),
        service_id=service_id,
        stylist_id=stylist,
        slot_interval_minutes=service.config.slot_step_minutes,
        slots=[
            SlotResponse(time=slot.time_label, end_time=slot.end_label, stylist_ids=list(slot.eligible_stylist_ids))
            for slot in slots
        ],
    )


@router.post("/{salon_id}/stylist-selection", response_model=StylistSelectionResponse, responses=ERROR_RESPONSES)
async def select_stylist(
    salon_id: str,
    body: StylistSelectionRequest,
    booking: BookingService = Depends(get_booking_service),
):
    """Pick the stylist who would get a "no preference" booking at this time."""
    salon = canonical_salon_id(salon_id)
    day = parse_date(body.date)
    start_at = at_minutes(day, parse_time(body.start_time))

    duration = body.duration_minutes
    if duration is None:
        service_info = await booking.services.get_service(salon, body.service_id)
        duration = booking.config.duration_or_default(service_info.duration_minutes)

    candidates = None
    if body.stylist_ids is not None:
        candidates = [canonical_stylist_id(raw) for raw in body.stylist_ids]

    chosen = await booking.select_stylist(salon, day, start_at, duration, candidates)
    return StylistSelectionResponse(stylist_id=chosen)


@router.post(
    "/{salon_id}/bookings",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def create_booking(
    salon_id: str,
    body: BookingRequest,
    booking: BookingService = Depends(get_booking_service),
):
    """
    Book a slot. The slot is re-validated against current data; a slot taken
    in the meantime returns 409 BOOKING_CONFLICT.
    """
    salon = canonical_salon_id(salon_id)
    day = parse_date(body.date)
    start_at = at_minutes(day, parse_time(body.start_time))

    appointment = await booking.book_slot(
        salon,
        optional_stylist_id(body.stylist_id),
        start_at,
        body.service_id,
        body.client_id,
    )
    return AppointmentResponse.from_appointment(appointment, booking.config.default_duration_minutes)


@router.post("/{salon_id}/schedule-cache/invalidate", response_model=CacheInvalidationResponse)
async def invalidate_schedule_cache(
    salon_id: str,
    body: CacheInvalidationRequest,
    cache: ScheduleCache = Depends(get_schedule_cache),
    service: AvailabilityService = Depends(get_availability_service),
):
    """
    Drop cached weekly schedules after the owner edits hours.

    With a stylist_id only that stylist's schedule is dropped; otherwise the
    salon's hours and the schedules of all its stylists, inactive ones included.
    """
    salon = canonical_salon_id(salon_id)
    stylist = optional_stylist_id(body.stylist_id)
    if stylist is not None:
        return CacheInvalidationResponse(invalidated=await cache.invalidate_stylist(stylist))

    removed = await cache.invalidate_salon(salon)
    for info in await service.directory.list_stylists(salon):
        removed += await cache.invalidate_stylist(info.id)
    return CacheInvalidationResponse(invalidated=removed)
