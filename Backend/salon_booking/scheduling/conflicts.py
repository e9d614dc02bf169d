"""
Conflict Detector

A conflict is a half-open overlap between a candidate slot and an existing
non-cancelled appointment of the same stylist. Appointments stored without a
duration are assumed to last DEFAULT_DURATION_MINUTES, the same fallback the
slot generator uses for services.
"""

from datetime import datetime
from typing import Iterable, Optional

from ..tenancy.context import StylistId
from .config import DEFAULT_DURATION_MINUTES
from .entities import Appointment
from .slots import Slot


def conflicting_appointments(
    start_at: datetime,
    end_at: datetime,
    existing: Iterable[Appointment],
    stylist_ids: Iterable[StylistId],
    default_duration: int = DEFAULT_DURATION_MINUTES,
) -> list[Appointment]:
    """Active appointments of the given stylists overlapping [start_at, end_at)."""
    stylists = set(stylist_ids)
    return [
        appointment
        for appointment in existing
        if appointment.is_active
        and appointment.stylist_id in stylists
        and start_at < appointment.end_at(default_duration)
        and end_at > appointment.start_at
    ]


def has_conflict(
    slot: Slot,
    existing: Iterable[Appointment],
    stylist_id: Optional[StylistId] = None,
    default_duration: int = DEFAULT_DURATION_MINUTES,
) -> bool:
    """
    True iff a non-cancelled appointment of the slot's stylist overlaps the slot.

    The stylist is `stylist_id` when given, otherwise the slot's eligible stylists.
    """
    stylists = (stylist_id,) if stylist_id else slot.eligible_stylist_ids
    return bool(
        conflicting_appointments(slot.start_at, slot.end_at, existing, stylists, default_duration)
    )
