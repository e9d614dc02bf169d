"""
Closure Filter

Removes candidate slots that fall inside exceptional closure windows.

A closure applies to a stylist when it is salon-wide (no stylist_id) or when
it names that stylist. Global and stylist-specific closures combine with OR
semantics: either one excludes the slot.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, Optional, Union

from ..tenancy.context import StylistId, canonical_stylist_id
from .errors import ValidationError
from .intervals import MINUTES_PER_DAY, DayInterval, at_minutes, parse_date, parse_time
from .slots import Slot


logger = logging.getLogger(__name__)

# Marker used by legacy rows that stored the stylist inside the reason text
STYLIST_REASON_META = "stylist-closure-v1"


@dataclass(frozen=True)
class ClosureWindow:
    """
    Exceptional closure on one date.

    Absent start/end mean the whole day; if only one bound is given the other
    defaults to the corresponding edge of the day.
    """

    date: date
    start: Optional[int] = None
    end: Optional[int] = None
    stylist_id: Optional[StylistId] = None
    reason: Optional[str] = None

    def __post_init__(self):
        # Validates the effective window eagerly (end must be after start)
        self.window()

    @property
    def is_salon_wide(self) -> bool:
        return self.stylist_id is None

    @property
    def is_full_day(self) -> bool:
        return self.start is None and self.end is None

    def window(self) -> DayInterval:
        start = 0 if self.start is None else self.start
        end = MINUTES_PER_DAY if self.end is None else self.end
        return DayInterval(start, end)

    def applies_to(self, stylist_id: Optional[StylistId]) -> bool:
        return self.stylist_id is None or self.stylist_id == stylist_id

    def blocks(self, start_at: datetime, end_at: datetime) -> bool:
        """Half-open overlap between this closure and [start_at, end_at)."""
        window = self.window()
        closed_from = at_minutes(self.date, window.start)
        closed_until = at_minutes(self.date, window.end)
        return start_at < closed_until and end_at > closed_from


def is_closed(
    start_at: datetime,
    end_at: datetime,
    closures: Iterable[ClosureWindow],
    stylist_id: Optional[StylistId],
) -> bool:
    """True if any applicable closure overlaps [start_at, end_at)."""
    return any(
        closure.applies_to(stylist_id) and closure.blocks(start_at, end_at)
        for closure in closures
    )


def filter_closures(
    slots: Iterable[Slot],
    closures: Iterable[ClosureWindow],
    stylist_id: Optional[StylistId],
) -> list[Slot]:
    """Keep only the slots no applicable closure overlaps."""
    applicable = [c for c in closures if c.applies_to(stylist_id)]
    if not applicable:
        return list(slots)
    return [slot for slot in slots if not is_closed(slot.start_at, slot.end_at, applicable, stylist_id)]


# ── Record normalisation ────────────────────────────────────────────────


def decode_stylist_reason(reason: object) -> Optional[tuple[Optional[str], str]]:
    """
    Decode a legacy reason payload that embeds the stylist.

    Legacy rows store '{"type": "stylist-closure-v1", "stylistId": ..., "label": ...}'
    in the reason column instead of using stylist_id.

    Returns:
        (raw stylist id or None, label) if the reason is such a payload, else None
    """
    if not isinstance(reason, str):
        return None
    trimmed = reason.strip()
    if not (trimmed.startswith("{") and trimmed.endswith("}")):
        return None
    try:
        parsed = json.loads(trimmed)
    except json.JSONDecodeError:
        logger.warning("Unparseable closure reason payload: %r", trimmed)
        return None
    if not isinstance(parsed, dict):
        return None
    if not (parsed.get("stylistId") or parsed.get("type") == STYLIST_REASON_META):
        return None
    stylist_id = parsed.get("stylistId") if isinstance(parsed.get("stylistId"), str) else None
    label = parsed.get("label") if isinstance(parsed.get("label"), str) else ""
    return stylist_id, label


def closure_from_record(
    closure_date: Union[str, date],
    start_time: Union[str, time, None] = None,
    end_time: Union[str, time, None] = None,
    stylist_id: object = None,
    reason: Optional[str] = None,
) -> ClosureWindow:
    """
    Build a ClosureWindow from a stored row, normalising identifiers and
    legacy reason payloads.

    Raises:
        ValidationError: malformed date/time or an inverted window
    """
    decoded = decode_stylist_reason(reason)
    if decoded is not None:
        encoded_stylist, label = decoded
        reason = label
        if stylist_id is None and encoded_stylist:
            stylist_id = encoded_stylist

    start = parse_time(start_time) if start_time not in (None, "") else None
    end = parse_time(end_time, allow_end_of_day=True) if end_time not in (None, "") else None
    if end == 0:
        # TIME columns cannot hold 24:00
        end = MINUTES_PER_DAY

    try:
        return ClosureWindow(
            date=parse_date(closure_date),
            start=start,
            end=end,
            stylist_id=canonical_stylist_id(stylist_id) if stylist_id else None,
            reason=reason or None,
        )
    except ValidationError as exc:
        exc.details.setdefault("date", str(closure_date))
        raise
