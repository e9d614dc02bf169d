"""
Salon context and canonical identifiers.

Salon and stylist IDs historically travelled in several spellings
("salon-<uuid>", "<uuid>", upper/lower case). This module is the single
boundary where raw identifiers are normalised; everything past it works
with the typed SalonId / StylistId values and never guesses prefixes.
"""

import logging
from dataclasses import dataclass
from typing import NewType, Optional

from ..scheduling.errors import ValidationError


logger = logging.getLogger(__name__)


SalonId = NewType("SalonId", str)
StylistId = NewType("StylistId", str)

SALON_PREFIX = "salon-"
STYLIST_PREFIX = "stylist-"

# Token sent by booking forms when the client has no stylist preference
NO_PREFERENCE = "none"


def _canonical(raw: object, prefix: str, kind: str) -> str:
    if raw is None:
        raise ValidationError(f"{kind} id is required")
    value = str(raw).strip().lower()
    if value.startswith(prefix):
        value = value[len(prefix):]
    if not value:
        raise ValidationError(f"{kind} id is empty", {"raw": str(raw)})
    return value


def canonical_salon_id(raw: object) -> SalonId:
    """
    Normalise a raw salon identifier.

    Examples:
        canonical_salon_id("salon-AB12") == "ab12"
        canonical_salon_id(" ab12 ") == "ab12"
    """
    return SalonId(_canonical(raw, SALON_PREFIX, "salon"))


def canonical_stylist_id(raw: object) -> StylistId:
    """Normalise a raw stylist identifier (drops the legacy "stylist-" prefix)."""
    return StylistId(_canonical(raw, STYLIST_PREFIX, "stylist"))


def optional_stylist_id(raw: object) -> Optional[StylistId]:
    """Like canonical_stylist_id, but maps None, "" and "none" to None."""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text or text.lower() == NO_PREFERENCE:
        return None
    return canonical_stylist_id(text)


@dataclass(frozen=True)
class SalonContext:
    """
    Immutable context representing the salon a request operates on.

    Attributes:
        salon_id: Canonical salon identifier
        salon_name: Human-readable salon name, when known
    """

    salon_id: SalonId
    salon_name: Optional[str] = None

    def __post_init__(self):
        if self.salon_id != canonical_salon_id(self.salon_id):
            raise ValueError(f"salon_id must be canonical, got {self.salon_id!r}")

    @classmethod
    def from_raw(cls, raw_salon_id: object, salon_name: Optional[str] = None) -> "SalonContext":
        return cls(salon_id=canonical_salon_id(raw_salon_id), salon_name=salon_name)
