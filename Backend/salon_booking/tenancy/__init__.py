"""
Multi-salon package.

This package provides salon isolation primitives.

Modules:
    context: canonical SalonId / StylistId boundary and SalonContext
    queries: salon-scoped query helpers (imported explicitly; depends on the ORM models)
"""

from .context import (
    NO_PREFERENCE,
    SalonContext,
    SalonId,
    StylistId,
    canonical_salon_id,
    canonical_stylist_id,
    optional_stylist_id,
)

__all__ = [
    "NO_PREFERENCE",
    "SalonContext",
    "SalonId",
    "StylistId",
    "canonical_salon_id",
    "canonical_stylist_id",
    "optional_stylist_id",
]
