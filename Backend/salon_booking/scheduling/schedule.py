"""
Schedule Resolver

A day in a schedule is one of three explicit states:
    OpenDay(intervals)  - open/working during the given intervals
    CLOSED              - the salon does not open that day
    UNAVAILABLE         - the stylist does not work that day

A stylist with no schedule rows for a weekday is UNAVAILABLE: stylists opt in
to hours and never inherit the salon's opening hours.
"""

from dataclasses import dataclass, field
from typing import Iterable, Union

from .intervals import DayInterval, ensure_disjoint, intersect


@dataclass(frozen=True)
class OpenDay:
    intervals: tuple[DayInterval, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Normalise to a sorted tuple; overlapping rows are a ValidationError
        object.__setattr__(self, "intervals", ensure_disjoint(self.intervals))

    @classmethod
    def of(cls, *spans: tuple[str, str]) -> "OpenDay":
        """OpenDay.of(("09:00", "12:00"), ("13:00", "18:00"))"""
        return cls(tuple(DayInterval.parse(start, end) for start, end in spans))


@dataclass(frozen=True)
class ClosedDay:
    def __repr__(self) -> str:
        return "CLOSED"


@dataclass(frozen=True)
class UnavailableDay:
    def __repr__(self) -> str:
        return "UNAVAILABLE"


CLOSED = ClosedDay()
UNAVAILABLE = UnavailableDay()

BusinessDay = Union[OpenDay, ClosedDay]
StylistDay = Union[OpenDay, UnavailableDay]


def business_day_from(intervals: Iterable[DayInterval]) -> BusinessDay:
    """Salon day from its opening intervals; no intervals means CLOSED."""
    intervals = tuple(intervals)
    return OpenDay(intervals) if intervals else CLOSED


def stylist_day_from(intervals: Iterable[DayInterval]) -> StylistDay:
    """Stylist day from its working intervals; no intervals means UNAVAILABLE."""
    intervals = tuple(intervals)
    return OpenDay(intervals) if intervals else UNAVAILABLE


def resolve_day(business: BusinessDay, stylist: StylistDay) -> list[DayInterval]:
    """
    Intervals during which both the salon is open and the stylist works.

    Pure and total for well-formed inputs: a closed salon or an unavailable
    stylist simply yields no intervals.
    """
    if not isinstance(business, OpenDay) or not isinstance(stylist, OpenDay):
        return []
    return intersect(business.intervals, stylist.intervals)
