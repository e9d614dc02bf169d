"""
Slot Generator

Discretizes resolved intervals into fixed-step candidate start times long
enough for a service's duration.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterator, Optional, Sequence

from ..tenancy.context import StylistId
from .errors import ValidationError
from .intervals import DayInterval, at_minutes, format_minutes


@dataclass(frozen=True)
class Slot:
    """Candidate bookable [start_at, end_at) pair. Derived, never persisted."""

    start_at: datetime
    end_at: datetime
    eligible_stylist_ids: tuple[StylistId, ...] = ()

    @property
    def time_label(self) -> str:
        return self.start_at.strftime("%H:%M")

    @property
    def end_label(self) -> str:
        return self.end_at.strftime("%H:%M")


class SlotSequence:
    """
    Lazy, finite, restartable sequence of slots for one day.

    Each iteration walks the intervals again, so the same sequence can be
    consumed several times (e.g. filtered per stylist, then counted).
    """

    def __init__(
        self,
        day: date,
        intervals: Sequence[DayInterval],
        duration_minutes: int,
        step_minutes: int,
        not_before: Optional[datetime] = None,
        stylist_id: Optional[StylistId] = None,
    ):
        if duration_minutes <= 0:
            raise ValidationError("duration must be positive", {"duration_minutes": duration_minutes})
        if step_minutes <= 0:
            raise ValidationError("slot step must be positive", {"step_minutes": step_minutes})

        self.day = day
        self.intervals = tuple(sorted(intervals))
        self.duration_minutes = duration_minutes
        self.step_minutes = step_minutes
        self.not_before = not_before
        self.eligible = (stylist_id,) if stylist_id else ()

    def __iter__(self) -> Iterator[Slot]:
        for interval in self.intervals:
            t = interval.start
            while t + self.duration_minutes <= interval.end:
                start_at = at_minutes(self.day, t)
                if self.not_before is None or start_at > self.not_before:
                    yield Slot(
                        start_at=start_at,
                        end_at=at_minutes(self.day, t + self.duration_minutes),
                        eligible_stylist_ids=self.eligible,
                    )
                t += self.step_minutes

    def __repr__(self) -> str:
        spans = ", ".join(f"{format_minutes(i.start)}-{format_minutes(i.end)}" for i in self.intervals)
        return (
            f"SlotSequence({self.day.isoformat()}, [{spans}], "
            f"duration={self.duration_minutes}, step={self.step_minutes})"
        )


def generate_slots(
    day: date,
    intervals: Sequence[DayInterval],
    duration_minutes: int,
    step_minutes: int,
    not_before: Optional[datetime] = None,
    stylist_id: Optional[StylistId] = None,
) -> SlotSequence:
    """
    Candidate slots for one day.

    For each interval, candidates start at interval.start, interval.start + step,
    ... while start + duration <= interval.end. Candidates starting at or before
    `not_before` (the caller's "now") are dropped. Output is ascending by start.
    """
    return SlotSequence(day, intervals, duration_minutes, step_minutes, not_before, stylist_id)
