"""
Interval Model

Wall-clock time-of-day intervals, expressed in minutes since local midnight.
All intervals are half-open: [start, end). "24:00" is a legal end so that a
closure or a shift can run to the end of the day.

Wire conventions:
    dates  -> "YYYY-MM-DD"
    times  -> "HH:MM" (24-hour, "HH:MM:SS" accepted from storage)
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Sequence, Union

from .errors import ValidationError


MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True, order=True)
class DayInterval:
    """Half-open [start, end) interval within one calendar day, in minutes."""

    start: int
    end: int

    def __post_init__(self):
        if not isinstance(self.start, int) or not isinstance(self.end, int):
            raise ValidationError("interval bounds must be integer minutes")
        if self.start < 0 or self.end > MINUTES_PER_DAY:
            raise ValidationError(
                "interval must lie within one day",
                {"start": self.start, "end": self.end},
            )
        if self.end <= self.start:
            raise ValidationError(
                "interval end must be after its start",
                {"start": format_minutes(self.start), "end": format_minutes(self.end)},
            )

    @classmethod
    def parse(cls, start: Union[str, time], end: Union[str, time]) -> "DayInterval":
        """Build from "HH:MM" strings or datetime.time values."""
        return cls(parse_time(start), parse_time(end, allow_end_of_day=True))

    @classmethod
    def whole_day(cls) -> "DayInterval":
        return cls(0, MINUTES_PER_DAY)

    @property
    def duration(self) -> int:
        return self.end - self.start

    def __str__(self) -> str:
        return f"{format_minutes(self.start)}-{format_minutes(self.end)}"


def overlaps(x: DayInterval, y: DayInterval) -> bool:
    """Half-open overlap: touching intervals ([10:00,10:30) and [10:30,11:00)) do not overlap."""
    return x.start < y.end and x.end > y.start


def contains(outer: DayInterval, inner: DayInterval) -> bool:
    return outer.start <= inner.start and inner.end <= outer.end


def fits_within(intervals: Iterable[DayInterval], candidate: DayInterval) -> bool:
    """True if the candidate lies entirely inside at least one of the intervals."""
    return any(contains(interval, candidate) for interval in intervals)


def intersect(a: Sequence[DayInterval], b: Sequence[DayInterval]) -> list[DayInterval]:
    """
    Intersect two sets of intervals.

    Classic two-pointer sweep over both lists sorted by start, O(|a| + |b|).
    Each input must be internally non-overlapping, but may contain touching
    rows such as [09:00,12:00) and [12:00,18:00).

    Returns:
        The maximal disjoint intervals contained in both inputs, sorted by start.
        Pieces that touch are merged, so a slot spanning 12:00 above still fits.
    """
    left = sorted(a)
    right = sorted(b)
    result: list[DayInterval] = []
    i = j = 0

    while i < len(left) and j < len(right):
        start = max(left[i].start, right[j].start)
        end = min(left[i].end, right[j].end)
        if start < end:
            if result and start <= result[-1].end:
                result[-1] = DayInterval(result[-1].start, max(result[-1].end, end))
            else:
                result.append(DayInterval(start, end))

        # Advance whichever interval finishes first
        if left[i].end < right[j].end:
            i += 1
        else:
            j += 1

    return result


def ensure_disjoint(intervals: Iterable[DayInterval]) -> tuple[DayInterval, ...]:
    """
    Sort intervals and check that none of them overlap.

    Raises:
        ValidationError: if two intervals overlap
    """
    ordered = tuple(sorted(intervals))
    for previous, current in zip(ordered, ordered[1:]):
        if overlaps(previous, current):
            raise ValidationError(
                "intervals of one schedule must not overlap",
                {"first": str(previous), "second": str(current)},
            )
    return ordered


# ── Wire helpers ─────────────────────────────────────────────────────────


def parse_time(value: Union[str, time], allow_end_of_day: bool = False) -> int:
    """Parse "HH:MM" / "HH:MM:SS" (or a datetime.time) into minutes since midnight."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    if not isinstance(value, str):
        raise ValidationError("time must be a string in HH:MM format", {"value": repr(value)})

    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() and len(p) == 2 for p in parts):
        raise ValidationError("time must use HH:MM format", {"value": value})

    hours, minutes = int(parts[0]), int(parts[1])
    if allow_end_of_day and hours == 24 and minutes == 0:
        return MINUTES_PER_DAY
    if hours > 23 or minutes > 59:
        raise ValidationError("time is out of range", {"value": value})
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: Union[str, date]) -> date:
    """Parse "YYYY-MM-DD"."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        raise ValidationError("date must use YYYY-MM-DD format", {"value": str(value)})


def minutes_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def at_minutes(day: date, minutes: int) -> datetime:
    """Wall-clock datetime for a minute offset on a given day (1440 -> next midnight)."""
    return datetime.combine(day, time.min) + timedelta(minutes=minutes)


def interval_of(start_at: datetime, duration_minutes: int) -> DayInterval:
    """
    Time-of-day interval covered by [start_at, start_at + duration).

    Raises:
        ValidationError: for non-positive durations or ranges crossing midnight
    """
    if duration_minutes <= 0:
        raise ValidationError("duration must be positive", {"duration_minutes": duration_minutes})
    start = minutes_of_day(start_at)
    end = start + duration_minutes
    if end > MINUTES_PER_DAY:
        raise ValidationError(
            "appointment cannot end after midnight",
            {"start": format_minutes(start), "duration_minutes": duration_minutes},
        )
    return DayInterval(start, end)
