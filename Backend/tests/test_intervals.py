"""
Tests for the interval model.

Run with: pytest tests/test_intervals.py -v
"""

from datetime import date, datetime, time

import pytest

from salon_booking.scheduling.errors import ValidationError
from salon_booking.scheduling.intervals import (
    MINUTES_PER_DAY,
    DayInterval,
    at_minutes,
    contains,
    ensure_disjoint,
    fits_within,
    format_minutes,
    interval_of,
    intersect,
    overlaps,
    parse_date,
    parse_time,
)


def iv(start: str, end: str) -> DayInterval:
    return DayInterval.parse(start, end)


# ============================================================================
# DAY INTERVAL
# ============================================================================

class TestDayInterval:
    """Construction and validation of DayInterval."""

    def test_parse_hh_mm(self):
        assert iv("09:00", "12:30") == DayInterval(540, 750)

    def test_end_of_day_is_legal_end(self):
        """24:00 is accepted as an end so a window can run to midnight."""
        assert iv("22:00", "24:00").end == MINUTES_PER_DAY

    def test_end_of_day_is_not_a_start(self):
        with pytest.raises(ValidationError):
            iv("24:00", "24:00")

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            iv("12:00", "09:00")

    def test_empty_interval_rejected(self):
        with pytest.raises(ValidationError):
            iv("09:00", "09:00")

    def test_out_of_day_rejected(self):
        with pytest.raises(ValidationError):
            DayInterval(-15, 60)
        with pytest.raises(ValidationError):
            DayInterval(0, MINUTES_PER_DAY + 1)

    def test_whole_day(self):
        assert DayInterval.whole_day() == DayInterval(0, MINUTES_PER_DAY)

    def test_str(self):
        assert str(iv("09:05", "17:00")) == "09:05-17:00"
        assert iv("09:00", "10:30").duration == 90


# ============================================================================
# OVERLAP / CONTAINMENT
# ============================================================================

class TestOverlap:
    """Half-open overlap semantics."""

    def test_touching_intervals_do_not_overlap(self):
        assert not overlaps(iv("10:00", "10:30"), iv("10:30", "11:00"))

    def test_partial_overlap(self):
        assert overlaps(iv("10:00", "10:30"), iv("10:15", "11:00"))

    def test_containment_is_overlap(self):
        assert overlaps(iv("10:00", "12:00"), iv("10:30", "11:00"))

    def test_contains(self):
        assert contains(iv("10:00", "12:00"), iv("10:00", "12:00"))
        assert not contains(iv("10:00", "12:00"), iv("11:30", "12:30"))

    def test_fits_within_any(self):
        intervals = [iv("10:00", "12:00"), iv("13:00", "16:00")]
        assert fits_within(intervals, iv("13:00", "13:30"))
        assert not fits_within(intervals, iv("11:45", "12:15"))
        assert not fits_within([], iv("10:00", "10:30"))


# ============================================================================
# INTERSECTION
# ============================================================================

class TestIntersect:
    """Two-pointer intersection of interval lists."""

    def test_split_business_day(self):
        """Mon 09-12 & 13-18 against a 10-16 stylist."""
        business = [iv("09:00", "12:00"), iv("13:00", "18:00")]
        stylist = [iv("10:00", "16:00")]
        assert intersect(business, stylist) == [iv("10:00", "12:00"), iv("13:00", "16:00")]

    def test_is_commutative(self):
        a = [iv("08:00", "09:30"), iv("11:00", "14:00"), iv("15:00", "20:00")]
        b = [iv("09:00", "12:00"), iv("13:30", "16:00")]
        assert intersect(a, b) == intersect(b, a)

    def test_disjoint_inputs_give_empty(self):
        assert intersect([iv("08:00", "10:00")], [iv("10:00", "12:00")]) == []

    def test_empty_input(self):
        assert intersect([], [iv("10:00", "12:00")]) == []

    def test_unsorted_input(self):
        a = [iv("13:00", "18:00"), iv("09:00", "12:00")]
        assert intersect(a, [iv("00:00", "24:00")]) == [iv("09:00", "12:00"), iv("13:00", "18:00")]

    def test_output_is_sorted_and_disjoint(self):
        a = [iv("08:00", "09:30"), iv("11:00", "14:00"), iv("15:00", "20:00")]
        b = [iv("09:00", "12:00"), iv("13:30", "16:00"), iv("19:00", "24:00")]
        result = intersect(a, b)
        assert result == [
            iv("09:00", "09:30"),
            iv("11:00", "12:00"),
            iv("13:30", "14:00"),
            iv("15:00", "16:00"),
            iv("19:00", "20:00"),
        ]
        assert ensure_disjoint(result) == tuple(result)

    def test_touching_rows_are_merged(self):
        """Salon rows 09-12 and 12-18 form one opening for a 10-16 stylist."""
        business = [iv("09:00", "12:00"), iv("12:00", "18:00")]
        stylist = [iv("10:00", "16:00")]
        assert intersect(business, stylist) == [iv("10:00", "16:00")]
        assert intersect(stylist, business) == [iv("10:00", "16:00")]

    def test_touching_rows_on_both_sides(self):
        a = [iv("09:00", "11:00"), iv("11:00", "13:00"), iv("14:00", "15:00")]
        b = [iv("08:00", "12:00"), iv("12:00", "20:00")]
        assert intersect(a, b) == [iv("09:00", "13:00"), iv("14:00", "15:00")]

    def test_ensure_disjoint_rejects_overlap(self):
        with pytest.raises(ValidationError):
            ensure_disjoint([iv("09:00", "12:00"), iv("11:00", "13:00")])


# ============================================================================
# WIRE HELPERS
# ============================================================================

class TestWireHelpers:
    """Parsing and formatting of wire dates and times."""

    def test_parse_time_with_seconds(self):
        assert parse_time("09:30:00") == 570

    def test_parse_time_object(self):
        assert parse_time(time(14, 45)) == 885

    @pytest.mark.parametrize("value", ["9:00", "25:00", "12:60", "noon", "", "12-00"])
    def test_parse_time_rejects_malformed(self, value):
        with pytest.raises(ValidationError):
            parse_time(value)

    def test_format_minutes(self):
        assert format_minutes(0) == "00:00"
        assert format_minutes(605) == "10:05"

    def test_parse_date(self):
        assert parse_date("2035-01-01") == date(2035, 1, 1)

    @pytest.mark.parametrize("value", ["2035-13-01", "01/01/2035", "", None])
    def test_parse_date_rejects_malformed(self, value):
        with pytest.raises(ValidationError):
            parse_date(value)

    def test_at_minutes_end_of_day(self):
        assert at_minutes(date(2035, 1, 1), MINUTES_PER_DAY) == datetime(2035, 1, 2, 0, 0)

    def test_interval_of(self):
        assert interval_of(datetime(2035, 1, 1, 10, 15), 30) == iv("10:15", "10:45")

    def test_interval_of_crossing_midnight(self):
        with pytest.raises(ValidationError):
            interval_of(datetime(2035, 1, 1, 23, 45), 30)

    def test_interval_of_rejects_non_positive_duration(self):
        with pytest.raises(ValidationError):
            interval_of(datetime(2035, 1, 1, 10, 0), 0)
