"""
Tests for stylist selection and the booking transaction (in-memory providers).

Run with: pytest tests/test_booking.py -v
"""

import asyncio
from datetime import datetime

import pytest

from salon_booking.scheduling.booking import BookingService, StylistCandidate, earliest_shift_start
from salon_booking.scheduling.closures import ClosureWindow
from salon_booking.scheduling.entities import Appointment, AppointmentStatus
from salon_booking.scheduling.errors import (
    BookingConflictError,
    ConfigurationError,
    NotFoundError,
    ScheduleConflictError,
    ValidationError,
)
from salon_booking.scheduling.intervals import DayInterval

from conftest import MONDAY, NOW, SALON, SUNDAY, at


@pytest.fixture
def booking(store):
    return BookingService(**store.providers())


# ============================================================================
# SELECTION POLICY
# ============================================================================

class TestEarliestShiftStart:
    """Default selection policy."""

    def test_earliest_start_wins(self):
        candidates = [
            StylistCandidate("b", (DayInterval(13 * 60, 18 * 60),)),
            StylistCandidate("a", (DayInterval(10 * 60, 12 * 60), DayInterval(13 * 60, 16 * 60))),
        ]
        assert earliest_shift_start(candidates) == "a"

    def test_tie_broken_by_id(self):
        shift = (DayInterval(9 * 60, 17 * 60),)
        assert earliest_shift_start([StylistCandidate("m", shift), StylistCandidate("c", shift)]) == "c"

    def test_no_candidates(self):
        assert earliest_shift_start([]) is None


class TestSelectStylist:
    """Choosing a stylist for a "no preference" request."""

    @pytest.mark.asyncio
    async def test_only_stylist_who_fits(self, booking):
        assert await booking.select_stylist(SALON, MONDAY, at(MONDAY, "10:00"), 30) == "a"
        assert await booking.select_stylist(SALON, MONDAY, at(MONDAY, "17:00"), 30) == "b"

    @pytest.mark.asyncio
    async def test_both_fit_earliest_shift_wins(self, booking):
        assert await booking.select_stylist(SALON, MONDAY, at(MONDAY, "13:00"), 30) == "a"

    @pytest.mark.asyncio
    async def test_busy_stylist_skipped(self, store, booking):
        store.add_appointment(Appointment(id="ap1", stylist_id="a", start_at=at(MONDAY, "13:00"), duration_minutes=60))
        assert await booking.select_stylist(SALON, MONDAY, at(MONDAY, "13:30"), 30) == "b"

    @pytest.mark.asyncio
    async def test_closed_stylist_skipped(self, store, booking):
        store.add_closure(SALON, ClosureWindow(MONDAY, 13 * 60, 14 * 60, stylist_id="a"))
        assert await booking.select_stylist(SALON, MONDAY, at(MONDAY, "13:00"), 30) == "b"

    @pytest.mark.asyncio
    async def test_slot_must_fit_entirely(self, booking):
        """15:45 + 30 minutes runs past a's shift end; b takes it."""
        assert await booking.select_stylist(SALON, MONDAY, at(MONDAY, "15:45"), 30) == "b"
        assert await booking.select_stylist(SALON, MONDAY, at(MONDAY, "11:45"), 30) is None

    @pytest.mark.asyncio
    async def test_restricted_candidates(self, booking):
        assert await booking.select_stylist(SALON, MONDAY, at(MONDAY, "13:00"), 30, ["b"]) == "b"
        # Foreign and unknown candidates are skipped
        assert await booking.select_stylist(SALON, MONDAY, at(MONDAY, "13:00"), 30, ["z", "ghost"]) is None

    @pytest.mark.asyncio
    async def test_closed_salon(self, booking):
        assert await booking.select_stylist(SALON, SUNDAY, at(SUNDAY, "13:00"), 30) is None

    @pytest.mark.asyncio
    async def test_custom_policy(self, store):
        latest = lambda candidates: max(c.stylist_id for c in candidates) if candidates else None
        booking = BookingService(**store.providers(), policy=latest)
        assert await booking.select_stylist(SALON, MONDAY, at(MONDAY, "13:00"), 30) == "b"

    @pytest.mark.asyncio
    async def test_start_on_other_day_rejected(self, booking):
        with pytest.raises(ValidationError):
            await booking.select_stylist(SALON, MONDAY, at(SUNDAY, "13:00"), 30)


# ============================================================================
# BOOK SLOT
# ============================================================================

class TestBookSlot:
    """Re-validation and insert."""

    @pytest.mark.asyncio
    async def test_books_requested_stylist(self, store, booking):
        appointment = await booking.book_slot(SALON, "a", at(MONDAY, "10:00"), "cut", "client-1", now=NOW)
        assert appointment.stylist_id == "a"
        assert appointment.start_at == at(MONDAY, "10:00")
        assert appointment.duration_minutes == 30
        assert appointment.status == AppointmentStatus.SCHEDULED
        assert store.appointments == [appointment]

    @pytest.mark.asyncio
    async def test_no_preference_picks_stylist(self, booking):
        appointment = await booking.book_slot(SALON, None, at(MONDAY, "17:00"), "cut", "client-1", now=NOW)
        assert appointment.stylist_id == "b"

    @pytest.mark.asyncio
    async def test_no_preference_nobody_free(self, booking):
        with pytest.raises(ScheduleConflictError):
            await booking.book_slot(SALON, None, at(MONDAY, "11:45"), "cut", "client-1", now=NOW)

    @pytest.mark.asyncio
    async def test_service_without_duration_books_default(self, booking):
        appointment = await booking.book_slot(SALON, "a", at(MONDAY, "10:00"), "consult", "client-1", now=NOW)
        assert appointment.duration_minutes == 30

    @pytest.mark.asyncio
    async def test_second_booking_conflicts(self, booking):
        await booking.book_slot(SALON, "a", at(MONDAY, "10:00"), "cut", "client-1", now=NOW)
        with pytest.raises(BookingConflictError):
            await booking.book_slot(SALON, "a", at(MONDAY, "10:15"), "cut", "client-2", now=NOW)
        # Adjacent slot is still bookable
        await booking.book_slot(SALON, "a", at(MONDAY, "10:30"), "cut", "client-2", now=NOW)

    @pytest.mark.asyncio
    async def test_cancelled_slot_can_be_rebooked(self, store, booking):
        store.add_appointment(
            Appointment(
                id="old",
                stylist_id="a",
                start_at=at(MONDAY, "10:00"),
                duration_minutes=30,
                status=AppointmentStatus.CANCELLED,
            )
        )
        appointment = await booking.book_slot(SALON, "a", at(MONDAY, "10:00"), "cut", "client-1", now=NOW)
        assert appointment.id != "old"

    @pytest.mark.asyncio
    async def test_salon_closed(self, booking):
        with pytest.raises(ScheduleConflictError, match="closed"):
            await booking.book_slot(SALON, "a", at(SUNDAY, "10:00"), "cut", "client-1", now=NOW)

    @pytest.mark.asyncio
    async def test_stylist_not_working(self, store, booking):
        store.set_stylist_hours("a", 0)
        with pytest.raises(ScheduleConflictError, match="not working"):
            await booking.book_slot(SALON, "a", at(MONDAY, "10:00"), "cut", "client-1", now=NOW)

    @pytest.mark.asyncio
    async def test_cannot_finish_before_closing(self, booking):
        with pytest.raises(ScheduleConflictError, match="outside working hours"):
            await booking.book_slot(SALON, "a", at(MONDAY, "11:45"), "cut", "client-1", now=NOW)

    @pytest.mark.asyncio
    async def test_slot_spanning_touching_rows(self, store, booking):
        store.set_salon_hours(SALON, 0, ("09:00", "12:00"), ("12:00", "18:00"))
        appointment = await booking.book_slot(SALON, "a", at(MONDAY, "11:45"), "cut", "client-1", now=NOW)
        assert appointment.start_at == at(MONDAY, "11:45")

    @pytest.mark.asyncio
    async def test_inside_closure(self, store, booking):
        store.add_closure(SALON, ClosureWindow(MONDAY, 14 * 60, 15 * 60, stylist_id="a"))
        with pytest.raises(ScheduleConflictError, match="closure"):
            await booking.book_slot(SALON, "a", at(MONDAY, "14:30"), "cut", "client-1", now=NOW)

    @pytest.mark.asyncio
    async def test_in_the_past(self, booking):
        with pytest.raises(ScheduleConflictError, match="past"):
            await booking.book_slot(SALON, "a", at(MONDAY, "10:00"), "cut", "client-1", now=at(MONDAY, "10:00"))

    @pytest.mark.asyncio
    async def test_crossing_midnight(self, store, booking):
        store.set_salon_hours(SALON, 0, ("09:00", "24:00"))
        store.set_stylist_hours("a", 0, ("09:00", "24:00"))
        with pytest.raises(ValidationError):
            await booking.book_slot(SALON, "a", datetime(2035, 1, 1, 23, 45), "cut", "client-1", now=NOW)

    @pytest.mark.asyncio
    async def test_unknown_stylist(self, booking):
        with pytest.raises(NotFoundError):
            await booking.book_slot(SALON, "ghost", at(MONDAY, "10:00"), "cut", "client-1", now=NOW)

    @pytest.mark.asyncio
    async def test_stylist_of_other_salon(self, booking):
        with pytest.raises(NotFoundError):
            await booking.book_slot(SALON, "z", at(MONDAY, "10:00"), "cut", "client-1", now=NOW)

    @pytest.mark.asyncio
    async def test_inactive_stylist(self, store, booking):
        store.add_stylist(SALON, "a", "Alex", active=False)
        with pytest.raises(ScheduleConflictError):
            await booking.book_slot(SALON, "a", at(MONDAY, "10:00"), "cut", "client-1", now=NOW)

    @pytest.mark.asyncio
    async def test_unknown_service(self, booking):
        with pytest.raises(NotFoundError):
            await booking.book_slot(SALON, "a", at(MONDAY, "10:00"), "perm", "client-1", now=NOW)

    @pytest.mark.asyncio
    async def test_malformed_hours_surface_on_booking(self, store):
        class BrokenHours:
            async def get_day(self, salon_id, weekday):
                raise ConfigurationError("open row without times")

        providers = store.providers()
        providers["business_hours"] = BrokenHours()
        booking = BookingService(**providers)
        with pytest.raises(ConfigurationError):
            await booking.book_slot(SALON, "a", at(MONDAY, "10:00"), "cut", "client-1", now=NOW)


class TestBookingRace:
    """Concurrent bookings for the same stylist and time."""

    @pytest.mark.asyncio
    async def test_exactly_one_of_two_concurrent_bookings_succeeds(self, store, booking):
        results = await asyncio.gather(
            booking.book_slot(SALON, "a", at(MONDAY, "10:00"), "cut", "client-1", now=NOW),
            booking.book_slot(SALON, "a", at(MONDAY, "10:00"), "cut", "client-2", now=NOW),
            return_exceptions=True,
        )
        successes = [r for r in results if isinstance(r, Appointment)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], BookingConflictError)
        assert len(store.appointments) == 1

    @pytest.mark.asyncio
    async def test_overlapping_concurrent_bookings(self, store, booking):
        results = await asyncio.gather(
            *[
                booking.book_slot(SALON, "a", at(MONDAY, start), "cut", f"client-{i}", now=NOW)
                for i, start in enumerate(["10:00", "10:15", "10:30", "10:45"])
            ],
            return_exceptions=True,
        )
        booked = sorted(r.start_at for r in results if isinstance(r, Appointment))
        for earlier, later in zip(booked, booked[1:]):
            assert (later - earlier).total_seconds() >= 30 * 60
        assert all(isinstance(r, (Appointment, BookingConflictError)) for r in results)

    @pytest.mark.asyncio
    async def test_different_stylists_do_not_conflict(self, booking):
        results = await asyncio.gather(
            booking.book_slot(SALON, "a", at(MONDAY, "13:00"), "cut", "client-1", now=NOW),
            booking.book_slot(SALON, "b", at(MONDAY, "13:00"), "cut", "client-2", now=NOW),
        )
        assert {r.stylist_id for r in results} == {"a", "b"}
