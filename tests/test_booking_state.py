"""Unit tests for booking entity state transitions (State Pattern)."""

import pytest

from taxi_booking.domain.entities import Booking, InvalidStateTransition
from taxi_booking.domain.enums import BookingStatus


class TestBookingStateMachine:
    def test_initial_status_is_pending(self):
        booking = Booking()
        assert booking.status == BookingStatus.PENDING
        assert booking.driver_response is None

    # ── Valid transitions ─────────────────────────────────────────

    def test_pending_to_accepted(self):
        booking = Booking(status=BookingStatus.PENDING)
        booking.transition_to(BookingStatus.ACCEPTED)
        assert booking.status == BookingStatus.ACCEPTED
        assert booking.driver_response == "accepted"

    def test_pending_to_declined(self):
        booking = Booking(status=BookingStatus.PENDING)
        booking.transition_to(BookingStatus.DECLINED)
        assert booking.status == BookingStatus.DECLINED
        assert booking.driver_response == "declined"

    # ── Invalid transitions ───────────────────────────────────────

    def test_accepted_is_terminal(self):
        booking = Booking(status=BookingStatus.ACCEPTED)
        with pytest.raises(InvalidStateTransition):
            booking.transition_to(BookingStatus.DECLINED)

    def test_declined_is_terminal(self):
        booking = Booking(status=BookingStatus.DECLINED)
        with pytest.raises(InvalidStateTransition):
            booking.transition_to(BookingStatus.ACCEPTED)

    def test_accepting_twice_fails(self):
        booking = Booking(id=7, status=BookingStatus.PENDING)
        booking.transition_to(BookingStatus.ACCEPTED)
        with pytest.raises(InvalidStateTransition) as exc:
            booking.transition_to(BookingStatus.ACCEPTED)
        assert exc.value.details == {"booking_id": 7, "status": "accepted"}

    def test_failed_transition_leaves_booking_untouched(self):
        booking = Booking(status=BookingStatus.DECLINED, driver_response="declined")
        with pytest.raises(InvalidStateTransition):
            booking.transition_to(BookingStatus.PENDING)
        assert booking.status == BookingStatus.DECLINED
        assert booking.driver_response == "declined"
