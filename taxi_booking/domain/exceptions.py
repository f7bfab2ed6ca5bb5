"""Exception hierarchy for booking admission, pricing input and lifecycle.

Every failure in the core resolves to one of these: either the request is
rejected with a user-facing message, or a degraded dependency is recovered
locally and never reaches the caller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any


class BookingError(Exception):
    """Base exception for all booking errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(BookingError):
    """Invalid or incomplete request; never reaches admission."""


class PassengerLimitExceeded(ValidationError):
    def __init__(self, passengers: int, max_passengers: int):
        super().__init__(
            f"Sorry, maximum passengers is {max_passengers}. "
            "Please adjust and resend.",
            {"passengers": passengers, "max_passengers": max_passengers},
        )
        self.max_passengers = max_passengers


class UnknownDecision(ValidationError):
    def __init__(self, decision: str):
        super().__init__(
            "Unknown decision.", {"decision": decision}
        )


class AvailabilityRejection(BookingError):
    """The driver is not taking rides at the requested time."""

    def __init__(self, window_start: str, window_end: str, global_flag: bool = False):
        super().__init__(
            f"Sorry, the driver is unavailable between {window_start} and "
            f"{window_end}. Please choose another time.",
            {
                "unavailable_start": window_start,
                "unavailable_end": window_end,
                "unavailable_mode": global_flag,
            },
        )
        self.window_start = window_start
        self.window_end = window_end


class ScheduleConflict(BookingError):
    """The candidate window overlaps an accepted ride."""

    def __init__(self, start: datetime, end: datetime, booking_id: int | None = None):
        super().__init__(
            "Sorry, that time is not available. Already accepted "
            f"{start:%Y-%m-%d %H:%M} - {end:%Y-%m-%d %H:%M}.",
            {
                "conflict_start": start.isoformat(),
                "conflict_end": end.isoformat(),
                "conflict_booking_id": booking_id,
            },
        )
        self.start = start
        self.end = end
        self.booking_id = booking_id


class BookingNotFound(BookingError):
    def __init__(self, booking_id: int):
        super().__init__(f"Booking {booking_id} not found.", {"booking_id": booking_id})
        self.booking_id = booking_id


class DependencyDegraded(BookingError):
    """Route oracle or geocoder unreachable; callers fall back to heuristics."""


class NotificationFailure(BookingError):
    """Outbound message could not be delivered; logged, never retried."""
