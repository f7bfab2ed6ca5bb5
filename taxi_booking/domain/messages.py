"""Customer- and driver-facing message texts.  Amounts are rounded here."""

from __future__ import annotations

from typing import Iterable, Optional

from .entities import Booking
from .enums import MissingField
from .pricing import FareBreakdown

BOOKING_FORMAT_HELP = (
    "Thanks for your message. Please send booking details in this format:\n\n"
    "Pickup: 123 Main St\n"
    "Dropoff: 500 Market St\n"
    "Date: 2026-02-05\n"
    "Time: 14:30\n"
    "Passengers: 2\n"
    "Waiting: 5 (minutes, optional)\n"
    "Distance: 12 (km, optional)\n"
    "Pickup_Distance: 4 (km from driver, optional)"
)

DRIVER_HELP = "Driver commands: ACCEPT <id>, DECLINE <id>, or LOC <lat> <lng>."
LOCATION_HELP = "Please send location as: LOC <lat> <lng>"
LOCATION_UPDATED = "Driver location updated."
GENERIC_FAILURE = "Sorry, something went wrong. Please try again in a moment."


def _money(currency: str, amount: float) -> str:
    return f"{currency} {amount:.2f}"


def missing_fields_reply(missing: Iterable[MissingField]) -> str:
    return f"{BOOKING_FORMAT_HELP}\n\nMissing: {', '.join(m.value for m in missing)}"


def fare_summary(fare: FareBreakdown) -> str:
    c = fare.currency
    return (
        f"Fare estimate: {_money(c, fare.total)} (includes base {_money(c, fare.base)}, "
        f"distance {_money(c, fare.distance_cost)}, waiting {_money(c, fare.waiting_cost)}, "
        f"passengers {_money(c, fare.passenger_cost)}, "
        f"surcharges {_money(c, fare.surcharge_amount)})."
    )


def booking_received(fare: FareBreakdown, pickup_minutes: int) -> str:
    return (
        f"{fare_summary(fare)} Estimated pickup in {pickup_minutes} minutes. "
        "Waiting for driver approval."
    )


def driver_new_booking(booking: Booking, fare: FareBreakdown) -> str:
    lines: list[Optional[str]] = [
        f"New ride request #{booking.id}",
        f"Pickup: {booking.pickup.label}",
        f"Pickup GPS: {booking.pickup.lat}, {booking.pickup.lng}"
        if booking.pickup.has_coordinates else None,
        f"Dropoff: {booking.dropoff.label}",
        f"Dropoff GPS: {booking.dropoff.lat}, {booking.dropoff.lng}"
        if booking.dropoff.has_coordinates else None,
        f"Date/Time: {booking.ride_start:%Y-%m-%d %H:%M}",
        f"Passengers: {booking.passengers}",
        f"Waiting: {booking.waiting_minutes:g} min",
        "Return: waiting then back to pickup" if booking.wait_and_return else None,
        f"Estimated pickup: {booking.estimated_pickup_minutes} min",
        f"Fare estimate: {_money(fare.currency, fare.total)}",
        f"Reply: ACCEPT {booking.id} or DECLINE {booking.id}",
    ]
    return "\n".join(line for line in lines if line)


def customer_accepted(booking: Booking, tracking_url: Optional[str] = None) -> str:
    text = (
        f"Your ride request #{booking.id} is confirmed. Driver will arrive in "
        f"about {booking.estimated_pickup_minutes} minutes."
    )
    if tracking_url:
        text += f" Track your driver: {tracking_url}"
    return text


def customer_declined(booking: Booking) -> str:
    return (
        f"Sorry, your ride request #{booking.id} was declined. "
        "Please try another time."
    )


def accepted_confirmation(booking_id: int) -> str:
    return f"Accepted booking #{booking_id}. Customer notified."


def declined_confirmation(booking_id: int) -> str:
    return f"Declined booking #{booking_id}. Customer notified."
