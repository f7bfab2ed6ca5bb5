"""Domain enumerations and state-transition rules."""

import enum


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


# State machine: maps current status -> set of valid next statuses
BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.ACCEPTED, BookingStatus.DECLINED},
    BookingStatus.ACCEPTED: set(),
    BookingStatus.DECLINED: set(),
}


class DriverDecision(str, enum.Enum):
    ACCEPT = "accept"
    DECLINE = "decline"


class MissingField(str, enum.Enum):
    """Required trip fields a free-text request may fail to provide.

    Values double as the phrases shown to the customer.
    """

    PICKUP = "pickup location"
    DROPOFF = "drop-off location"
    DATETIME = "date and time"
    PASSENGERS = "number of passengers"


class SurchargeKind(str, enum.Enum):
    NIGHT = "Night rate"
    WEEKEND = "Weekend"
    HOLIDAY = "Holiday"
    PEAK = "Peak hours"


class DriverStatus(str, enum.Enum):
    AVAILABLE = "available"
    IN_RIDE = "currently_in_ride"
