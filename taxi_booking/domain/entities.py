"""
Domain entities and value objects.

Patterns used
-------------
- **State Pattern** on ``Booking``: enforces valid lifecycle transitions
  (PENDING -> ACCEPTED | DECLINED).
- ``Tariff`` is an immutable snapshot of the pricing / availability policy
  taken once per request.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Any, Mapping, Optional

from .enums import BOOKING_TRANSITIONS, BookingStatus, MissingField
from .exceptions import BookingError


class InvalidStateTransition(BookingError):
    """Raised when a booking status change violates the state machine."""


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class PeakWindow:
    start: str  # "HH:MM", inclusive
    end: str  # "HH:MM", inclusive
    surcharge_percent: float = 0.0


@dataclass(frozen=True)
class Tariff:
    currency: str = "MUR"
    base_fare: float = 4.0
    per_km: float = 90.0
    waiting_per_minute: float = 0.5
    waiting_free_minutes: float = 3.0
    extra_passenger_fee: float = 2.0
    extra_passenger_percent: float = 0.0
    included_passengers: int = 2
    max_passengers: int = 4
    return_trip_multiplier: float = 2.0
    night_surcharge_percent: float = 0.0
    weekend_surcharge_percent: float = 0.0
    holiday_surcharge_percent: float = 0.0
    peak_hours: tuple[PeakWindow, ...] = ()
    holidays: tuple[date, ...] = ()
    unavailable_mode: bool = False
    unavailable_start: str = "20:00"
    unavailable_end: str = "06:00"

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Tariff":
        """Build a tariff from plain (JSON-like) values, ignoring unknown keys."""
        values = {k: v for k, v in data.items() if k in cls.field_names()}
        if "peak_hours" in values:
            values["peak_hours"] = tuple(
                w if isinstance(w, PeakWindow) else PeakWindow(
                    start=w["start"],
                    end=w["end"],
                    surcharge_percent=float(w.get("surcharge_percent", 0)),
                )
                for w in values["peak_hours"]
            )
        if "holidays" in values:
            values["holidays"] = tuple(
                d if isinstance(d, date) else date.fromisoformat(d)
                for d in values["holidays"]
            )
        return cls(**values)

    def to_mapping(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["peak_hours"] = [
            {"start": w.start, "end": w.end, "surcharge_percent": w.surcharge_percent}
            for w in self.peak_hours
        ]
        data["holidays"] = [d.isoformat() for d in self.holidays]
        return data


@dataclass(frozen=True)
class Place:
    label: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def is_known(self) -> bool:
        return bool(self.label) or self.has_coordinates

    def as_query(self) -> Optional[str]:
        """Origin / destination string understood by the route oracle."""
        if self.has_coordinates:
            return f"{self.lat},{self.lng}"
        return self.label or None

    def gps_label(self) -> str:
        return f"GPS ({self.lat:.5f}, {self.lng:.5f})"


@dataclass(frozen=True)
class TripRequest:
    pickup: Place = field(default_factory=Place)
    dropoff: Place = field(default_factory=Place)
    start: Optional[datetime] = None
    passengers: Optional[int] = None
    waiting_minutes: float = 0.0
    distance_km: Optional[float] = None  # explicit override
    pickup_distance_km: Optional[float] = None  # driver -> pickup, if known
    wait_and_return: bool = False

    def missing_fields(self) -> list[MissingField]:
        missing: list[MissingField] = []
        if not self.pickup.is_known:
            missing.append(MissingField.PICKUP)
        if not self.dropoff.is_known:
            missing.append(MissingField.DROPOFF)
        if self.start is None:
            missing.append(MissingField.DATETIME)
        if not self.passengers:
            missing.append(MissingField.PASSENGERS)
        return missing


@dataclass(frozen=True)
class ParsedRequest:
    request: TripRequest
    missing: list[MissingField] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval ``[start, end)``."""

    start: datetime
    end: datetime
    booking_id: Optional[int] = None


@dataclass(frozen=True)
class DriverLocation:
    lat: float
    lng: float
    updated_at: Optional[datetime] = None


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Booking:
    id: Optional[int] = None
    customer_contact: str = ""
    customer_name: Optional[str] = None
    pickup: Place = field(default_factory=Place)
    dropoff: Place = field(default_factory=Place)
    ride_start: Optional[datetime] = None
    ride_end: Optional[datetime] = None
    passengers: int = 1
    waiting_minutes: float = 0.0
    wait_and_return: bool = False
    distance_km: float = 0.0
    estimated_pickup_minutes: Optional[int] = None
    fare_amount: float = 0.0
    currency: str = "MUR"
    status: BookingStatus = BookingStatus.PENDING
    driver_response: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.ride_start, self.ride_end, self.id)

    def transition_to(self, new_status: BookingStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = BOOKING_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition booking from {self.status.value} "
                f"to {new_status.value}",
                {"booking_id": self.id, "status": self.status.value},
            )
        self.status = new_status
        self.driver_response = new_status.value
