"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from taxi_booking.domain.availability import parse_hhmm
from taxi_booking.domain.entities import Booking, Place, TripRequest
from taxi_booking.domain.pricing import FareBreakdown


# ── Requests ──────────────────────────────────────────────────────────


class TripFields(BaseModel):
    pickup: Optional[str] = Field(None, max_length=255)
    pickup_lat: Optional[float] = Field(None, ge=-90, le=90)
    pickup_lng: Optional[float] = Field(None, ge=-180, le=180)
    dropoff: Optional[str] = Field(None, max_length=255)
    dropoff_lat: Optional[float] = Field(None, ge=-90, le=90)
    dropoff_lng: Optional[float] = Field(None, ge=-180, le=180)
    ride_datetime: Optional[datetime] = None
    passengers: Optional[int] = Field(None, ge=1)
    waiting_minutes: float = Field(0, ge=0)
    distance_km: Optional[float] = Field(
        None, gt=0, description="Overrides the route lookup when given."
    )
    wait_and_return: bool = False

    def to_trip_request(self) -> TripRequest:
        return TripRequest(
            pickup=Place(self.pickup or None, self.pickup_lat, self.pickup_lng),
            dropoff=Place(self.dropoff or None, self.dropoff_lat, self.dropoff_lng),
            start=self.ride_datetime,
            passengers=self.passengers,
            waiting_minutes=self.waiting_minutes,
            distance_km=self.distance_km,
            wait_and_return=self.wait_and_return,
        )


class BookingCreateRequest(TripFields):
    name: str = Field(..., min_length=1, max_length=120)
    phone: str = Field(..., min_length=3, max_length=64)
    ride_datetime: datetime
    passengers: int = Field(..., ge=1)


class QuoteRequest(TripFields):
    pass


class DriverLocationRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


def _clock_time(value: Optional[str]) -> Optional[str]:
    if value is not None and parse_hhmm(value) is None:
        raise ValueError(f"{value!r} is not a valid HH:MM time")
    return value


class PeakWindowSchema(BaseModel):
    start: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    end: str = Field(..., pattern=r"^\d{2}:\d{2}$")
    surcharge_percent: float = Field(0, ge=0)

    @field_validator("start", "end")
    @classmethod
    def _valid_clock_time(cls, value: str) -> str:
        return _clock_time(value)


class TariffUpdateRequest(BaseModel):
    """Partial update; omitted fields keep their current value."""

    currency: Optional[str] = Field(None, min_length=3, max_length=8)
    base_fare: Optional[float] = Field(None, ge=0)
    per_km: Optional[float] = Field(None, ge=0)
    waiting_per_minute: Optional[float] = Field(None, ge=0)
    waiting_free_minutes: Optional[float] = Field(None, ge=0)
    extra_passenger_fee: Optional[float] = Field(None, ge=0)
    extra_passenger_percent: Optional[float] = Field(None, ge=0)
    included_passengers: Optional[int] = Field(None, ge=1)
    max_passengers: Optional[int] = Field(None, ge=1)
    return_trip_multiplier: Optional[float] = Field(None, ge=1)
    night_surcharge_percent: Optional[float] = Field(None, ge=0)
    weekend_surcharge_percent: Optional[float] = Field(None, ge=0)
    holiday_surcharge_percent: Optional[float] = Field(None, ge=0)
    peak_hours: Optional[list[PeakWindowSchema]] = None
    holidays: Optional[list[str]] = None
    unavailable_mode: Optional[bool] = None
    unavailable_start: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    unavailable_end: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")

    @field_validator("unavailable_start", "unavailable_end")
    @classmethod
    def _valid_clock_time(cls, value: Optional[str]) -> Optional[str]:
        return _clock_time(value)

    @model_validator(mode="after")
    def _holidays_are_dates(self) -> "TariffUpdateRequest":
        for value in self.holidays or []:
            datetime.strptime(value, "%Y-%m-%d")
        return self


# ── Responses ─────────────────────────────────────────────────────────


class SurchargeResponse(BaseModel):
    label: str
    percent: float
    amount: float


class FareResponse(BaseModel):
    currency: str
    base: float
    distance_cost: float
    waiting_cost: float
    passenger_cost: float
    subtotal: float
    surcharge_amount: float
    surcharges: list[SurchargeResponse] = []
    total: float

    @classmethod
    def from_fare(cls, fare: FareBreakdown) -> "FareResponse":
        return cls(
            currency=fare.currency,
            base=fare.base,
            distance_cost=fare.distance_cost,
            waiting_cost=fare.waiting_cost,
            passenger_cost=fare.passenger_cost,
            subtotal=fare.subtotal,
            surcharge_amount=fare.surcharge_amount,
            surcharges=[
                SurchargeResponse(label=s.label, percent=s.percent, amount=s.amount)
                for s in fare.surcharges
            ],
            total=fare.total,
        )


class BookingResponse(BaseModel):
    id: int
    customer_name: Optional[str] = None
    customer_contact: str
    pickup_location: str
    pickup_lat: Optional[float] = None
    pickup_lng: Optional[float] = None
    dropoff_location: str
    dropoff_lat: Optional[float] = None
    dropoff_lng: Optional[float] = None
    ride_datetime: datetime
    ride_end_datetime: datetime
    passengers: int
    waiting_minutes: float
    wait_and_return: bool
    distance_km: float
    estimated_pickup_minutes: Optional[int] = None
    fare_amount: float
    currency: str
    status: str
    driver_response: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            customer_name=booking.customer_name,
            customer_contact=booking.customer_contact,
            pickup_location=booking.pickup.label or "",
            pickup_lat=booking.pickup.lat,
            pickup_lng=booking.pickup.lng,
            dropoff_location=booking.dropoff.label or "",
            dropoff_lat=booking.dropoff.lat,
            dropoff_lng=booking.dropoff.lng,
            ride_datetime=booking.ride_start,
            ride_end_datetime=booking.ride_end,
            passengers=booking.passengers,
            waiting_minutes=booking.waiting_minutes,
            wait_and_return=booking.wait_and_return,
            distance_km=booking.distance_km,
            estimated_pickup_minutes=booking.estimated_pickup_minutes,
            fare_amount=booking.fare_amount,
            currency=booking.currency,
            status=booking.status.value,
            driver_response=booking.driver_response,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class BookingCreatedResponse(BaseModel):
    booking: BookingResponse
    fare: FareResponse
    estimated_pickup_minutes: int
    arrival_time: Optional[datetime] = None


class QuoteResponse(BaseModel):
    distance_km: float
    distance_source: str
    travel_minutes: int
    ride_datetime: datetime
    ride_end_datetime: datetime
    estimated_pickup_minutes: int
    pickup_address: str
    dropoff_address: str
    driver_status: str
    geometry: Optional[dict[str, Any]] = None
    fare: FareResponse


class DecisionResponse(BaseModel):
    ok: bool = True
    message: str


class DriverLocationResponse(BaseModel):
    lat: float
    lng: float
    updated_at: Optional[datetime] = None
    address: Optional[str] = None


class DriverStatusResponse(BaseModel):
    status: str


class PickupEtaResponse(BaseModel):
    booking_id: int
    status: str
    eta_minutes: int
    arrival_time: datetime


class ActiveBookingResponse(BaseModel):
    booking_id: int
    customer_name: Optional[str] = None
    pickup_location: str
    pickup_lat: Optional[float] = None
    pickup_lng: Optional[float] = None
    ride_datetime: datetime
    ride_end_datetime: datetime
    route: Optional[dict[str, Any]] = None
    eta_minutes: Optional[int] = None
    distance_km: Optional[float] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    database: bool = True
    redis: bool = True


class ErrorResponse(BaseModel):
    detail: str
