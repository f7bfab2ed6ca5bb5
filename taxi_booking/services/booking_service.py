"""
Booking Service
===============

Turns a structured ``TripRequest`` into a pending booking.

Flow per request
----------------
1. Validate required fields.
2. Load the tariff snapshot; run the policy checks (unavailable flag,
   blackout window, passenger limit) before any external lookup.
3. Resolve trip distance / travel time and the driver's pickup ETA through
   ``RouteResolver`` (degrades to heuristics, never fails).
4. Derive the ride window and price the trip.
5. **Under the vehicle lock**: read the accepted bookings, run the full
   admission check, insert the pending booking, commit.
6. Notify the driver (best-effort).

The same service answers the driver-side reads: current status, the
pickup ETA for a booking and the ride the driver should head to next.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import AsyncContextManager, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from taxi_booking.domain import messages
from taxi_booking.domain.admission import active_ride_at, admit, check_policy, ride_end
from taxi_booking.domain.availability import to_local
from taxi_booking.domain.entities import Booking, Place, TimeWindow, TripRequest
from taxi_booking.domain.enums import BookingStatus, DriverStatus
from taxi_booking.domain.exceptions import (
    BookingNotFound,
    PassengerLimitExceeded,
    ValidationError,
)
from taxi_booking.domain.pricing import FareBreakdown, PricingEngine
from taxi_booking.infrastructure.geocoding import NominatimGeocoder, label_for
from taxi_booking.infrastructure.notifications import Notifier, notify
from taxi_booking.infrastructure.repositories import (
    BookingRepository,
    DriverLocationRepository,
    SettingsRepository,
)
from taxi_booking.infrastructure.routing import RouteMetrics, RouteResolver, TripMetrics

logger = logging.getLogger(__name__)

LockFactory = Callable[[], AsyncContextManager]


@dataclass(frozen=True)
class BookingOutcome:
    booking: Booking
    fare: FareBreakdown
    estimated_pickup_minutes: int


@dataclass(frozen=True)
class Quote:
    fare: FareBreakdown
    trip: TripMetrics
    ride_start: datetime
    ride_end: datetime
    estimated_pickup_minutes: int
    pickup_label: str
    dropoff_label: str
    driver_status: DriverStatus


@dataclass(frozen=True)
class PickupEta:
    booking: Booking
    eta_minutes: int
    arrival_time: datetime


@dataclass(frozen=True)
class ActiveRide:
    booking: Booking
    route: Optional[RouteMetrics]


class BookingService:
    def __init__(
        self,
        session: AsyncSession,
        *,
        resolver: RouteResolver,
        vehicle_lock: LockFactory,
        notifier: Optional[Notifier] = None,
        geocoder: Optional[NominatimGeocoder] = None,
        driver_contact: str = "",
        timezone: str = "UTC",
    ):
        self.session = session
        self.bookings = BookingRepository(session)
        self.settings = SettingsRepository(session)
        self.driver_locations = DriverLocationRepository(session)
        self.resolver = resolver
        self.vehicle_lock = vehicle_lock
        self.notifier = notifier
        self.geocoder = geocoder
        self.driver_contact = driver_contact
        self.timezone = timezone

    @staticmethod
    def validate(request: TripRequest) -> None:
        missing = request.missing_fields()
        if missing:
            raise ValidationError(
                f"Missing: {', '.join(m.value for m in missing)}",
                {"missing": [m.name.lower() for m in missing]},
            )
        if request.passengers < 1:
            raise ValidationError("Passengers must be at least 1.")
        if request.waiting_minutes < 0:
            raise ValidationError("Waiting minutes cannot be negative.")

    async def _estimate(self, request: TripRequest, start: datetime):
        trip = await self.resolver.trip_metrics(
            request.pickup, request.dropoff, request.distance_km
        )
        pickup_minutes = await self.resolver.pickup_minutes(
            request.pickup,
            await self.driver_locations.get(),
            request.pickup_distance_km,
        )
        end = ride_end(
            start, trip.travel_minutes, request.waiting_minutes, request.wait_and_return
        )
        return trip, pickup_minutes, end

    async def request_ride(
        self,
        request: TripRequest,
        contact: str,
        name: Optional[str] = None,
    ) -> BookingOutcome:
        self.validate(request)
        if not contact:
            raise ValidationError("A contact number is required.")

        start = to_local(request.start, self.timezone)
        tariff = await self.settings.get_tariff()
        check_policy(tariff, start, request.passengers)

        trip, pickup_minutes, end = await self._estimate(request, start)
        pricing = PricingEngine(tariff)
        fare = pricing.quote(
            trip.distance_km,
            start,
            request.passengers,
            request.waiting_minutes,
            request.wait_and_return,
        )

        candidate = Booking(
            customer_contact=contact,
            customer_name=name,
            pickup=Place(
                await label_for(request.pickup, self.geocoder),
                request.pickup.lat,
                request.pickup.lng,
            ),
            dropoff=Place(
                await label_for(request.dropoff, self.geocoder),
                request.dropoff.lat,
                request.dropoff.lng,
            ),
            ride_start=start,
            ride_end=end,
            passengers=request.passengers,
            waiting_minutes=request.waiting_minutes,
            wait_and_return=request.wait_and_return,
            distance_km=pricing.priced_distance(trip.distance_km, request.wait_and_return),
            estimated_pickup_minutes=pickup_minutes,
            fare_amount=fare.total,
            currency=fare.currency,
            status=BookingStatus.PENDING,
        )

        async with self.vehicle_lock():
            admit(
                tariff,
                TimeWindow(start, end),
                request.passengers,
                await self.bookings.accepted_windows(),
            )
            booking = await self.bookings.create(
                candidate,
                ride_duration_minutes=(end - start).total_seconds() / 60,
            )
            await self.session.commit()

        logger.info(
            "Booking %s admitted (%s - %s, %s %.2f, distance via %s)",
            booking.id, start, end, fare.currency, fare.total, trip.source,
        )
        if self.driver_contact:
            await notify(
                self.notifier,
                self.driver_contact,
                messages.driver_new_booking(booking, fare),
            )
        return BookingOutcome(booking, fare, pickup_minutes)

    async def quote(self, request: TripRequest, now: Optional[datetime] = None) -> Quote:
        """Price preview: no admission, nothing persisted."""
        if not request.pickup.is_known or not request.dropoff.is_known:
            raise ValidationError("Pickup and drop-off are required for a quote.")
        now = to_local(now or datetime.now().astimezone(), self.timezone)
        start = to_local(request.start, self.timezone) if request.start else now
        passengers = request.passengers or 1

        tariff = await self.settings.get_tariff()
        if passengers > tariff.max_passengers:
            raise PassengerLimitExceeded(passengers, tariff.max_passengers)

        trip, pickup_minutes, end = await self._estimate(request, start)
        fare = PricingEngine(tariff).quote(
            trip.distance_km, start, passengers, request.waiting_minutes, request.wait_and_return
        )
        return Quote(
            fare=fare,
            trip=trip,
            ride_start=start,
            ride_end=end,
            estimated_pickup_minutes=pickup_minutes,
            pickup_label=await label_for(request.pickup, self.geocoder),
            dropoff_label=await label_for(request.dropoff, self.geocoder),
            driver_status=await self.driver_status(now),
        )

    async def driver_status(self, now: Optional[datetime] = None) -> DriverStatus:
        now = to_local(now or datetime.now().astimezone(), self.timezone)
        current = active_ride_at(now, await self.bookings.accepted_windows())
        return DriverStatus.IN_RIDE if current else DriverStatus.AVAILABLE

    async def pickup_eta(self, booking_id: int, now: Optional[datetime] = None) -> PickupEta:
        """Driver -> pickup ETA for a stored booking, from the last known position."""
        booking = await self.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        now = to_local(now or datetime.now().astimezone(), self.timezone)
        minutes = await self.resolver.pickup_minutes(
            booking.pickup, await self.driver_locations.get()
        )
        return PickupEta(booking, minutes, now + timedelta(minutes=minutes))

    async def active_ride(self, now: Optional[datetime] = None) -> Optional[ActiveRide]:
        """Accepted ride under way at *now*, else the next one to start."""
        now = to_local(now or datetime.now().astimezone(), self.timezone)
        windows = await self.bookings.accepted_windows()
        current = active_ride_at(now, windows) or min(
            (w for w in windows if w.start > now), key=lambda w: w.start, default=None
        )
        if current is None:
            return None
        booking = await self.bookings.get(current.booking_id)
        route = await self.resolver.driver_route(
            booking.pickup, await self.driver_locations.get()
        )
        return ActiveRide(booking, route)
