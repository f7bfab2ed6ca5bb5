"""
Booking service tests: request -> policy -> estimate -> price -> admit ->
persist, against a real (SQLite) database.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from taxi_booking.domain.entities import Place, TripRequest
from taxi_booking.domain.enums import BookingStatus, DriverStatus
from taxi_booking.domain.exceptions import (
    AvailabilityRejection,
    BookingNotFound,
    PassengerLimitExceeded,
    ScheduleConflict,
    ValidationError,
)
from taxi_booking.infrastructure.repositories import (
    BookingRepository,
    DriverLocationRepository,
)
from taxi_booking.infrastructure.routing import RouteMetrics, RouteResolver
from taxi_booking.services.booking_service import BookingService
from tests.conftest import DRIVER_CONTACT, add_booking

CUSTOMER = "+23057000001"


def trip(hour: int, minute: int = 0, **overrides) -> TripRequest:
    values = dict(
        pickup=Place("123 Main St"),
        dropoff=Place("500 Market St"),
        start=datetime(2026, 2, 5, hour, minute),
        passengers=3,
        waiting_minutes=5,
        distance_km=10,
    )
    values.update(overrides)
    return TripRequest(**values)


@pytest.mark.usefixtures("stored_tariff")
class TestRequestRide:
    async def test_prices_and_stores_pending_booking(self, service, db_session):
        outcome = await service.request_ride(trip(22), contact=CUSTOMER, name="Asha")

        assert outcome.fare.total == pytest.approx(1088.04)
        assert outcome.fare.surcharge_labels == ["Night rate"]
        assert outcome.estimated_pickup_minutes == 10

        stored = await BookingRepository(db_session).get(outcome.booking.id)
        assert stored.status == BookingStatus.PENDING
        assert stored.customer_name == "Asha"
        assert stored.ride_start == datetime(2026, 2, 5, 22, 0)
        # 20 min travel + 5 min waiting
        assert stored.ride_end == datetime(2026, 2, 5, 22, 25)
        assert stored.fare_amount == pytest.approx(1088.04)
        assert stored.currency == "MUR"

    async def test_driver_is_notified(self, service, notifier):
        outcome = await service.request_ride(trip(14), contact=CUSTOMER)

        recipient, body = notifier.sent[0]
        assert recipient == DRIVER_CONTACT
        assert f"New ride request #{outcome.booking.id}" in body
        assert f"Reply: ACCEPT {outcome.booking.id} or DECLINE {outcome.booking.id}" in body

    async def test_missing_fields(self, service):
        with pytest.raises(ValidationError) as exc:
            await service.request_ride(TripRequest(pickup=Place("A")), contact=CUSTOMER)
        assert exc.value.details["missing"] == ["dropoff", "datetime", "passengers"]

    async def test_contact_is_required(self, service):
        with pytest.raises(ValidationError):
            await service.request_ride(trip(14), contact="")

    async def test_blackout_rejects_without_booking(self, service, db_session):
        with pytest.raises(AvailabilityRejection):
            await service.request_ride(trip(23, 45), contact=CUSTOMER)
        assert await BookingRepository(db_session).list_by_status() == []

    async def test_passenger_limit(self, service):
        with pytest.raises(PassengerLimitExceeded):
            await service.request_ride(trip(14, passengers=5), contact=CUSTOMER)

    async def test_overlap_with_accepted_ride_is_rejected(self, service, db_session):
        await add_booking(db_session, datetime(2026, 2, 5, 22, 0), status=BookingStatus.ACCEPTED)
        with pytest.raises(ScheduleConflict):
            await service.request_ride(trip(22, 30), contact=CUSTOMER)

    async def test_pending_booking_does_not_block(self, service, db_session):
        await add_booking(db_session, datetime(2026, 2, 5, 22, 0))
        outcome = await service.request_ride(trip(22, 30), contact=CUSTOMER)
        assert outcome.booking.status == BookingStatus.PENDING

    async def test_ride_may_start_when_previous_ends(self, service, db_session):
        await add_booking(db_session, datetime(2026, 2, 5, 21, 0), status=BookingStatus.ACCEPTED)
        outcome = await service.request_ride(trip(22), contact=CUSTOMER)
        assert outcome.booking.id is not None

    async def test_wait_and_return(self, service):
        outcome = await service.request_ride(trip(14, wait_and_return=True), contact=CUSTOMER)

        assert outcome.booking.distance_km == 20
        assert outcome.fare.distance_cost == pytest.approx(1800.0)
        # out 20 + wait 5 + back 20
        assert outcome.booking.ride_end == datetime(2026, 2, 5, 14, 45)

    async def test_coordinates_only_pickup_gets_gps_label(self, service):
        request = trip(14, pickup=Place(lat=-20.1619, lng=57.4977))
        outcome = await service.request_ride(request, contact=CUSTOMER)
        assert outcome.booking.pickup.label == "GPS (-20.16190, 57.49770)"
        assert outcome.booking.pickup.lat == -20.1619

    async def test_pickup_estimate_uses_stated_distance(self, service):
        outcome = await service.request_ride(
            trip(14, pickup_distance_km=15.0), contact=CUSTOMER
        )
        assert outcome.estimated_pickup_minutes == 30


@pytest.mark.usefixtures("stored_tariff")
class TestQuote:
    async def test_quote_is_not_persisted(self, service, db_session):
        quote = await service.quote(trip(22), now=datetime(2026, 2, 5, 12, 0))

        assert quote.fare.total == pytest.approx(1088.04)
        assert quote.trip.source == "override"
        assert quote.ride_end == datetime(2026, 2, 5, 22, 25)
        assert quote.pickup_label == "123 Main St"
        assert quote.driver_status == DriverStatus.AVAILABLE
        assert await BookingRepository(db_session).list_by_status() == []

    async def test_quote_needs_both_places(self, service):
        with pytest.raises(ValidationError):
            await service.quote(TripRequest(pickup=Place("A")))

    async def test_quote_respects_passenger_limit(self, service):
        with pytest.raises(PassengerLimitExceeded):
            await service.quote(trip(14, passengers=6))


class TestDriverStatus:
    async def test_in_ride_during_accepted_booking(self, service, db_session):
        await add_booking(db_session, datetime(2026, 2, 5, 14, 0), status=BookingStatus.ACCEPTED)

        assert await service.driver_status(datetime(2026, 2, 5, 14, 30)) == DriverStatus.IN_RIDE
        assert await service.driver_status(datetime(2026, 2, 5, 16, 0)) == DriverStatus.AVAILABLE

    async def test_pending_booking_is_not_a_ride(self, service, db_session):
        await add_booking(db_session, datetime(2026, 2, 5, 14, 0))
        assert await service.driver_status(datetime(2026, 2, 5, 14, 30)) == DriverStatus.AVAILABLE


CAUDAN = Place("Caudan Waterfront", -20.1619, 57.4977)


class StubRouteOracle:
    def __init__(self):
        self.calls: list[tuple[float, float, float, float]] = []

    async def optimal_route(self, origin_lat, origin_lng, dest_lat, dest_lng):
        self.calls.append((origin_lat, origin_lng, dest_lat, dest_lng))
        return RouteMetrics(
            distance_km=4.2,
            duration_minutes=9,
            geometry={"type": "LineString", "coordinates": [[57.49, -20.16], [57.4977, -20.1619]]},
        )


class TestPickupEta:
    async def test_default_estimate_without_driver_location(self, service, db_session):
        booking = await add_booking(db_session, datetime(2026, 2, 5, 14, 0))

        eta = await service.pickup_eta(booking.id, now=datetime(2026, 2, 5, 13, 0))

        assert eta.booking.id == booking.id
        assert eta.eta_minutes == 10
        assert eta.arrival_time == datetime(2026, 2, 5, 13, 10)

    async def test_driver_at_pickup_gets_floor(self, service, db_session):
        booking = await add_booking(db_session, datetime(2026, 2, 5, 14, 0), pickup=CAUDAN)
        await DriverLocationRepository(db_session).set(CAUDAN.lat, CAUDAN.lng)

        eta = await service.pickup_eta(booking.id, now=datetime(2026, 2, 5, 13, 0))

        assert eta.eta_minutes == 3

    async def test_unknown_booking(self, service):
        with pytest.raises(BookingNotFound):
            await service.pickup_eta(4040)


class TestActiveRide:
    async def test_ride_under_way_wins(self, service, db_session):
        current = await add_booking(
            db_session, datetime(2026, 2, 5, 13, 0), status=BookingStatus.ACCEPTED
        )
        await add_booking(db_session, datetime(2026, 2, 5, 15, 0), status=BookingStatus.ACCEPTED)

        active = await service.active_ride(datetime(2026, 2, 5, 13, 30))

        assert active.booking.id == current.id
        assert active.route is None

    async def test_next_accepted_ride(self, service, db_session):
        await add_booking(db_session, datetime(2026, 2, 5, 13, 0), status=BookingStatus.ACCEPTED)
        await add_booking(db_session, datetime(2026, 2, 5, 14, 30))
        await add_booking(db_session, datetime(2026, 2, 5, 18, 0), status=BookingStatus.ACCEPTED)
        sooner = await add_booking(
            db_session, datetime(2026, 2, 5, 15, 0), status=BookingStatus.ACCEPTED
        )

        active = await service.active_ride(datetime(2026, 2, 5, 14, 15))

        assert active.booking.id == sooner.id

    async def test_nothing_ahead(self, service, db_session):
        await add_booking(db_session, datetime(2026, 2, 5, 13, 0), status=BookingStatus.ACCEPTED)
        assert await service.active_ride(datetime(2026, 2, 5, 17, 0)) is None

    async def test_route_from_driver_to_pickup(self, db_session, vehicle_lock):
        oracle = StubRouteOracle()
        service = BookingService(
            db_session,
            resolver=RouteResolver(route_oracle=oracle),
            vehicle_lock=vehicle_lock,
        )
        await add_booking(
            db_session,
            datetime(2026, 2, 5, 15, 0),
            status=BookingStatus.ACCEPTED,
            pickup=CAUDAN,
        )
        await DriverLocationRepository(db_session).set(-20.16, 57.49)

        active = await service.active_ride(datetime(2026, 2, 5, 14, 0))

        assert oracle.calls == [(-20.16, 57.49, CAUDAN.lat, CAUDAN.lng)]
        assert active.route.duration_minutes == 9
        assert active.route.geometry["type"] == "LineString"
