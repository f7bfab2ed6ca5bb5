"""Unit tests for the ETA heuristics and straight-line distance."""

from taxi_booking.domain.distance import haversine_km, straight_line_km
from taxi_booking.domain.entities import Place
from taxi_booking.domain.eta import (
    estimate_minutes,
    estimate_pickup_minutes,
    estimate_travel_minutes,
)


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(-20.16, 57.50, -20.16, 57.50) == 0.0

    def test_known_distance(self):
        # Port Louis -> Grand Baie is roughly 19 km as the crow flies
        d = haversine_km(-20.1609, 57.4989, -20.0064, 57.5805)
        assert 17.0 < d < 21.0

    def test_symmetric(self):
        d1 = haversine_km(-20.0, 57.0, -21.0, 58.0)
        d2 = haversine_km(-21.0, 58.0, -20.0, 57.0)
        assert abs(d1 - d2) < 1e-6

    def test_straight_line_needs_both_coordinates(self):
        port_louis = Place("Port Louis", -20.1609, 57.4989)
        assert straight_line_km(port_louis, Place("Grand Baie")) is None
        assert straight_line_km(port_louis, Place(lat=-20.0064, lng=57.5805)) == haversine_km(
            -20.1609, 57.4989, -20.0064, 57.5805
        )


class TestEstimates:
    def test_traffic_factor_applies(self):
        # 10 km at 25 km/h = 24 min, x1.2 traffic
        assert estimate_minutes(10, 25, 1.2) == 29

    def test_floor(self):
        assert estimate_minutes(0.1, 25, 1.0, floor=3) == 3

    def test_pickup_defaults_to_five_km(self):
        # 5 km at 25 km/h x 1.2 = 14.4 min
        assert estimate_pickup_minutes(None) == 14

    def test_pickup_with_known_distance(self):
        assert estimate_pickup_minutes(2.0) == 6

    def test_pickup_floor_is_three(self):
        assert estimate_pickup_minutes(0.2) == 3

    def test_travel_ignores_traffic(self):
        assert estimate_travel_minutes(10, 25) == 24

    def test_travel_floor_is_five(self):
        assert estimate_travel_minutes(1, 25) == 5

    def test_travel_unknown_without_distance_or_speed(self):
        assert estimate_travel_minutes(None, 25) is None
        assert estimate_travel_minutes(10, 0) is None
