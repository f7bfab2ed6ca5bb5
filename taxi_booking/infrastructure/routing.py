"""
Route oracle clients and the fallback resolver.

Clients
-------
* ``GoogleDistanceMatrixClient.route_metrics`` -- distance + traffic-aware
  duration between two free-form places (addresses or ``"lat,lng"``).
* ``OSRMClient.optimal_route`` -- road distance, duration and GeoJSON
  geometry between two coordinate pairs.

Both use ``httpx.AsyncClient`` with a timeout and raise
``DependencyDegraded`` on timeouts, network errors and 5xx responses.  A
well-formed "no route" answer is ``None``.

Fallback order (``RouteResolver.trip_metrics``)
-----------------------------------------------
explicit distance  ->  OSRM (coordinates)  ->  Distance Matrix
->  haversine (coordinates)  ->  configured default distance

Missing durations are filled by the ETA estimator.  Nothing here ever
raises to the caller.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx

from taxi_booking.domain.distance import straight_line_km
from taxi_booking.domain.entities import DriverLocation, Place
from taxi_booking.domain.eta import estimate_pickup_minutes, estimate_travel_minutes
from taxi_booking.domain.exceptions import DependencyDegraded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteMetrics:
    distance_km: float
    duration_minutes: Optional[int]
    geometry: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class TripMetrics:
    distance_km: float
    travel_minutes: int
    source: str  # "override" | "osrm" | "google" | "haversine" | "default"
    geometry: Optional[dict[str, Any]] = None


class RouteMetricsOracle(Protocol):
    async def route_metrics(
        self, origin: str, destination: str, departure_time: Optional[int] = None
    ) -> Optional[RouteMetrics]: ...


class OptimalRouteOracle(Protocol):
    async def optimal_route(
        self, origin_lat: float, origin_lng: float, dest_lat: float, dest_lng: float
    ) -> Optional[RouteMetrics]: ...


async def _get_json(url: str, params: dict[str, Any], timeout: float, service: str) -> Any:
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url, params=params)
    except httpx.TimeoutException as e:
        raise DependencyDegraded(f"{service} timed out after {timeout}s") from e
    except httpx.HTTPError as e:
        raise DependencyDegraded(f"{service} network error: {e}") from e

    if response.status_code >= 400:
        raise DependencyDegraded(
            f"{service} error: {response.status_code}",
            {"status_code": response.status_code},
        )
    try:
        return response.json()
    except ValueError as e:
        raise DependencyDegraded(f"{service} returned invalid JSON") from e


class GoogleDistanceMatrixClient:
    URL = "https://maps.googleapis.com/maps/api/distancematrix/json"

    def __init__(self, api_key: str, timeout: float = 5.0):
        self.api_key = api_key
        self.timeout = timeout

    async def route_metrics(
        self, origin: str, destination: str, departure_time: Optional[int] = None
    ) -> Optional[RouteMetrics]:
        if not origin or not destination:
            return None
        params: dict[str, Any] = {
            "origins": origin,
            "destinations": destination,
            "key": self.api_key,
        }
        if departure_time:
            params["departure_time"] = str(departure_time)

        data = await _get_json(self.URL, params, self.timeout, "Distance Matrix")
        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError):
            return None
        if element.get("status") != "OK":
            return None

        meters = (element.get("distance") or {}).get("value")
        seconds = (element.get("duration_in_traffic") or {}).get("value") or (
            element.get("duration") or {}
        ).get("value")
        if not meters or not seconds:
            return None
        return RouteMetrics(distance_km=meters / 1000, duration_minutes=round(seconds / 60))


class OSRMClient:
    def __init__(self, base_url: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def optimal_route(
        self, origin_lat: float, origin_lng: float, dest_lat: float, dest_lng: float
    ) -> Optional[RouteMetrics]:
        url = (
            f"{self.base_url}/route/v1/driving/"
            f"{origin_lng},{origin_lat};{dest_lng},{dest_lat}"
        )
        params = {"overview": "full", "geometries": "geojson"}

        data = await _get_json(url, params, self.timeout, "OSRM")
        routes = data.get("routes") if isinstance(data, dict) else None
        if not routes:
            return None
        route = routes[0]
        if not route.get("distance"):
            return None
        duration = route.get("duration")
        return RouteMetrics(
            distance_km=route["distance"] / 1000,
            duration_minutes=round(duration / 60) if duration else None,
            geometry=route.get("geometry"),
        )


def parse_origin(value: str) -> Optional[tuple[float, float]]:
    """``"lat,lng"`` -> (lat, lng), else None."""
    try:
        lat, lng = (float(part) for part in value.split(","))
    except (AttributeError, ValueError):
        return None
    return lat, lng


class RouteResolver:
    """Single place where live lookups degrade to heuristics."""

    def __init__(
        self,
        *,
        metrics_oracle: Optional[RouteMetricsOracle] = None,
        route_oracle: Optional[OptimalRouteOracle] = None,
        avg_speed_kmh: float = 25.0,
        traffic_factor: float = 1.2,
        default_trip_distance_km: float = 5.0,
        default_pickup_distance_km: float = 5.0,
        min_pickup_minutes: int = 3,
        min_travel_minutes: int = 5,
        default_driver_origin: str = "",
    ):
        self.metrics_oracle = metrics_oracle
        self.route_oracle = route_oracle
        self.avg_speed_kmh = avg_speed_kmh
        self.traffic_factor = traffic_factor
        self.default_trip_distance_km = default_trip_distance_km
        self.default_pickup_distance_km = default_pickup_distance_km
        self.min_pickup_minutes = min_pickup_minutes
        self.min_travel_minutes = min_travel_minutes
        self.default_driver_origin = default_driver_origin

    async def _metrics(
        self, origin: Optional[str], destination: Optional[str], departure_time: Optional[int] = None
    ) -> Optional[RouteMetrics]:
        if self.metrics_oracle is None or not origin or not destination:
            return None
        try:
            return await self.metrics_oracle.route_metrics(origin, destination, departure_time)
        except DependencyDegraded as e:
            logger.warning("Route metrics lookup failed, using fallback: %s", e.message)
            return None

    async def _optimal(self, origin: Place, destination: Place) -> Optional[RouteMetrics]:
        if self.route_oracle is None:
            return None
        if not (origin.has_coordinates and destination.has_coordinates):
            return None
        try:
            return await self.route_oracle.optimal_route(
                origin.lat, origin.lng, destination.lat, destination.lng
            )
        except DependencyDegraded as e:
            logger.warning("Optimal route lookup failed, using fallback: %s", e.message)
            return None

    def _travel(self, distance_km: float, duration: Optional[int]) -> int:
        if duration:
            return duration
        estimate = estimate_travel_minutes(
            distance_km, self.avg_speed_kmh, self.min_travel_minutes
        )
        return estimate if estimate is not None else self.min_travel_minutes

    async def trip_metrics(
        self, pickup: Place, dropoff: Place, distance_override: Optional[float] = None
    ) -> TripMetrics:
        if distance_override and distance_override > 0:
            return TripMetrics(
                distance_override, self._travel(distance_override, None), "override"
            )

        route = await self._optimal(pickup, dropoff)
        if route is not None:
            return TripMetrics(
                route.distance_km,
                self._travel(route.distance_km, route.duration_minutes),
                "osrm",
                route.geometry,
            )

        metrics = await self._metrics(pickup.as_query(), dropoff.as_query())
        if metrics is not None:
            return TripMetrics(
                metrics.distance_km,
                self._travel(metrics.distance_km, metrics.duration_minutes),
                "google",
            )

        distance = straight_line_km(pickup, dropoff)
        if distance is not None:
            return TripMetrics(distance, self._travel(distance, None), "haversine")

        distance = self.default_trip_distance_km
        return TripMetrics(distance, self._travel(distance, None), "default")

    def driver_origin(self, location: Optional[DriverLocation]) -> Optional[Place]:
        if location is not None:
            return Place(lat=location.lat, lng=location.lng)
        coords = parse_origin(self.default_driver_origin)
        if coords is not None:
            return Place(lat=coords[0], lng=coords[1])
        return None

    async def driver_route(
        self, pickup: Place, driver_location: Optional[DriverLocation] = None
    ) -> Optional[RouteMetrics]:
        """Road route from the driver (or the default origin) to *pickup*."""
        origin = self.driver_origin(driver_location)
        if origin is None:
            return None
        return await self._optimal(origin, pickup)

    async def pickup_minutes(
        self,
        pickup: Place,
        driver_location: Optional[DriverLocation] = None,
        driver_distance_km: Optional[float] = None,
    ) -> int:
        """Driver -> pickup ETA: live duration, else the estimator."""
        origin = self.driver_origin(driver_location)
        if origin is not None:
            metrics = await self._metrics(
                origin.as_query(), pickup.as_query(), int(time.time())
            )
            if metrics is not None and metrics.duration_minutes:
                return metrics.duration_minutes
            route = await self._optimal(origin, pickup)
            if route is not None and route.duration_minutes:
                return route.duration_minutes
            if driver_distance_km is None:
                driver_distance_km = straight_line_km(origin, pickup)

        return estimate_pickup_minutes(
            driver_distance_km,
            default_distance_km=self.default_pickup_distance_km,
            avg_speed_kmh=self.avg_speed_kmh,
            traffic_factor=self.traffic_factor,
            floor=self.min_pickup_minutes,
        )
