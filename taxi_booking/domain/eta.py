"""
ETA heuristics, used when the route oracle gives no duration.

    minutes = max(floor, round(distance / speed x 60 x traffic_factor))

The floor keeps very short hops from producing zero-minute estimates.
"""

from __future__ import annotations

from typing import Optional


def estimate_minutes(
    distance_km: float,
    avg_speed_kmh: float,
    traffic_factor: float = 1.0,
    floor: int = 3,
) -> int:
    return max(floor, round(distance_km / avg_speed_kmh * 60 * traffic_factor))


def estimate_pickup_minutes(
    driver_distance_km: Optional[float],
    default_distance_km: float = 5.0,
    avg_speed_kmh: float = 25.0,
    traffic_factor: float = 1.2,
    floor: int = 3,
) -> int:
    """Driver -> pickup estimate; unknown distances use *default_distance_km*."""
    distance = driver_distance_km if driver_distance_km is not None else default_distance_km
    return estimate_minutes(distance, avg_speed_kmh, traffic_factor, floor)


def estimate_travel_minutes(
    distance_km: Optional[float], avg_speed_kmh: float, floor: int = 5
) -> Optional[int]:
    """Pickup -> dropoff estimate; None when distance or speed is unusable."""
    if not distance_km or not avg_speed_kmh:
        return None
    return estimate_minutes(distance_km, avg_speed_kmh, 1.0, floor)
