"""
Straight-line distance between places.

Used when no route oracle answers.  It underestimates road distance, so it
only keeps a booking moving and is never the preferred source.
"""

from __future__ import annotations

import math
from typing import Optional

from .entities import Place

EARTH_RADIUS_KM = 6_371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in km between two coordinate pairs."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    half_dphi = math.radians(lat2 - lat1) / 2
    half_dlambda = math.radians(lng2 - lng1) / 2
    h = math.sin(half_dphi) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(half_dlambda) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def straight_line_km(origin: Place, destination: Place) -> Optional[float]:
    """None unless both places carry coordinates."""
    if not (origin.has_coordinates and destination.has_coordinates):
        return None
    return haversine_km(origin.lat, origin.lng, destination.lat, destination.lng)
