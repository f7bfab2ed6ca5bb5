"""Reverse geocoding through Nominatim.  Failures never leave this module."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from taxi_booking.domain.entities import Place
from taxi_booking.domain.exceptions import DependencyDegraded

logger = logging.getLogger(__name__)

USER_AGENT = "taxi-booking-backend/1.0"


class NominatimGeocoder:
    def __init__(self, base_url: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def address_for(self, lat: float, lng: float) -> Optional[str]:
        params = {"format": "jsonv2", "lat": lat, "lon": lng}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, headers={"User-Agent": USER_AGENT}
            ) as client:
                response = await client.get(f"{self.base_url}/reverse", params=params)
        except httpx.HTTPError as e:
            raise DependencyDegraded(f"Reverse geocode failed: {e}") from e
        if response.status_code >= 400:
            return None
        try:
            data = response.json()
        except ValueError:
            return None
        return data.get("display_name") if isinstance(data, dict) else None


async def label_for(place: Place, geocoder: Optional[NominatimGeocoder]) -> str:
    """Typed label first, then the geocoded address, then a GPS label."""
    if place.label:
        return place.label
    if not place.has_coordinates:
        return ""
    if geocoder is not None:
        try:
            address = await geocoder.address_for(place.lat, place.lng)
        except DependencyDegraded as e:
            logger.warning("%s; using GPS label", e.message)
            address = None
        if address:
            return address
    return place.gps_label()
