"""
Free-form request parser.

Customers send one ``key: value`` (or ``key= value``) pair per line or per
comma-separated chunk::

    Pickup: 123 Main St
    Dropoff: 500 Market St
    Date: 2026-02-05
    Time: 14:30
    Passengers: 2

Keys are case-insensitive; unknown lines are ignored.  Anything required
but unresolved is reported in ``ParsedRequest.missing``.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import NamedTuple, Optional

from .entities import ParsedRequest, Place, TripRequest
from .enums import DriverDecision

_KEYS = (
    "pickup_distance|pickup-distance|pickup|dropoff|drop-off|datetime|date|time"
    "|passengers|pax|waiting|wait|distance"
)
_LINE_RE = re.compile(rf"^({_KEYS})\s*[:=]\s*(.+)$", re.IGNORECASE)
_SPLIT_RE = re.compile(r"\n|,")
_NON_NUMERIC_RE = re.compile(r"[^0-9.]")

_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %I:%M %p",
    "%Y-%m-%d %I:%M%p",
    "%d-%m-%Y %H:%M",
)

_DECISION_RE = re.compile(r"^(accept|decline)\s+(\d+)", re.IGNORECASE)
_LOC_RE = re.compile(r"^loc", re.IGNORECASE)


def parse_key_values(text: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for raw in _SPLIT_RE.split(text):
        line = raw.strip()
        if not line:
            continue
        match = _LINE_RE.match(line)
        if match:
            values[match.group(1).lower()] = match.group(2).strip()
    return values


def parse_datetime(
    date_str: Optional[str] = None,
    time_str: Optional[str] = None,
    datetime_str: Optional[str] = None,
) -> Optional[datetime]:
    """Combined token wins; otherwise both date and time are required."""
    if datetime_str:
        candidate = datetime_str
    elif date_str and time_str:
        candidate = f"{date_str} {time_str}"
    else:
        return None

    candidate = candidate.strip().replace("/", "-")
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        pass
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue
    return None


def parse_number(value: Optional[str]) -> Optional[float]:
    """Strip everything but digits and dots; unparsable means absent."""
    if not value:
        return None
    cleaned = _NON_NUMERIC_RE.sub("", str(value))
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_booking_message(text: str) -> ParsedRequest:
    values = parse_key_values(text.strip())

    passengers = parse_number(values.get("passengers") or values.get("pax"))
    waiting = parse_number(values.get("waiting") or values.get("wait"))

    request = TripRequest(
        pickup=Place(label=values.get("pickup")),
        dropoff=Place(label=values.get("dropoff") or values.get("drop-off")),
        start=parse_datetime(
            date_str=values.get("date"),
            time_str=values.get("time"),
            datetime_str=values.get("datetime"),
        ),
        passengers=int(passengers) if passengers else None,
        waiting_minutes=waiting or 0.0,
        distance_km=parse_number(values.get("distance")),
        pickup_distance_km=parse_number(
            values.get("pickup_distance") or values.get("pickup-distance")
        ),
    )
    return ParsedRequest(request=request, missing=request.missing_fields())


# ── Driver commands ───────────────────────────────────────────────────


class DecisionCommand(NamedTuple):
    decision: DriverDecision
    booking_id: int


class LocationCommand(NamedTuple):
    lat: Optional[float]
    lng: Optional[float]

    @property
    def valid(self) -> bool:
        return self.lat is not None and self.lng is not None


def parse_driver_command(text: str) -> DecisionCommand | LocationCommand | None:
    """``ACCEPT <id>``, ``DECLINE <id>`` or ``LOC <lat> <lng>``."""
    body = text.strip()
    if _LOC_RE.match(body):
        coords = [c for c in re.split(r"[ ,]+", body[3:].strip()) if c]
        try:
            lat, lng = float(coords[0]), float(coords[1])
        except (IndexError, ValueError):
            return LocationCommand(None, None)
        return LocationCommand(lat, lng)

    match = _DECISION_RE.match(body)
    if match:
        return DecisionCommand(DriverDecision(match.group(1).lower()), int(match.group(2)))
    return None
