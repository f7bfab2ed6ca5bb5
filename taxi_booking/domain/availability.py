"""
Availability rules: global "unavailable" flag and the recurring daily
blackout window.

A window ``start -> end`` is read on the local wall clock:

* ``start <= end``  same-day window, inside when ``start <= t < end``
* ``start >  end``  spans midnight, inside when ``t >= start or t < end``

Bounds that do not parse as ``HH:MM`` never match anything.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from .entities import Tariff


def to_local(instant: datetime, tz_name: str) -> datetime:
    """Aware instants are moved to *tz_name* and made naive; naive ones are
    assumed to already be local."""
    if instant.tzinfo is None:
        return instant
    return instant.astimezone(ZoneInfo(tz_name)).replace(tzinfo=None)


def parse_hhmm(value: str) -> Optional[int]:
    """``"HH:MM"`` -> minutes since midnight, or None if malformed."""
    parts = str(value).strip().split(":")
    if len(parts) != 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return hours * 60 + minutes


def minute_of_day(instant: datetime) -> int:
    return instant.hour * 60 + instant.minute


def in_daily_window(instant: datetime, start: str, end: str) -> bool:
    start_min = parse_hhmm(start)
    end_min = parse_hhmm(end)
    if start_min is None or end_min is None:
        return False
    now = minute_of_day(instant)
    if start_min <= end_min:
        return start_min <= now < end_min
    return now >= start_min or now < end_min


def is_unavailable(tariff: Tariff, instant: datetime) -> bool:
    return tariff.unavailable_mode or in_daily_window(
        instant, tariff.unavailable_start, tariff.unavailable_end
    )
