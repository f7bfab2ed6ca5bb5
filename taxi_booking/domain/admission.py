"""
Admission Controller
====================

Decides whether a trip's time window can be served by the single vehicle.
Checks run in order and stop at the first failure:

1. global unavailable flag            -> ``AvailabilityRejection``
2. recurring daily blackout window    -> ``AvailabilityRejection``
3. passengers > max passengers        -> ``PassengerLimitExceeded``
4. overlap with an **accepted** ride  -> ``ScheduleConflict``

Pending and declined bookings never block a request: unconfirmed requests
do not reserve the vehicle.

Everything here is pure over a snapshot (tariff + accepted windows).  The
caller is responsible for holding the vehicle lock between reading the
snapshot and persisting the outcome.

Complexity: O(A) per decision, A = accepted bookings.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional

from .availability import is_unavailable
from .entities import Tariff, TimeWindow
from .exceptions import (
    AvailabilityRejection,
    PassengerLimitExceeded,
    ScheduleConflict,
    ValidationError,
)


def ride_end(
    start: datetime,
    travel_minutes: float,
    waiting_minutes: float = 0.0,
    wait_and_return: bool = False,
) -> datetime:
    """End of the vehicle's commitment: travel + waiting, and the trip back
    for wait-and-return rides."""
    total = travel_minutes + waiting_minutes
    if wait_and_return:
        total += travel_minutes
    return start + timedelta(minutes=total)


def windows_overlap(a: TimeWindow, b: TimeWindow) -> bool:
    """Half-open overlap: touching endpoints do not conflict."""
    return a.start < b.end and a.end > b.start


def find_conflict(
    candidate: TimeWindow, accepted: Iterable[TimeWindow]
) -> Optional[TimeWindow]:
    for other in accepted:
        if other.booking_id is not None and other.booking_id == candidate.booking_id:
            continue
        if windows_overlap(candidate, other):
            return other
    return None


def check_policy(tariff: Tariff, start: datetime, passengers: int) -> None:
    """Checks 1-3: the parts of admission that need no schedule."""
    if is_unavailable(tariff, start):
        raise AvailabilityRejection(
            tariff.unavailable_start,
            tariff.unavailable_end,
            global_flag=tariff.unavailable_mode,
        )
    if passengers > tariff.max_passengers:
        raise PassengerLimitExceeded(passengers, tariff.max_passengers)


def check_schedule(candidate: TimeWindow, accepted: Iterable[TimeWindow]) -> None:
    """Check 4 on its own."""
    if not candidate.end > candidate.start:
        raise ValidationError(
            "Ride must end after it starts.",
            {"start": candidate.start.isoformat(), "end": candidate.end.isoformat()},
        )
    conflict = find_conflict(candidate, accepted)
    if conflict is not None:
        raise ScheduleConflict(conflict.start, conflict.end, conflict.booking_id)


def admit(
    tariff: Tariff,
    candidate: TimeWindow,
    passengers: int,
    accepted: Iterable[TimeWindow],
) -> None:
    """Raise on the first failed check; return None when the ride is admitted."""
    check_policy(tariff, candidate.start, passengers)
    check_schedule(candidate, accepted)


def active_ride_at(
    now: datetime, accepted: Iterable[TimeWindow]
) -> Optional[TimeWindow]:
    """Accepted ride under way at *now* (inclusive bounds), if any."""
    for window in accepted:
        if window.start <= now <= window.end:
            return window
    return None
