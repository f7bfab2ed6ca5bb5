"""
Booking Lifecycle
=================

Driver decisions move a booking out of ``pending``::

    pending --accept--> accepted
    pending --decline-> declined

Both targets are terminal.  Every successful transition notifies the
customer; a failed notification is logged and the transition still stands.

Acceptance runs under the vehicle lock and re-checks the schedule against
the other accepted bookings, so two overlapping pending requests can never
both end up accepted.
"""

from __future__ import annotations

import logging
from typing import AsyncContextManager, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from taxi_booking.domain import messages
from taxi_booking.domain.admission import check_schedule
from taxi_booking.domain.entities import Booking
from taxi_booking.domain.enums import BookingStatus, DriverDecision
from taxi_booking.domain.exceptions import BookingNotFound, UnknownDecision
from taxi_booking.infrastructure.notifications import Notifier, notify
from taxi_booking.infrastructure.repositories import BookingRepository

logger = logging.getLogger(__name__)

LockFactory = Callable[[], AsyncContextManager]


def parse_decision(value: str | DriverDecision) -> DriverDecision:
    try:
        return DriverDecision(str(getattr(value, "value", value)).strip().lower())
    except ValueError:
        raise UnknownDecision(str(value)) from None


class BookingLifecycle:
    def __init__(
        self,
        session: AsyncSession,
        notifier: Optional[Notifier],
        vehicle_lock: LockFactory,
        public_base_url: str = "",
    ):
        self.session = session
        self.bookings = BookingRepository(session)
        self.notifier = notifier
        self.vehicle_lock = vehicle_lock
        self.public_base_url = public_base_url.rstrip("/")

    def tracking_url(self, booking_id: int) -> Optional[str]:
        if not self.public_base_url:
            return None
        return f"{self.public_base_url}/api/v1/driver/eta/{booking_id}"

    async def apply_decision(self, booking_id: int, decision: str | DriverDecision) -> str:
        """Unknown decisions are rejected before the booking is looked up."""
        parsed = parse_decision(decision)
        if parsed is DriverDecision.ACCEPT:
            return await self.accept(booking_id)
        return await self.decline(booking_id)

    async def _load(self, booking_id: int) -> Booking:
        booking = await self.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        return booking

    async def _persist(self, booking: Booking) -> Booking:
        updated = await self.bookings.update_status(
            booking.id, booking.status, booking.driver_response
        )
        await self.session.commit()
        return updated

    async def accept(self, booking_id: int) -> str:
        async with self.vehicle_lock():
            booking = await self._load(booking_id)
            booking.transition_to(BookingStatus.ACCEPTED)
            check_schedule(booking.window, await self.bookings.accepted_windows())
            booking = await self._persist(booking)

        logger.info("Booking %s accepted", booking_id)
        await notify(
            self.notifier,
            booking.customer_contact,
            messages.customer_accepted(booking, self.tracking_url(booking_id)),
        )
        return messages.accepted_confirmation(booking_id)

    async def decline(self, booking_id: int) -> str:
        async with self.vehicle_lock():
            booking = await self._load(booking_id)
            booking.transition_to(BookingStatus.DECLINED)
            booking = await self._persist(booking)

        logger.info("Booking %s declined", booking_id)
        await notify(
            self.notifier,
            booking.customer_contact,
            messages.customer_declined(booking),
        )
        return messages.declined_confirmation(booking_id)
