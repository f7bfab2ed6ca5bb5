"""
Inbound messaging channel.

Messages from the configured driver contact are commands (``LOC``,
``ACCEPT``, ``DECLINE``); everything else is a customer booking request
in free text.  Every outcome, including rejections, becomes a reply text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from taxi_booking.domain import messages
from taxi_booking.domain.exceptions import BookingError
from taxi_booking.domain.parser import (
    DecisionCommand,
    LocationCommand,
    parse_booking_message,
    parse_driver_command,
)
from taxi_booking.infrastructure.notifications import normalize_contact
from taxi_booking.infrastructure.repositories import DriverLocationRepository
from taxi_booking.services.booking_service import BookingService
from taxi_booking.services.lifecycle import BookingLifecycle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InboundMessage:
    sender: str
    body: str
    profile_name: Optional[str] = None


class MessagingService:
    def __init__(
        self,
        bookings: BookingService,
        lifecycle: BookingLifecycle,
        driver_locations: DriverLocationRepository,
        driver_contact: str = "",
    ):
        self.bookings = bookings
        self.lifecycle = lifecycle
        self.driver_locations = driver_locations
        self.driver_contact = normalize_contact(driver_contact)

    def is_driver(self, sender: str) -> bool:
        return bool(self.driver_contact) and sender == self.driver_contact

    async def handle(self, message: InboundMessage) -> str:
        sender = normalize_contact(message.sender)
        body = (message.body or "").strip()
        try:
            if self.is_driver(sender):
                return await self._handle_driver(body)
            return await self._handle_customer(sender, body, message.profile_name)
        except BookingError as e:
            return e.message

    async def _handle_driver(self, body: str) -> str:
        command = parse_driver_command(body)
        if isinstance(command, LocationCommand):
            if not command.valid:
                return messages.LOCATION_HELP
            await self.driver_locations.set(command.lat, command.lng)
            await self.driver_locations.session.commit()
            return messages.LOCATION_UPDATED
        if isinstance(command, DecisionCommand):
            return await self.lifecycle.apply_decision(command.booking_id, command.decision)
        return messages.DRIVER_HELP

    async def _handle_customer(
        self, sender: str, body: str, profile_name: Optional[str]
    ) -> str:
        parsed = parse_booking_message(body)
        if not parsed.complete:
            return messages.missing_fields_reply(parsed.missing)

        outcome = await self.bookings.request_ride(
            parsed.request, contact=sender, name=profile_name or "Customer"
        )
        return messages.booking_received(outcome.fare, outcome.estimated_pickup_minutes)
