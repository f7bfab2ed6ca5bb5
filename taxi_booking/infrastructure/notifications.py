"""
Outbound WhatsApp messages through the Twilio REST API.

Delivery is best-effort: ``notify`` logs failures and reports them as
``False``; it never raises and is never retried.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx

from taxi_booking.domain.exceptions import NotificationFailure

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, recipient: str, body: str) -> bool: ...


def normalize_contact(value: Optional[str]) -> str:
    """Strip the ``whatsapp:`` channel prefix Twilio adds to numbers."""
    if not value:
        return ""
    value = value.strip()
    if value.lower().startswith("whatsapp:"):
        value = value[len("whatsapp:"):]
    return value


class TwilioWhatsAppNotifier:
    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        api_url: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 5.0,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send(self, recipient: str, body: str) -> bool:
        if not self.configured:
            logger.warning("Twilio not configured. Skipping WhatsApp message.")
            return False

        url = f"{self.api_url}/Accounts/{self.account_sid}/Messages.json"
        data = {
            "From": f"whatsapp:{self.from_number}",
            "To": f"whatsapp:{normalize_contact(recipient)}",
            "Body": body,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, auth=(self.account_sid, self.auth_token)
            ) as client:
                response = await client.post(url, data=data)
        except httpx.HTTPError as e:
            raise NotificationFailure(f"WhatsApp delivery failed: {e}") from e
        if response.status_code >= 400:
            raise NotificationFailure(
                f"WhatsApp delivery rejected: {response.status_code}",
                {"status_code": response.status_code},
            )
        return True


async def notify(notifier: Optional[Notifier], recipient: str, body: str) -> bool:
    if notifier is None or not recipient:
        return False
    try:
        return await notifier.send(recipient, body)
    except NotificationFailure as e:
        logger.warning("Notification to %s failed: %s", recipient, e.message)
        return False
    except Exception:
        logger.exception("Unexpected error notifying %s", recipient)
        return False
