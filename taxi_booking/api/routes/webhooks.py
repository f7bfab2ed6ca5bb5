"""
Messaging webhook
=================

POST /webhooks/whatsapp -- Twilio form post (From, Body, ProfileName);
                           answers with a TwiML ``<Message>``.
"""

import logging
from typing import Optional
from xml.sax.saxutils import escape

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import Response

from taxi_booking.api.dependencies import get_messaging_service
from taxi_booking.api.middleware import limiter
from taxi_booking.domain import messages
from taxi_booking.services.messaging import InboundMessage, MessagingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def twiml(text: str) -> Response:
    body = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f"<Response><Message>{escape(text)}</Message></Response>"
    )
    return Response(content=body, media_type="text/xml")


@router.post("/whatsapp", summary="Inbound WhatsApp message")
@limiter.limit("60/minute")
async def whatsapp(
    request: Request,
    sender: str = Form("", alias="From"),
    body: str = Form("", alias="Body"),
    profile_name: Optional[str] = Form(None, alias="ProfileName"),
    service: MessagingService = Depends(get_messaging_service),
):
    try:
        reply = await service.handle(InboundMessage(sender, body, profile_name))
    except Exception:
        logger.exception("Unhandled error in WhatsApp webhook")
        reply = messages.GENERIC_FAILURE
    return twiml(reply)
