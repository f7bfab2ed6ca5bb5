"""
Taxi Booking Backend
====================
Entry point. Run with: uvicorn main:app --reload

Serves the REST API under ``/api/v1`` and the WhatsApp webhook at
``/webhooks/whatsapp``.
"""

import uvicorn

from taxi_booking.api.app import create_app
from taxi_booking.config import settings

app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.host, port=settings.port)
