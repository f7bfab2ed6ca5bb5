"""
FastAPI application factory.

* Registers routes for bookings, driver, admin and the messaging webhook.
* Maps domain errors to HTTP responses.
* Applies rate-limiting middleware.
* Closes the Redis pool and database engine on shutdown.
* Swagger / OpenAPI UI available at ``/docs``.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from taxi_booking.api.middleware import limiter
from taxi_booking.api.routes import admin, bookings, driver, webhooks
from taxi_booking.domain.entities import InvalidStateTransition
from taxi_booking.domain.exceptions import (
    AvailabilityRejection,
    BookingError,
    BookingNotFound,
    ScheduleConflict,
    ValidationError,
)
from taxi_booking.infrastructure.database import engine
from taxi_booking.infrastructure.locks import LockNotAcquired
from taxi_booking.infrastructure.redis_client import close_redis

logging.basicConfig(level=logging.INFO)

ERROR_STATUS: dict[type[BookingError], int] = {
    ValidationError: 422,
    AvailabilityRejection: 409,
    ScheduleConflict: 409,
    InvalidStateTransition: 409,
    BookingNotFound: 404,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_redis()
    await engine.dispose()


async def _booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    status = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400
    )
    return JSONResponse(
        status_code=status, content={"detail": exc.message, **exc.details}
    )


async def _lock_busy_handler(request: Request, exc: LockNotAcquired) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": "Schedule is busy, please retry."},
        headers={"Retry-After": "1"},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Taxi Booking API",
        description=(
            "Prices ride requests under a multi-factor tariff, admits them "
            "against the single vehicle's schedule and lets the driver "
            "accept or decline over WhatsApp or HTTP."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(BookingError, _booking_error_handler)
    app.add_exception_handler(LockNotAcquired, _lock_busy_handler)

    # Routers
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(driver.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")
    app.include_router(webhooks.router)

    return app
