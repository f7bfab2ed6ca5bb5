"""
Booking endpoints
=================

POST /api/v1/bookings               -- book a ride from the web form (201)
GET  /api/v1/bookings               -- list bookings, filter by status / contact
GET  /api/v1/bookings/{id}          -- one booking
POST /api/v1/bookings/{id}/accept   -- driver accepts
POST /api/v1/bookings/{id}/decline  -- driver declines
POST /api/v1/quote                  -- price preview, nothing persisted
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taxi_booking.api.dependencies import get_booking_service, get_db, get_lifecycle
from taxi_booking.api.middleware import limiter
from taxi_booking.api.schemas import (
    BookingCreatedResponse,
    BookingCreateRequest,
    BookingResponse,
    DecisionResponse,
    ErrorResponse,
    FareResponse,
    QuoteRequest,
    QuoteResponse,
)
from taxi_booking.domain.enums import BookingStatus, DriverDecision
from taxi_booking.domain.exceptions import BookingNotFound
from taxi_booking.infrastructure.repositories import BookingRepository
from taxi_booking.services.booking_service import BookingService
from taxi_booking.services.lifecycle import BookingLifecycle

router = APIRouter(tags=["bookings"])


@router.post(
    "/bookings",
    status_code=201,
    response_model=BookingCreatedResponse,
    summary="Request a ride",
    responses={
        409: {"model": ErrorResponse, "description": "Driver unavailable or slot already taken."},
        422: {"description": "Missing or invalid trip details."},
    },
)
@limiter.limit("30/minute")
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    service: BookingService = Depends(get_booking_service),
):
    outcome = await service.request_ride(
        body.to_trip_request(), contact=body.phone.strip(), name=body.name.strip()
    )
    return BookingCreatedResponse(
        booking=BookingResponse.from_entity(outcome.booking),
        fare=FareResponse.from_fare(outcome.fare),
        estimated_pickup_minutes=outcome.estimated_pickup_minutes,
        arrival_time=datetime.now(timezone.utc)
        + timedelta(minutes=outcome.estimated_pickup_minutes),
    )


@router.get(
    "/bookings",
    response_model=list[BookingResponse],
    summary="List bookings, newest first",
)
@limiter.limit("100/minute")
async def list_bookings(
    request: Request,
    status: Optional[BookingStatus] = None,
    contact: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    repo = BookingRepository(db)
    if contact:
        found = await repo.list_by_contact(contact)
        if status is not None:
            found = [b for b in found if b.status == status]
    else:
        found = await repo.list_by_status(status)
    return [BookingResponse.from_entity(b) for b in found]


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    summary="Get one booking",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit("100/minute")
async def get_booking(
    request: Request,
    booking_id: int,
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingRepository(db).get(booking_id)
    if booking is None:
        raise BookingNotFound(booking_id)
    return BookingResponse.from_entity(booking)


async def _decide(
    lifecycle: BookingLifecycle, booking_id: int, decision: DriverDecision
) -> DecisionResponse:
    message = await lifecycle.apply_decision(booking_id, decision)
    return DecisionResponse(message=message)


@router.post(
    "/bookings/{booking_id}/accept",
    response_model=DecisionResponse,
    summary="Driver accepts a pending booking",
)
@limiter.limit("100/minute")
async def accept_booking(
    request: Request,
    booking_id: int,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    return await _decide(lifecycle, booking_id, DriverDecision.ACCEPT)


@router.post(
    "/bookings/{booking_id}/decline",
    response_model=DecisionResponse,
    summary="Driver declines a pending booking",
)
@limiter.limit("100/minute")
async def decline_booking(
    request: Request,
    booking_id: int,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    return await _decide(lifecycle, booking_id, DriverDecision.DECLINE)


@router.post(
    "/quote",
    response_model=QuoteResponse,
    summary="Price a trip without booking it",
)
@limiter.limit("60/minute")
async def quote(
    request: Request,
    body: QuoteRequest,
    service: BookingService = Depends(get_booking_service),
):
    result = await service.quote(body.to_trip_request())
    return QuoteResponse(
        distance_km=result.trip.distance_km,
        distance_source=result.trip.source,
        travel_minutes=result.trip.travel_minutes,
        ride_datetime=result.ride_start,
        ride_end_datetime=result.ride_end,
        estimated_pickup_minutes=result.estimated_pickup_minutes,
        pickup_address=result.pickup_label,
        dropoff_address=result.dropoff_label,
        driver_status=result.driver_status.value,
        geometry=result.trip.geometry,
        fare=FareResponse.from_fare(result.fare),
    )
