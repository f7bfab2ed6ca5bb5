"""
Driver endpoints
================

POST /api/v1/driver/location  -- store the driver's last known position
GET  /api/v1/driver/location  -- read it back (optionally with an address)
GET  /api/v1/driver/status    -- "currently_in_ride" or "available"
GET  /api/v1/driver/eta/{id}  -- driver -> pickup ETA and arrival time for a booking
GET  /api/v1/driver/active-booking -- ride under way or next accepted ride,
                                   with the driver -> pickup route
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taxi_booking.api.dependencies import get_booking_service, get_db, get_geocoder
from taxi_booking.api.middleware import limiter
from taxi_booking.api.schemas import (
    ActiveBookingResponse,
    DriverLocationRequest,
    DriverLocationResponse,
    DriverStatusResponse,
    PickupEtaResponse,
)
from taxi_booking.domain.entities import Place
from taxi_booking.infrastructure.geocoding import NominatimGeocoder, label_for
from taxi_booking.infrastructure.repositories import DriverLocationRepository
from taxi_booking.services.booking_service import BookingService

router = APIRouter(prefix="/driver", tags=["driver"])


@router.post(
    "/location",
    response_model=DriverLocationResponse,
    summary="Update the driver's location",
)
@limiter.limit("120/minute")
async def set_location(
    request: Request,
    body: DriverLocationRequest,
    db: AsyncSession = Depends(get_db),
):
    location = await DriverLocationRepository(db).set(body.lat, body.lng)
    return DriverLocationResponse(
        lat=location.lat, lng=location.lng, updated_at=location.updated_at
    )


@router.get(
    "/location",
    response_model=DriverLocationResponse,
    summary="Last known driver location",
)
@limiter.limit("120/minute")
async def get_location(
    request: Request,
    include_address: bool = False,
    db: AsyncSession = Depends(get_db),
    geocoder: NominatimGeocoder = Depends(get_geocoder),
):
    location = await DriverLocationRepository(db).get()
    if location is None:
        raise HTTPException(status_code=404, detail="Driver location unknown")
    address = None
    if include_address:
        address = await label_for(Place(lat=location.lat, lng=location.lng), geocoder)
    return DriverLocationResponse(
        lat=location.lat,
        lng=location.lng,
        updated_at=location.updated_at,
        address=address,
    )


@router.get(
    "/status",
    response_model=DriverStatusResponse,
    summary="Is the driver on an accepted ride right now?",
)
@limiter.limit("120/minute")
async def get_status(
    request: Request,
    service: BookingService = Depends(get_booking_service),
):
    status = await service.driver_status()
    return DriverStatusResponse(status=status.value)


@router.get(
    "/eta/{booking_id}",
    response_model=PickupEtaResponse,
    summary="Driver to pickup ETA for a booking",
)
@limiter.limit("120/minute")
async def get_pickup_eta(
    request: Request,
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
):
    eta = await service.pickup_eta(booking_id)
    return PickupEtaResponse(
        booking_id=eta.booking.id,
        status=eta.booking.status.value,
        eta_minutes=eta.eta_minutes,
        arrival_time=eta.arrival_time,
    )


@router.get(
    "/active-booking",
    response_model=ActiveBookingResponse,
    summary="Ride the driver is on or heading to next",
)
@limiter.limit("120/minute")
async def get_active_booking(
    request: Request,
    service: BookingService = Depends(get_booking_service),
):
    active = await service.active_ride()
    if active is None:
        raise HTTPException(status_code=404, detail="No accepted ride ahead")
    booking, route = active.booking, active.route
    return ActiveBookingResponse(
        booking_id=booking.id,
        customer_name=booking.customer_name,
        pickup_location=booking.pickup.label or "",
        pickup_lat=booking.pickup.lat,
        pickup_lng=booking.pickup.lng,
        ride_datetime=booking.ride_start,
        ride_end_datetime=booking.ride_end,
        route=route.geometry if route else None,
        eta_minutes=route.duration_minutes if route else None,
        distance_km=route.distance_km if route else None,
    )
