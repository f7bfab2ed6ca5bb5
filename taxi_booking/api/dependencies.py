"""FastAPI dependency injection helpers."""

from typing import Optional

from fastapi import Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from taxi_booking.config import settings
from taxi_booking.infrastructure.database import async_session_factory
from taxi_booking.infrastructure.geocoding import NominatimGeocoder
from taxi_booking.infrastructure.locks import VEHICLE_LOCK_KEY, DistributedLock
from taxi_booking.infrastructure.notifications import Notifier, TwilioWhatsAppNotifier
from taxi_booking.infrastructure.redis_client import get_redis
from taxi_booking.infrastructure.repositories import DriverLocationRepository
from taxi_booking.infrastructure.routing import (
    GoogleDistanceMatrixClient,
    OSRMClient,
    RouteResolver,
)
from taxi_booking.services.booking_service import BookingService, LockFactory
from taxi_booking.services.lifecycle import BookingLifecycle
from taxi_booking.services.messaging import MessagingService


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_vehicle_lock(redis: Redis = Depends(get_redis)) -> LockFactory:

    def factory() -> DistributedLock:
        return DistributedLock(
            redis,
            VEHICLE_LOCK_KEY,
            ttl_seconds=settings.admission_lock_ttl_seconds,
            wait_seconds=settings.admission_lock_wait_seconds,
        )

    return factory


def get_resolver() -> RouteResolver:
    metrics_oracle = None
    if settings.maps_provider.lower() == "google" and settings.google_maps_api_key:
        metrics_oracle = GoogleDistanceMatrixClient(
            settings.google_maps_api_key, timeout=settings.http_timeout_seconds
        )
    route_oracle = (
        OSRMClient(settings.osrm_url, timeout=settings.http_timeout_seconds)
        if settings.osrm_url
        else None
    )
    return RouteResolver(
        metrics_oracle=metrics_oracle,
        route_oracle=route_oracle,
        avg_speed_kmh=settings.avg_speed_kmh,
        traffic_factor=settings.traffic_factor,
        default_trip_distance_km=settings.default_trip_distance_km,
        default_pickup_distance_km=settings.default_pickup_distance_km,
        min_pickup_minutes=settings.min_pickup_minutes,
        min_travel_minutes=settings.min_travel_minutes,
        default_driver_origin=settings.default_driver_origin,
    )


def get_notifier() -> Optional[Notifier]:
    return TwilioWhatsAppNotifier(
        settings.twilio_account_sid,
        settings.twilio_auth_token,
        settings.twilio_whatsapp_number,
        api_url=settings.twilio_api_url,
        timeout=settings.http_timeout_seconds,
    )


def get_geocoder() -> Optional[NominatimGeocoder]:
    if not settings.nominatim_url:
        return None
    return NominatimGeocoder(settings.nominatim_url, timeout=settings.http_timeout_seconds)


def get_booking_service(
    db: AsyncSession = Depends(get_db),
    resolver: RouteResolver = Depends(get_resolver),
    vehicle_lock: LockFactory = Depends(get_vehicle_lock),
    notifier: Optional[Notifier] = Depends(get_notifier),
    geocoder: Optional[NominatimGeocoder] = Depends(get_geocoder),
) -> BookingService:
    return BookingService(
        db,
        resolver=resolver,
        vehicle_lock=vehicle_lock,
        notifier=notifier,
        geocoder=geocoder,
        driver_contact=settings.driver_contact,
        timezone=settings.timezone,
    )


def get_lifecycle(
    db: AsyncSession = Depends(get_db),
    vehicle_lock: LockFactory = Depends(get_vehicle_lock),
    notifier: Optional[Notifier] = Depends(get_notifier),
) -> BookingLifecycle:
    return BookingLifecycle(
        db, notifier, vehicle_lock, public_base_url=settings.public_base_url
    )


def get_messaging_service(
    db: AsyncSession = Depends(get_db),
    bookings: BookingService = Depends(get_booking_service),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> MessagingService:
    return MessagingService(
        bookings,
        lifecycle,
        DriverLocationRepository(db),
        driver_contact=settings.driver_contact,
    )
