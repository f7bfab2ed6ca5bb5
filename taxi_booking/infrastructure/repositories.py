"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Reads return domain entities, never ORM rows.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel, DriverStatusModel, SettingModel, utcnow
from taxi_booking.config import settings as app_settings
from taxi_booking.domain.entities import Booking, DriverLocation, Tariff, TimeWindow
from taxi_booking.domain.enums import BookingStatus
from taxi_booking.domain.exceptions import ValidationError

DRIVER_ROW_ID = 1


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: Booking, ride_duration_minutes: float | None = None) -> Booking:
        row = BookingModel(
            customer_contact=booking.customer_contact,
            customer_name=booking.customer_name,
            pickup_location=booking.pickup.label,
            pickup_lat=booking.pickup.lat,
            pickup_lng=booking.pickup.lng,
            dropoff_location=booking.dropoff.label,
            dropoff_lat=booking.dropoff.lat,
            dropoff_lng=booking.dropoff.lng,
            wait_and_return=booking.wait_and_return,
            ride_datetime=booking.ride_start,
            ride_end_datetime=booking.ride_end,
            ride_duration_minutes=ride_duration_minutes,
            passengers=booking.passengers,
            waiting_minutes=booking.waiting_minutes,
            distance_km=booking.distance_km,
            estimated_pickup_minutes=booking.estimated_pickup_minutes,
            fare_amount=booking.fare_amount,
            currency=booking.currency,
            status=booking.status,
            driver_response=booking.driver_response,
        )
        self.session.add(row)
        await self.session.flush()
        return row.to_entity()

    async def get(self, booking_id: int) -> Optional[Booking]:
        row = await self.session.get(BookingModel, booking_id)
        return row.to_entity() if row else None

    async def list_by_status(self, status: BookingStatus | None = None) -> list[Booking]:
        query = select(BookingModel).order_by(BookingModel.created_at.desc())
        if status is not None:
            query = query.where(BookingModel.status == status)
        result = await self.session.execute(query)
        return [row.to_entity() for row in result.scalars().all()]

    async def list_by_contact(self, contact: str) -> list[Booking]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.customer_contact == contact)
            .order_by(BookingModel.created_at.desc())
        )
        return [row.to_entity() for row in result.scalars().all()]

    async def accepted_windows(self) -> list[TimeWindow]:
        """Snapshot used by admission; call while holding the vehicle lock."""
        result = await self.session.execute(
            select(
                BookingModel.id,
                BookingModel.ride_datetime,
                BookingModel.ride_end_datetime,
            ).where(BookingModel.status == BookingStatus.ACCEPTED)
        )
        return [
            TimeWindow(start=start, end=end, booking_id=booking_id)
            for booking_id, start, end in result.all()
            if end is not None
        ]

    async def update_status(
        self, booking_id: int, status: BookingStatus, driver_response: str | None
    ) -> Optional[Booking]:
        row = await self.session.get(BookingModel, booking_id)
        if row is None:
            return None
        row.status = status
        row.driver_response = driver_response
        row.updated_at = utcnow()
        await self.session.flush()
        return row.to_entity()


class SettingsRepository:
    """Key/value tariff overrides layered over the configured defaults."""

    def __init__(self, session: AsyncSession, defaults: Tariff | None = None):
        self.session = session
        self.defaults = defaults or Tariff.from_mapping(app_settings.model_dump())

    async def get_overrides(self) -> dict[str, Any]:
        result = await self.session.execute(select(SettingModel))
        return {row.key: json.loads(row.value) for row in result.scalars().all()}

    async def get_tariff(self) -> Tariff:
        merged = self.defaults.to_mapping()
        merged.update(await self.get_overrides())
        return Tariff.from_mapping(merged)

    async def update_tariff(self, values: Mapping[str, Any]) -> Tariff:
        unknown = set(values) - Tariff.field_names()
        if unknown:
            raise ValidationError(
                f"Unknown tariff settings: {', '.join(sorted(unknown))}",
                {"unknown": sorted(unknown)},
            )
        for key, value in values.items():
            if value is None:
                continue
            encoded = json.dumps(value)
            row = await self.session.get(SettingModel, key)
            if row is None:
                self.session.add(SettingModel(key=key, value=encoded))
            else:
                row.value = encoded
        await self.session.flush()
        return await self.get_tariff()


class DriverLocationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def set(self, lat: float, lng: float) -> DriverLocation:
        row = await self.session.get(DriverStatusModel, DRIVER_ROW_ID)
        now = utcnow()
        if row is None:
            row = DriverStatusModel(
                id=DRIVER_ROW_ID, driver_lat=lat, driver_lng=lng, updated_at=now
            )
            self.session.add(row)
        else:
            row.driver_lat, row.driver_lng, row.updated_at = lat, lng, now
        await self.session.flush()
        return DriverLocation(lat=lat, lng=lng, updated_at=now)

    async def get(self) -> Optional[DriverLocation]:
        row = await self.session.get(DriverStatusModel, DRIVER_ROW_ID)
        if row is None:
            return None
        return DriverLocation(
            lat=row.driver_lat, lng=row.driver_lng, updated_at=row.updated_at
        )
