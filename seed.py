"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - tariff overrides (peak windows, holidays, blackout window)
  - the driver's last known location (Port Louis waterfront)
  - 6 sample bookings (mix of pending, accepted, declined)
"""

import asyncio
from datetime import datetime, timedelta

from sqlalchemy import text

from taxi_booking.domain.entities import Booking, Place
from taxi_booking.domain.enums import BookingStatus
from taxi_booking.domain.pricing import compute_fare
from taxi_booking.infrastructure.database import async_session_factory, engine
from taxi_booking.infrastructure.repositories import (
    BookingRepository,
    DriverLocationRepository,
    SettingsRepository,
)

DRIVER_LAT, DRIVER_LNG = -20.1609, 57.4989

TARIFF = {
    "peak_hours": [
        {"start": "07:00", "end": "09:00", "surcharge_percent": 15},
        {"start": "17:00", "end": "19:00", "surcharge_percent": 15},
    ],
    "holidays": ["2026-01-01", "2026-03-12", "2026-12-25"],
    "unavailable_start": "23:00",
    "unavailable_end": "05:00",
}

# (pickup, dropoff, hours from now, passengers, waiting, km, status)
BOOKINGS = [
    (Place("Caudan Waterfront", -20.1619, 57.4977), Place("Grand Baie", -20.0064, 57.5805), 2, 2, 0, 27.5, BookingStatus.ACCEPTED),
    (Place("SSR Airport", -20.4302, 57.6836), Place("Flic en Flac", -20.2745, 57.3711), 6, 3, 10, 46.0, BookingStatus.ACCEPTED),
    (Place("Curepipe"), Place("Quatre Bornes"), 26, 1, 0, 11.2, BookingStatus.PENDING),
    (Place("Rose Hill"), Place("Port Louis"), 28, 4, 5, 12.8, BookingStatus.PENDING),
    (Place("Mahebourg"), Place("Blue Bay"), 30, 2, 0, 4.1, BookingStatus.DECLINED),
    (Place("Trou aux Biches"), Place("Pamplemousses"), 50, 2, 15, 9.6, BookingStatus.PENDING),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM bookings"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Settings ──────────────────────────────────────────────────
        tariff = await SettingsRepository(session).update_tariff(TARIFF)
        print(f"  Stored {len(TARIFF)} tariff overrides")

        # ── Driver location ───────────────────────────────────────────
        await DriverLocationRepository(session).set(DRIVER_LAT, DRIVER_LNG)
        print("  Stored driver location")

        # ── Bookings ──────────────────────────────────────────────────
        repo = BookingRepository(session)
        now = datetime.now().replace(minute=0, second=0, microsecond=0)
        for i, (pickup, dropoff, hours, pax, waiting, km, status) in enumerate(BOOKINGS):
            start = now + timedelta(hours=hours)
            travel = max(5, round(km / 25 * 60))
            fare = compute_fare(km, start, pax, waiting, tariff)
            await repo.create(
                Booking(
                    customer_contact=f"+2305700{i:04d}",
                    customer_name=f"Sample Customer {i + 1}",
                    pickup=pickup,
                    dropoff=dropoff,
                    ride_start=start,
                    ride_end=start + timedelta(minutes=travel + waiting),
                    passengers=pax,
                    waiting_minutes=waiting,
                    distance_km=km,
                    estimated_pickup_minutes=8,
                    fare_amount=fare.total,
                    currency=fare.currency,
                    status=status,
                    driver_response=None if status is BookingStatus.PENDING else status.value,
                ),
                ride_duration_minutes=travel + waiting,
            )
        print(f"  Created {len(BOOKINGS)} bookings")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
