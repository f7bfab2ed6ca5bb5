"""
Shared test fixtures.

Uses a throwaway SQLite database file (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  A file rather than ``:memory:`` lets several
sessions hold their own connections, which the concurrency tests need.
Redis is replaced by a dict-backed double that honours ``SET NX`` and the
lock's compare-and-delete release.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taxi_booking.domain.entities import Booking, Place, Tariff
from taxi_booking.domain.enums import BookingStatus
from taxi_booking.domain.exceptions import NotificationFailure
from taxi_booking.infrastructure import models  # noqa: F401  (registers tables)
from taxi_booking.infrastructure.database import Base
from taxi_booking.infrastructure.locks import VEHICLE_LOCK_KEY, DistributedLock
from taxi_booking.infrastructure.repositories import (
    BookingRepository,
    DriverLocationRepository,
    SettingsRepository,
)
from taxi_booking.infrastructure.routing import RouteResolver
from taxi_booking.services.booking_service import BookingService
from taxi_booking.services.lifecycle import BookingLifecycle
from taxi_booking.services.messaging import MessagingService

DRIVER_CONTACT = "+23059990000"


# ── Doubles ───────────────────────────────────────────────────────────


class FakeRedis:
    """Just enough of ``redis.asyncio.Redis`` for the vehicle lock and health check."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0

    async def ping(self):
        return True


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.sent: list[tuple[str, str]] = []
        self.fail = fail

    async def send(self, recipient: str, body: str) -> bool:
        if self.fail:
            raise NotificationFailure("gateway down")
        self.sent.append((recipient, body))
        return True


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ── Collaborators ─────────────────────────────────────────────────────


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def vehicle_lock(fake_redis):
    def factory() -> DistributedLock:
        return DistributedLock(
            fake_redis, VEHICLE_LOCK_KEY, ttl_seconds=30, wait_seconds=5, poll_interval=0.001
        )

    return factory


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def resolver() -> RouteResolver:
    """No live oracles: every lookup takes the heuristic path."""
    return RouteResolver(
        avg_speed_kmh=30.0,
        traffic_factor=1.0,
        default_trip_distance_km=5.0,
        default_pickup_distance_km=5.0,
    )


@pytest.fixture
def tariff() -> Tariff:
    return Tariff(
        currency="MUR",
        base_fare=4.0,
        per_km=90.0,
        waiting_per_minute=0.35,
        waiting_free_minutes=3,
        extra_passenger_fee=2.0,
        included_passengers=2,
        max_passengers=4,
        night_surcharge_percent=20.0,
        unavailable_start="23:30",
        unavailable_end="05:00",
    )


# ── Data helpers ──────────────────────────────────────────────────────


async def add_booking(
    session: AsyncSession,
    start: datetime,
    minutes: int = 60,
    status: BookingStatus = BookingStatus.PENDING,
    contact: str = "+23057000001",
    pickup: Place = Place("Main St"),
) -> Booking:
    booking = await BookingRepository(session).create(
        Booking(
            customer_contact=contact,
            customer_name="Test Customer",
            pickup=pickup,
            dropoff=Place("Market St"),
            ride_start=start,
            ride_end=start + timedelta(minutes=minutes),
            passengers=2,
            distance_km=10.0,
            estimated_pickup_minutes=7,
            fare_amount=100.0,
            currency="MUR",
            status=status,
        )
    )
    await session.commit()
    return booking


@pytest_asyncio.fixture
async def stored_tariff(db_session, tariff) -> Tariff:
    """Persist the test tariff so services read it instead of the defaults."""
    await SettingsRepository(db_session).update_tariff(tariff.to_mapping())
    await db_session.commit()
    return tariff


# ── Services ──────────────────────────────────────────────────────────


@pytest.fixture
def service(db_session, resolver, vehicle_lock, notifier) -> BookingService:
    return BookingService(
        db_session,
        resolver=resolver,
        vehicle_lock=vehicle_lock,
        notifier=notifier,
        driver_contact=DRIVER_CONTACT,
    )


@pytest.fixture
def lifecycle(db_session, notifier, vehicle_lock) -> BookingLifecycle:
    return BookingLifecycle(
        db_session, notifier, vehicle_lock, public_base_url="https://taxi.example/"
    )


@pytest.fixture
def messaging(db_session, service, lifecycle) -> MessagingService:
    return MessagingService(
        service,
        lifecycle,
        DriverLocationRepository(db_session),
        driver_contact=f"whatsapp:{DRIVER_CONTACT}",
    )
