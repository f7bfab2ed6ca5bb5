"""
Concurrency safety tests.

Demonstrates:
1. The Redis distributed lock refuses a second holder and waits for release.
2. Two overlapping pending bookings accepted at the same time: exactly one
   wins, the other sees the winner and gets a schedule conflict.
3. Admission does not proceed while another process holds the vehicle.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from taxi_booking.domain.entities import Place, TripRequest
from taxi_booking.domain.enums import BookingStatus
from taxi_booking.domain.exceptions import ScheduleConflict
from taxi_booking.infrastructure.locks import (
    VEHICLE_LOCK_KEY,
    DistributedLock,
    LockNotAcquired,
)
from taxi_booking.infrastructure.repositories import BookingRepository
from taxi_booking.services.booking_service import BookingService
from taxi_booking.services.lifecycle import BookingLifecycle
from tests.conftest import add_booking


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_called_once_with(
            "lock:test-key", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_calls_eval(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        await lock.acquire()
        await lock.release()

        mock_redis.eval.assert_called_once()

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        with pytest.raises(LockNotAcquired, match="Could not acquire lock"):
            async with lock:
                pass

    @pytest.mark.asyncio
    async def test_waits_for_release(self, fake_redis):
        holder = DistributedLock(fake_redis, VEHICLE_LOCK_KEY)
        waiter = DistributedLock(fake_redis, VEHICLE_LOCK_KEY, poll_interval=0.001)
        assert await holder.acquire()
        assert await waiter.acquire(wait=0) is False

        async def release_soon():
            await asyncio.sleep(0.01)
            await holder.release()

        release = asyncio.create_task(release_soon())
        assert await waiter.acquire(wait=2) is True
        await release

    @pytest.mark.asyncio
    async def test_release_keeps_someone_elses_lock(self, fake_redis):
        lock = DistributedLock(fake_redis, VEHICLE_LOCK_KEY)
        await lock.acquire()
        fake_redis.store["lock:vehicle"] = "another-owner"

        await lock.release()

        assert fake_redis.store["lock:vehicle"] == "another-owner"


class TestVehicleSchedule:
    @pytest.mark.asyncio
    async def test_concurrent_accepts_admit_only_one(
        self, session_factory, db_session, vehicle_lock, notifier
    ):
        first = await add_booking(db_session, datetime(2026, 2, 5, 14, 0))
        second = await add_booking(db_session, datetime(2026, 2, 5, 14, 30))

        async def accept(booking_id: int):
            async with session_factory() as session:
                lifecycle = BookingLifecycle(session, notifier, vehicle_lock)
                return await lifecycle.accept(booking_id)

        results = await asyncio.gather(
            accept(first.id), accept(second.id), return_exceptions=True
        )

        conflicts = [r for r in results if isinstance(r, ScheduleConflict)]
        confirmations = [r for r in results if isinstance(r, str)]
        assert len(conflicts) == 1
        assert len(confirmations) == 1

        async with session_factory() as session:
            accepted = await BookingRepository(session).list_by_status(BookingStatus.ACCEPTED)
        assert len(accepted) == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_get_distinct_bookings(
        self, session_factory, stored_tariff, resolver, vehicle_lock
    ):
        async def request(contact: str):
            async with session_factory() as session:
                service = BookingService(
                    session, resolver=resolver, vehicle_lock=vehicle_lock
                )
                return await service.request_ride(
                    TripRequest(
                        pickup=Place("Caudan"),
                        dropoff=Place("Grand Baie"),
                        start=datetime(2026, 2, 5, 14, 0),
                        passengers=2,
                        distance_km=10,
                    ),
                    contact=contact,
                )

        first, second = await asyncio.gather(request("+2305701"), request("+2305702"))

        assert first.booking.id != second.booking.id

    @pytest.mark.asyncio
    async def test_admission_refused_while_vehicle_is_locked(
        self, db_session, stored_tariff, resolver, fake_redis
    ):
        held = DistributedLock(fake_redis, VEHICLE_LOCK_KEY)
        await held.acquire()

        service = BookingService(
            db_session,
            resolver=resolver,
            vehicle_lock=lambda: DistributedLock(fake_redis, VEHICLE_LOCK_KEY),
        )
        with pytest.raises(LockNotAcquired):
            await service.request_ride(
                TripRequest(
                    pickup=Place("Caudan"),
                    dropoff=Place("Grand Baie"),
                    start=datetime(2026, 2, 5, 14, 0),
                    passengers=2,
                    distance_km=10,
                ),
                contact="+23057000001",
            )

        await db_session.rollback()
        assert await BookingRepository(db_session).list_by_status() == []
