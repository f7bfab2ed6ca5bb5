"""
Redis-based distributed lock.

Serializes the vehicle's schedule: "read accepted bookings + admit +
insert" and "read accepted bookings + accept" each run while holding the
``vehicle`` lock, so two API processes can never both admit or accept
overlapping rides from a stale snapshot.

Implementation uses SET NX EX for acquire and a Lua script for
atomic check-and-delete on release.  ``acquire(wait=...)`` polls until the
lock frees up or the wait budget runs out.
"""

from __future__ import annotations

import asyncio
import time
import uuid

import redis.asyncio as aioredis

VEHICLE_LOCK_KEY = "vehicle"

_RELEASE_LUA = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockNotAcquired(RuntimeError):
    pass


class DistributedLock:
    def __init__(
        self,
        client: aioredis.Redis,
        key: str,
        ttl_seconds: int = 30,
        wait_seconds: float = 0.0,
        poll_interval: float = 0.05,
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.wait = wait_seconds
        self.poll_interval = poll_interval
        self.token = str(uuid.uuid4())

    async def try_acquire(self) -> bool:
        """Single attempt. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def acquire(self, wait: float | None = None) -> bool:
        """Retry until acquired or *wait* seconds have passed."""
        budget = self.wait if wait is None else wait
        deadline = time.monotonic() + budget
        while True:
            if await self.try_acquire():
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(self.poll_interval)

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        await self.redis.eval(_RELEASE_LUA, 1, self.key, self.token)

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire()
        if not acquired:
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()
