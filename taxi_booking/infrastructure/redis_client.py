"""Redis async connection pool backing the vehicle lock."""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from taxi_booking.config import settings

logger = logging.getLogger(__name__)

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url, decode_responses=True
)


async def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    return aioredis.Redis(connection_pool=_pool)


async def ping_redis(client: aioredis.Redis) -> bool:
    try:
        return bool(await client.ping())
    except RedisError as e:
        logger.warning("Redis ping failed: %s", e)
        return False


async def close_redis() -> None:
    await _pool.disconnect()
