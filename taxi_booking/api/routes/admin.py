"""
Admin / observability endpoints
===============================

GET   /api/v1/admin/settings -- effective tariff (defaults + overrides)
PATCH /api/v1/admin/settings -- partial tariff update
GET   /api/v1/admin/health   -- database and Redis reachability
"""

from typing import Any

from fastapi import APIRouter, Depends, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from taxi_booking.api.dependencies import get_db
from taxi_booking.api.middleware import limiter
from taxi_booking.api.schemas import HealthResponse, TariffUpdateRequest
from taxi_booking.infrastructure.database import ping_database
from taxi_booking.infrastructure.redis_client import get_redis, ping_redis
from taxi_booking.infrastructure.repositories import SettingsRepository

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/settings",
    response_model=dict[str, Any],
    summary="Effective tariff and availability settings",
)
@limiter.limit("100/minute")
async def get_settings(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    tariff = await SettingsRepository(db).get_tariff()
    return tariff.to_mapping()


@router.patch(
    "/settings",
    response_model=dict[str, Any],
    summary="Update tariff and availability settings",
)
@limiter.limit("30/minute")
async def update_settings(
    request: Request,
    body: TariffUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    tariff = await SettingsRepository(db).update_tariff(
        body.model_dump(exclude_none=True)
    )
    return tariff.to_mapping()


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    database_ok = await ping_database(db)
    redis_ok = await ping_redis(redis)
    return HealthResponse(
        status="ok" if database_ok and redis_ok else "degraded",
        database=database_ok,
        redis=redis_ok,
    )
