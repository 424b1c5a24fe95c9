"""Liveness probe at ``/health``.  Public; no token required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import asyncpg
from fastapi import APIRouter

from healthsync.config import get_settings
from healthsync.models.base import HealthSyncBase
from healthsync.services.database import get_pool

router = APIRouter(tags=["system"])
logger = logging.getLogger("healthsync.health_check")


class HealthStatus(HealthSyncBase):
    status: str
    version: str
    environment: str
    database: str
    pool_size: int | None = None
    timestamp: datetime


@router.get("/health", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    """Always 200 while the process is up.

    ``status`` drops to ``degraded`` when the pool is missing or ``SELECT 1``
    fails, so the step endpoint would answer 500.
    """
    settings = get_settings()
    pool_size: int | None = None
    try:
        pool = get_pool()
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        pool_size = pool.get_size()
    except (RuntimeError, OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
        logger.warning("Database probe failed: %s", exc)

    db_ok = pool_size is not None
    return HealthStatus(
        status="healthy" if db_ok else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="connected" if db_ok else "unreachable",
        pool_size=pool_size,
        timestamp=datetime.now(timezone.utc),
    )
