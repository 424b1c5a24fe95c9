"""asyncpg connection pool.

One pool per process, created in the app lifespan.  Request handlers never
hold a connection beyond their own ``async with`` block, so a connection is
returned to the pool on success, validation failure and SQL error alike.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import asyncpg

from healthsync.config import Settings, get_settings

logger = logging.getLogger("healthsync.db")

# Set by init_pool() in the app lifespan
_pool: asyncpg.Pool | None = None


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool. Call once at app startup."""
    global _pool
    s = settings or get_settings()
    _pool = await asyncpg.create_pool(
        s.database_url,
        min_size=s.db_pool_min_size,
        max_size=s.db_pool_max_size,
        command_timeout=s.db_command_timeout,
    )
    logger.info(
        "Database pool initialized (min=%d, max=%d)", s.db_pool_min_size, s.db_pool_max_size
    )
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized; call init_pool() first")
    return _pool


@asynccontextmanager
async def get_connection(pool: Any = None) -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a connection and open a transaction on it.

    Usage::

        async with get_connection() as conn:
            await conn.execute("INSERT INTO activity_steps ...", ...)

    The transaction commits when the block exits normally and rolls back if
    it raises; the connection goes back to the pool either way.
    """
    pool = pool or get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            yield conn
