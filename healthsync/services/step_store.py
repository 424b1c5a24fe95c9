"""Persistence for step records (table ``activity_steps``).

Schema (managed outside this service)::

    CREATE TABLE activity_steps (
        id          uuid PRIMARY KEY,
        user_id     text NOT NULL,
        value       integer NOT NULL,
        created_at  timestamptz NOT NULL
    );

Every row gets a fresh ``uuid4``.  There is no idempotency key, so a client
that retries after an ambiguous network failure can store the same samples
twice.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

import asyncpg

from healthsync.errors import PersistenceFailure
from healthsync.services.database import get_connection

logger = logging.getLogger("healthsync.db.steps")

_COLUMNS = ("id", "user_id", "value", "created_at")

# PostgreSQL caps bind parameters per statement at 32767
_MAX_ROWS_PER_STATEMENT = 32767 // len(_COLUMNS)

_STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

_SELECT_RANGE = """
    SELECT value, created_at
    FROM activity_steps
    WHERE user_id = $1 AND created_at BETWEEN $2 AND $3
    ORDER BY created_at DESC
"""


@dataclass(frozen=True)
class StepRow:
    """One step sample to insert: a count and the instant it belongs to."""

    value: int
    created_at: datetime


def build_insert(row_count: int) -> str:
    """Return a multi-row INSERT with ``row_count`` generated placeholder groups."""
    width = len(_COLUMNS)
    groups = ", ".join(
        "(" + ", ".join(f"${i * width + j}" for j in range(1, width + 1)) + ")"
        for i in range(row_count)
    )
    return f"INSERT INTO activity_steps ({', '.join(_COLUMNS)}) VALUES {groups}"


class StepRepository:
    """Insert and query ``activity_steps`` through an asyncpg pool.

    Args:
        pool: asyncpg pool (or anything with the same ``acquire()`` contract).
    """

    def __init__(self, pool: Any) -> None:
        self._pool = pool

    async def insert_many(self, user_id: str, rows: Sequence[StepRow]) -> int:
        """Insert all rows in one transaction: every row is committed or none is.

        Returns:
            Number of rows inserted.

        Raises:
            PersistenceFailure: On any storage error; nothing was written.
        """
        if not rows:
            return 0

        try:
            async with get_connection(self._pool) as conn:
                for offset in range(0, len(rows), _MAX_ROWS_PER_STATEMENT):
                    chunk = rows[offset:offset + _MAX_ROWS_PER_STATEMENT]
                    args: list[Any] = []
                    for row in chunk:
                        args.extend((uuid.uuid4(), user_id, row.value, row.created_at))
                    await conn.execute(build_insert(len(chunk)), *args)
        except _STORAGE_ERRORS as exc:
            logger.error("Step insert rolled back for user %s: %s", user_id, exc)
            raise PersistenceFailure("Failed to save steps") from exc

        logger.info("Inserted %d step records for user %s", len(rows), user_id)
        return len(rows)

    async def insert_one(self, user_id: str, row: StepRow) -> int:
        return await self.insert_many(user_id, [row])

    async def query_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        """Return ``{value, created_at}`` rows in ``[start, end]``, newest first.

        Raises:
            PersistenceFailure: On any storage error.
        """
        try:
            async with get_connection(self._pool) as conn:
                rows = await conn.fetch(_SELECT_RANGE, user_id, start, end)
        except _STORAGE_ERRORS as exc:
            logger.error("Step query failed for user %s: %s", user_id, exc)
            raise PersistenceFailure("Failed to fetch steps") from exc
        return [dict(r) for r in rows]
