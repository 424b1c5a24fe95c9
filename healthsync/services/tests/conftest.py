"""In-memory stand-in for an asyncpg pool, with real transaction semantics."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator

import asyncpg
import pytest


class FakeConnection:
    """Understands the two statements StepRepository issues.

    ``execute`` takes the multi-row INSERT (4 args per row) and ``fetch``
    takes the range SELECT.  ``fail_on_row`` makes the Nth inserted row
    (0-based, counted across the whole transaction) violate NOT NULL.
    """

    def __init__(self, pool: FakePool) -> None:
        self._pool = pool
        self.statements: list[str] = []

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        snapshot = list(self._pool.rows)
        self._pool.inserted_in_tx = 0
        try:
            yield
        except BaseException:
            self._pool.rows[:] = snapshot
            self._pool.rollbacks += 1
            raise
        self._pool.commits += 1

    async def execute(self, sql: str, *args: Any) -> str:
        if self._pool.broken:
            raise asyncpg.InterfaceError("connection is closed")
        self.statements.append(sql)
        groups = [args[i:i + 4] for i in range(0, len(args), 4)]
        for _ in groups:
            if self._pool.inserted_in_tx == self._pool.fail_on_row:
                raise asyncpg.exceptions.NotNullViolationError(
                    'null value in column "value" violates not-null constraint'
                )
            self._pool.inserted_in_tx += 1
        # a statement is atomic: rows land only once every group is accepted
        for row_id, user_id, value, created_at in groups:
            self._pool.rows.append(
                {"id": row_id, "user_id": user_id, "value": value, "created_at": created_at}
            )
        return f"INSERT 0 {len(groups)}"

    async def fetch(self, sql: str, user_id: str, start: datetime, end: datetime) -> list[dict]:
        if self._pool.broken:
            raise asyncpg.InterfaceError("connection is closed")
        matches = [
            r for r in self._pool.rows
            if r["user_id"] == user_id and start <= r["created_at"] <= end
        ]
        matches.sort(key=lambda r: r["created_at"], reverse=True)
        return [{"value": r["value"], "created_at": r["created_at"]} for r in matches]

    async def fetchval(self, sql: str) -> int:
        return 1


class FakePool:
    """Pool whose connections share one in-memory ``activity_steps`` table."""

    def __init__(self, fail_on_row: int | None = None, broken: bool = False) -> None:
        self.rows: list[dict[str, Any]] = []
        self.fail_on_row = fail_on_row
        self.broken = broken
        self.inserted_in_tx = 0
        self.commits = 0
        self.rollbacks = 0
        self.acquired = 0
        self.released = 0
        self.connections: list[FakeConnection] = []

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[FakeConnection]:
        conn = FakeConnection(self)
        self.connections.append(conn)
        self.acquired += 1
        try:
            yield conn
        finally:
            self.released += 1


@pytest.fixture
def fake_pool() -> FakePool:
    return FakePool()
