"""Shared fixtures and fake platform payloads for the health pipeline tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from healthsync.health.base import PermissionState, PlatformHealthReader, RecordType

WINDOW_START = datetime(2026, 2, 23, 0, 0, tzinfo=timezone.utc)
WINDOW_END = datetime(2026, 2, 24, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Raw platform payloads
# ---------------------------------------------------------------------------


HEALTH_CONNECT_PAYLOAD: dict[RecordType, list[dict]] = {
    RecordType.STEPS: [
        {"count": 120, "startTime": "2026-02-23T08:00:00Z", "endTime": "2026-02-23T08:01:00Z"},
        {"count": 340, "startTime": "2026-02-23T12:30:00Z", "endTime": "2026-02-23T12:35:00Z"},
        {"count": 40, "startTime": "2026-02-23T23:59:00Z", "endTime": "2026-02-24T00:00:00Z"},
    ],
    RecordType.HEART_RATE: [
        {"bpm": 58, "time": "2026-02-23T03:00:00Z"},
        {"bpm": 72, "time": "2026-02-23T09:00:00Z"},
        {"bpm": 110, "time": "2026-02-23T18:00:00Z"},
    ],
    RecordType.SLEEP: [
        {"startTime": "2026-02-23T00:30:00Z", "endTime": "2026-02-23T06:30:00Z", "stage": "deep"},
        {"startTime": "2026-02-23T14:00:00Z", "endTime": "2026-02-23T14:30:00Z"},
    ],
}

HEALTHKIT_PAYLOAD: dict[RecordType, list[dict]] = {
    RecordType.STEPS: [
        {"value": 500, "startDate": "2026-02-23T07:00:00Z", "endDate": "2026-02-23T07:01:00Z"},
        {"value": 250, "startDate": "2026-02-23T07:01:00Z", "endDate": "2026-02-23T07:02:00Z"},
    ],
    RecordType.HEART_RATE: [
        {"value": 61.0, "startDate": "2026-02-23T07:00:00Z", "endDate": "2026-02-23T07:00:00Z"},
        {"value": 65.0, "startDate": "2026-02-23T07:05:00Z", "endDate": "2026-02-23T07:05:00Z"},
    ],
    RecordType.SLEEP: [
        {"startDate": "2026-02-23T00:00:00Z", "endDate": "2026-02-23T01:00:00Z",
         "category": "inBed"},
        {"startDate": "2026-02-23T01:00:00Z", "endDate": "2026-02-23T04:00:00Z",
         "category": "asleep", "duration": 3.0},
    ],
}


# ---------------------------------------------------------------------------
# Fake reader
# ---------------------------------------------------------------------------


class FakeReader(PlatformHealthReader):
    """In-memory PlatformHealthReader.

    Args:
        platform:    Normalizer platform slug to report.
        payload:     Raw records per record type.
        errors:      Exception to raise per record type.
        delays:      Seconds to sleep before answering, per record type.
        permissions: What check/request_permissions return (or raise).
    """

    DISPLAY_NAME = "Fake"

    def __init__(
        self,
        platform: str = "health_connect",
        payload: dict[RecordType, list[dict]] | None = None,
        errors: dict[RecordType, Exception] | None = None,
        delays: dict[RecordType, float] | None = None,
        permissions: PermissionState | Exception | None = None,
    ) -> None:
        self.PLATFORM = platform
        self.payload = payload if payload is not None else HEALTH_CONNECT_PAYLOAD
        self.errors = errors or {}
        self.delays = delays or {}
        self.permissions = permissions or PermissionState(True, True, True)
        self.calls: list[tuple[RecordType, datetime, datetime]] = []
        self.started: list[RecordType] = []
        self.cancelled: list[RecordType] = []

    async def read_samples(
        self, record_type: RecordType, start: datetime, end: datetime
    ) -> list[dict]:
        self.calls.append((record_type, start, end))
        self.started.append(record_type)
        try:
            await asyncio.sleep(self.delays.get(record_type, 0))
        except asyncio.CancelledError:
            self.cancelled.append(record_type)
            raise
        if record_type in self.errors:
            raise self.errors[record_type]
        return list(self.payload.get(record_type, []))

    async def check_permissions(self) -> PermissionState:
        if isinstance(self.permissions, Exception):
            raise self.permissions
        return self.permissions

    async def request_permissions(self) -> PermissionState:
        return await self.check_permissions()


@pytest.fixture
def health_connect_reader() -> FakeReader:
    return FakeReader()


@pytest.fixture
def healthkit_reader() -> FakeReader:
    return FakeReader(platform="healthkit", payload=HEALTHKIT_PAYLOAD)


# ---------------------------------------------------------------------------
# Mock HTTP clients
# ---------------------------------------------------------------------------


def make_response(status_code: int = 200, json_body: Any = None) -> MagicMock:
    """Mock httpx.Response with the attributes the client code reads."""
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    if isinstance(json_body, Exception):
        response.json = MagicMock(side_effect=json_body)
    else:
        response.json = MagicMock(return_value=json_body)
    return response


@pytest.fixture
def mock_httpx_client() -> MagicMock:
    """Mock httpx.AsyncClient for testing without real network calls."""
    client = MagicMock()
    response = make_response(200, {})
    client.get = AsyncMock(return_value=response)
    client.post = AsyncMock(return_value=response)
    client.request = AsyncMock(return_value=response)
    return client
