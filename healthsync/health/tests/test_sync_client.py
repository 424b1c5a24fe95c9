"""Tests for the activity-steps HTTP client."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from healthsync.config import Settings
from healthsync.errors import NetworkFailure
from healthsync.health.base import HealthSample, Unit
from healthsync.health.sync_client import StepSyncClient
from healthsync.health.tests.conftest import WINDOW_END, WINDOW_START, make_response

T1 = datetime(2026, 2, 23, 8, 0, tzinfo=timezone.utc)
T2 = datetime(2026, 2, 23, 8, 1, tzinfo=timezone.utc)

SAMPLES = [
    HealthSample(value=120, start_time=T1, end_time=T2, unit=Unit.COUNT),
    HealthSample(value=30, start_time=T2, end_time=T2, unit=Unit.COUNT),
]


class TestSync:
    @pytest.mark.asyncio
    async def test_from_settings_uses_api_base_url(self, mock_httpx_client: MagicMock) -> None:
        mock_httpx_client.request = AsyncMock(return_value=make_response(201, {"success": True}))
        settings = Settings(api_base_url="https://sync.example.com/api")
        client = StepSyncClient.from_settings(settings, http_client=mock_httpx_client)

        await client.sync("user-1", SAMPLES, "tok")

        assert mock_httpx_client.request.call_args.args[1] == "https://sync.example.com/api/activity-steps"

    @pytest.mark.asyncio
    async def test_posts_samples_with_bearer(self, mock_httpx_client: MagicMock) -> None:
        mock_httpx_client.request = AsyncMock(return_value=make_response(201, {"success": True}))
        client = StepSyncClient("https://api.example.com/api/", http_client=mock_httpx_client)

        result = await client.sync("user-1", SAMPLES, "tok-123")

        assert result.success is True
        method, url = mock_httpx_client.request.call_args.args
        kwargs = mock_httpx_client.request.call_args.kwargs
        assert method == "POST"
        assert url == "https://api.example.com/api/activity-steps"
        assert kwargs["headers"] == {"Authorization": "Bearer tok-123"}
        assert kwargs["json"]["userId"] == "user-1"
        assert kwargs["json"]["steps"][0] == {
            "value": 120,
            "startTime": "2026-02-23T08:00:00Z",
            "endTime": "2026-02-23T08:01:00Z",
            "unit": "count",
        }

    @pytest.mark.asyncio
    async def test_empty_body_counts_as_success(self, mock_httpx_client: MagicMock) -> None:
        mock_httpx_client.request = AsyncMock(return_value=make_response(201, ValueError()))
        client = StepSyncClient("https://api.example.com/api", http_client=mock_httpx_client)
        assert (await client.sync("user-1", SAMPLES, "tok")).success is True

    @pytest.mark.asyncio
    async def test_server_error_message_surfaced(self, mock_httpx_client: MagicMock) -> None:
        mock_httpx_client.request = AsyncMock(
            return_value=make_response(401, {"error": "Unauthorized"})
        )
        client = StepSyncClient("https://api.example.com/api", http_client=mock_httpx_client)

        with pytest.raises(NetworkFailure) as info:
            await client.sync("user-1", SAMPLES, "expired")
        assert info.value.message == "Unauthorized"
        assert info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_generic_message_without_error_field(self, mock_httpx_client: MagicMock) -> None:
        mock_httpx_client.request = AsyncMock(return_value=make_response(502, ValueError()))
        client = StepSyncClient("https://api.example.com/api", http_client=mock_httpx_client)

        with pytest.raises(NetworkFailure, match="Failed to sync steps"):
            await client.sync("user-1", SAMPLES, "tok")

    @pytest.mark.asyncio
    async def test_transport_error(self, mock_httpx_client: MagicMock) -> None:
        mock_httpx_client.request = AsyncMock(side_effect=httpx.ConnectTimeout("timed out"))
        client = StepSyncClient("https://api.example.com/api", http_client=mock_httpx_client)

        with pytest.raises(NetworkFailure, match="timed out"):
            await client.sync("user-1", SAMPLES, "tok")


class TestFetchHistory:
    @pytest.mark.asyncio
    async def test_rows_become_count_samples(self, mock_httpx_client: MagicMock) -> None:
        rows = [
            {"value": 30, "created_at": "2026-02-23T08:01:00+00:00"},
            {"value": 120, "created_at": "2026-02-23T08:00:00+00:00"},
        ]
        mock_httpx_client.request = AsyncMock(return_value=make_response(200, rows))
        client = StepSyncClient("https://api.example.com/api", http_client=mock_httpx_client)

        samples = await client.fetch_history("user-1", WINDOW_START, WINDOW_END, "tok")

        assert [s.value for s in samples] == [30, 120]
        assert samples[0].start_time == samples[0].end_time == T2
        assert all(s.unit is Unit.COUNT for s in samples)
        kwargs = mock_httpx_client.request.call_args.kwargs
        assert mock_httpx_client.request.call_args.args[0] == "GET"
        assert kwargs["params"]["userId"] == "user-1"
        assert kwargs["params"]["startDate"] == WINDOW_START.isoformat()

    @pytest.mark.asyncio
    async def test_http_error_status_in_message(self, mock_httpx_client: MagicMock) -> None:
        mock_httpx_client.request = AsyncMock(return_value=make_response(503, ValueError()))
        client = StepSyncClient("https://api.example.com/api", http_client=mock_httpx_client)

        with pytest.raises(NetworkFailure, match="HTTP error! status: 503"):
            await client.fetch_history("user-1", WINDOW_START, WINDOW_END, "tok")

    @pytest.mark.asyncio
    async def test_server_error_field_preferred(self, mock_httpx_client: MagicMock) -> None:
        mock_httpx_client.request = AsyncMock(
            return_value=make_response(500, {"error": "Failed to fetch steps"})
        )
        client = StepSyncClient("https://api.example.com/api", http_client=mock_httpx_client)

        with pytest.raises(NetworkFailure, match="Failed to fetch steps"):
            await client.fetch_history("user-1", WINDOW_START, WINDOW_END, "tok")
