"""HTTP client for the activity-steps sync endpoint.

Sends the whole sample list in one request; there is no retry and no
batching threshold, so callers should pick sensible time windows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

import httpx

from healthsync.config import Settings, get_settings
from healthsync.errors import NetworkFailure
from healthsync.health.base import HealthSample, Unit
from healthsync.health.normalizer import parse_timestamp

logger = logging.getLogger("healthsync.health.sync_client")

_STEPS_PATH = "/activity-steps"


@dataclass(frozen=True)
class SyncResult:
    success: bool


class StepSyncClient:
    """Push step samples to, and read history back from, the sync endpoint.

    Args:
        base_url:    API root, e.g. ``https://example.com/api``.
        http_client: Optional pre-configured httpx client (for testing).
    """

    def __init__(self, base_url: str, http_client: httpx.AsyncClient | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._http_client = http_client

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, http_client: httpx.AsyncClient | None = None
    ) -> StepSyncClient:
        """Client pointed at ``API_BASE_URL``."""
        return cls((settings or get_settings()).api_base_url, http_client=http_client)

    async def sync(
        self, user_id: str, samples: Sequence[HealthSample], auth_token: str
    ) -> SyncResult:
        """POST all samples for ``user_id``.

        Raises:
            NetworkFailure: On a transport error or any non-2xx response.  The
                            message is the server's ``error`` field when present.
        """
        body = {"userId": user_id, "steps": [s.to_wire() for s in samples]}
        response = await self._request(
            "POST", json=body, headers=self._auth_headers(auth_token)
        )
        if not response.is_success:
            raise NetworkFailure(
                _error_message(response, "Failed to sync steps"), response.status_code
            )

        logger.info("Synced %d step samples for user %s", len(samples), user_id)
        payload = _json_or_none(response)
        success = payload.get("success", True) if isinstance(payload, dict) else True
        return SyncResult(success=bool(success))

    async def fetch_history(
        self, user_id: str, start: datetime, end: datetime, auth_token: str
    ) -> list[HealthSample]:
        """Read stored step records for ``[start, end]``, newest first.

        Each row becomes a ``count`` sample whose start and end are the row's
        ``created_at``.
        """
        params = {
            "userId": user_id,
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
        }
        response = await self._request(
            "GET", params=params, headers=self._auth_headers(auth_token)
        )
        if not response.is_success:
            raise NetworkFailure(
                _error_message(response, f"HTTP error! status: {response.status_code}"),
                response.status_code,
            )

        samples = []
        for row in response.json():
            created_at = parse_timestamp(row.get("created_at"), "created_at")
            samples.append(
                HealthSample(
                    value=row["value"],
                    start_time=created_at,
                    end_time=created_at,
                    unit=Unit.COUNT,
                )
            )
        return samples

    # ------------------------------------------------------------------

    @staticmethod
    def _auth_headers(auth_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {auth_token}"}

    async def _request(self, method: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}{_STEPS_PATH}"
        try:
            if self._http_client:
                return await self._http_client.request(method, url, **kwargs)
            async with httpx.AsyncClient() as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Sync request %s %s failed: %s", method, url, exc)
            raise NetworkFailure(f"Request to sync endpoint failed: {exc}") from exc


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(response: httpx.Response, default: str) -> str:
    payload = _json_or_none(response)
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return default
