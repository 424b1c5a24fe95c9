"""Transport to the on-device native health module.

The native module (Health Connect on Android, HealthKit on iOS) is an
external collaborator.  Readers talk to it through the small ``HealthBridge``
protocol: call a named method with JSON params, get JSON back, or get a
``BridgeError`` carrying the platform's error code.

``HttpHealthBridge`` implements the protocol over HTTP: each method is a
``POST {base_url}/{method}`` with a JSON body.  Error responses carry
``{"code": "...", "message": "..."}``.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger("healthsync.health.bridge")


class BridgeError(Exception):
    """Failure reported by the native module, with its platform error code."""

    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        self.message = message or code
        super().__init__(f"{code}: {self.message}")


class HealthBridge(Protocol):
    async def invoke(self, method: str, params: dict[str, Any] | None = None) -> Any:
        ...


class HttpHealthBridge:
    """HealthBridge over HTTP.

    Args:
        base_url:    Root URL of the bridge (e.g. ``http://127.0.0.1:8765``).
        http_client: Optional pre-configured httpx client (for testing).
    """

    def __init__(self, base_url: str, http_client: httpx.AsyncClient | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._http_client = http_client

    async def invoke(self, method: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self._base_url}/{method}"
        try:
            if self._http_client:
                response = await self._http_client.post(url, json=params or {})
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(url, json=params or {})
        except httpx.HTTPError as exc:
            logger.warning("Bridge call %s failed: %s", method, exc)
            raise BridgeError("BRIDGE_UNREACHABLE", str(exc)) from exc

        if response.status_code >= 400:
            code, message = "BRIDGE_ERROR", f"HTTP {response.status_code}"
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                code = body.get("code") or code
                message = body.get("message") or message
            raise BridgeError(code, message)

        return response.json()
