"""Response hardening for the step API.

Step rows are personal health data, so anything under ``/api`` is marked
``no-store``.  HSTS is only sent when the app is not running locally.
"""

from __future__ import annotations

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

BASE_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}

HSTS_VALUE = "max-age=63072000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add hardening headers without overriding ones a route already set.

    Args:
        app:        Wrapped ASGI app.
        hsts:       Send ``Strict-Transport-Security``.
        api_prefix: Paths under this prefix get ``Cache-Control: no-store``.
    """

    def __init__(self, app: ASGIApp, hsts: bool = True, api_prefix: str = "/api") -> None:
        super().__init__(app)
        self._headers = dict(BASE_HEADERS)
        if hsts:
            self._headers["Strict-Transport-Security"] = HSTS_VALUE
        self._api_prefix = api_prefix

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        headers = response.headers
        for name, value in self._headers.items():
            headers.setdefault(name, value)
        if request.url.path.startswith(self._api_prefix):
            headers["Cache-Control"] = "no-store"
        return response
