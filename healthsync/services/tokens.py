"""Bearer-token verification for the sync endpoint.

Tokens are HS256 JWTs signed with the shared ``JWT_SECRET``.  Expired,
malformed and wrongly-signed tokens all surface as the same ``AuthFailure``
so a client cannot tell which check failed.
"""

from __future__ import annotations

import logging
from typing import Any

import jwt as pyjwt

from healthsync.config import Settings, get_settings
from healthsync.errors import AuthFailure

logger = logging.getLogger("healthsync.auth")


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer ...`` header value."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.removeprefix("Bearer ").strip() or None


def verify_token(token: str | None, settings: Settings | None = None) -> dict[str, Any]:
    """Check signature and expiry; return the claims.

    Raises:
        AuthFailure: For a missing, malformed, wrongly-signed or expired token,
                     or when no signing secret is configured.
    """
    s = settings or get_settings()
    if not token:
        raise AuthFailure()
    if not s.jwt_secret:
        logger.error("JWT_SECRET is not configured; rejecting all tokens")
        raise AuthFailure()

    try:
        return pyjwt.decode(
            token,
            s.jwt_secret,
            algorithms=[s.jwt_algorithm],
            options={"require": ["exp"]},
        )
    except pyjwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise AuthFailure() from None
    except pyjwt.InvalidTokenError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise AuthFailure() from None
