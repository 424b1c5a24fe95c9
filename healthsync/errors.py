"""Error taxonomy shared by the client library and the sync endpoint.

Every failure that leaves a component is one of these, so callers (the
presentation controller or an HTTP handler) can branch on the category
instead of on message text.
"""

from __future__ import annotations

from typing import Any


class HealthSyncError(Exception):
    """Base exception for HealthSync."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


# ---------- Platform health store ----------


class HealthStoreUnavailable(HealthSyncError):
    """The platform health store is missing or disabled on this device."""

    def __init__(self, platform: str, message: str | None = None) -> None:
        super().__init__(
            message=message or f"Health data is not available on this device ({platform})",
            code="UNAVAILABLE",
            status_code=503,
            details={"platform": platform},
        )


class PermissionDenied(HealthSyncError):
    """A required read scope has not been granted."""

    def __init__(self, message: str = "Required health permissions not granted") -> None:
        super().__init__(message=message, code="PERMISSION_DENIED", status_code=403)


class HealthReadError(HealthSyncError):
    """Any other failure reported by the platform while reading records."""

    def __init__(self, record_type: str, message: str) -> None:
        super().__init__(
            message=f"Failed to read {record_type}: {message}",
            code="READ_FAILED",
            status_code=502,
            details={"record_type": record_type},
        )


class NormalizationError(HealthSyncError, ValueError):
    """A raw platform record could not be mapped to the canonical schema."""

    def __init__(self, message: str, record: Any = None) -> None:
        super().__init__(
            message=message,
            code="NORMALIZATION_ERROR",
            status_code=422,
            details={"record": record} if record is not None else None,
        )


# ---------- Sync ----------


class NetworkFailure(HealthSyncError):
    """Non-2xx response or transport error talking to the sync endpoint."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(
            message=message,
            code="NETWORK_FAILURE",
            status_code=status_code or 502,
        )


class AuthFailure(HealthSyncError):
    """Bearer token missing, malformed, wrongly signed or expired."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message=message, code="UNAUTHORIZED", status_code=401)


class PersistenceFailure(HealthSyncError):
    """Storage error; the surrounding transaction has been rolled back."""

    def __init__(self, message: str = "Failed to save steps") -> None:
        super().__init__(message=message, code="PERSISTENCE_FAILURE", status_code=500)


# ---------- Presentation ----------


class InvalidStateTransition(HealthSyncError):
    """A screen-state transition that the state machine does not allow."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            message=f"Cannot move from {current!r} to {target!r}",
            code="INVALID_TRANSITION",
            status_code=409,
            details={"from": current, "to": target},
        )
