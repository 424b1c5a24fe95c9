"""iOS HealthKit reader.

Bridge methods used:
    querySamples             {typeIdentifier, startDate, endDate} → {"samples": [...]}
    authorizationStatus      {types: [...]} → {identifier: status, ...}
    requestAuthorization     {read: [...]} → resolves after the consent sheet

Steps come back as per-minute cumulative statistics and heart rate as
quantity samples, both as ``{value, startDate, endDate}``.  Sleep comes back
as category samples; ``category`` carries the HKCategoryValueSleepAnalysis
name so that "in bed" periods can be dropped during normalization.
"""

from __future__ import annotations

import logging
from datetime import datetime

from healthsync.errors import HealthReadError, HealthStoreUnavailable, PermissionDenied
from healthsync.health.base import PermissionState, PlatformHealthReader, RecordType
from healthsync.health.normalizer import HEALTHKIT
from healthsync.health.readers.bridge import BridgeError, HealthBridge

logger = logging.getLogger("healthsync.health.healthkit")

_HK_STEP_COUNT = "HKQuantityTypeIdentifierStepCount"
_HK_HEART_RATE = "HKQuantityTypeIdentifierHeartRate"
_HK_SLEEP_ANALYSIS = "HKCategoryTypeIdentifierSleepAnalysis"

_TYPE_IDENTIFIERS: dict[RecordType, str] = {
    RecordType.STEPS: _HK_STEP_COUNT,
    RecordType.HEART_RATE: _HK_HEART_RATE,
    RecordType.SLEEP: _HK_SLEEP_ANALYSIS,
}

_AUTHORIZED = "sharingAuthorized"

_UNAVAILABLE_CODES = {"HEALTH_DATA_UNAVAILABLE"}
_PERMISSION_CODES = {"PERMISSION_ERROR", "AUTHORIZATION_DENIED"}


class HealthKitReader(PlatformHealthReader):
    """Reads step count, heart rate and sleep analysis from HealthKit."""

    PLATFORM = HEALTHKIT
    DISPLAY_NAME = "Apple Health"

    def __init__(self, bridge: HealthBridge) -> None:
        self._bridge = bridge

    async def read_samples(
        self, record_type: RecordType, start: datetime, end: datetime
    ) -> list[dict]:
        try:
            result = await self._bridge.invoke(
                "querySamples",
                {
                    "typeIdentifier": _TYPE_IDENTIFIERS[record_type],
                    "startDate": start.isoformat(),
                    "endDate": end.isoformat(),
                    # HKQueryOptionStrictStartDate: sample must start inside the range
                    "strictStartDate": True,
                },
            )
        except BridgeError as exc:
            raise self._translate(exc, record_type) from exc

        samples = result.get("samples", []) if isinstance(result, dict) else result
        logger.debug("HealthKit: %d raw %s samples", len(samples or []), record_type.value)
        return list(samples or [])

    async def check_permissions(self) -> PermissionState:
        try:
            statuses = await self._bridge.invoke(
                "authorizationStatus", {"types": list(_TYPE_IDENTIFIERS.values())}
            )
        except BridgeError as exc:
            raise self._translate(exc) from exc

        return PermissionState(
            steps=statuses.get(_HK_STEP_COUNT) == _AUTHORIZED,
            heart_rate=statuses.get(_HK_HEART_RATE) == _AUTHORIZED,
            sleep=statuses.get(_HK_SLEEP_ANALYSIS) == _AUTHORIZED,
        )

    async def request_permissions(self) -> PermissionState:
        try:
            await self._bridge.invoke(
                "requestAuthorization", {"read": list(_TYPE_IDENTIFIERS.values())}
            )
        except BridgeError as exc:
            raise self._translate(exc) from exc
        return await self.check_permissions()

    @staticmethod
    def _translate(exc: BridgeError, record_type: RecordType | None = None) -> Exception:
        if exc.code in _UNAVAILABLE_CODES:
            return HealthStoreUnavailable(HEALTHKIT)
        if exc.code in _PERMISSION_CODES:
            return PermissionDenied(exc.message)
        label = record_type.value if record_type else "permissions"
        return HealthReadError(label, exc.message)
