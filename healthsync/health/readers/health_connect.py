"""Android Health Connect reader.

Bridge methods used:
    readRecords              {recordType, startTime, endTime} → {"records": [...]}
    getGrantedPermissions    {permissions: [...]} → {"granted": [...]}
    requestPermissions       {permissions: [...]} → resolves after the consent screen

Records are returned in Health Connect's own shape (``count``, ``bpm``,
``time``, ``startTime``...); see ``healthsync.health.normalizer``.
"""

from __future__ import annotations

import logging
from datetime import datetime

from healthsync.errors import HealthReadError, HealthStoreUnavailable, PermissionDenied
from healthsync.health.base import PermissionState, PlatformHealthReader, RecordType
from healthsync.health.normalizer import HEALTH_CONNECT
from healthsync.health.readers.bridge import BridgeError, HealthBridge

logger = logging.getLogger("healthsync.health.health_connect")

# RecordType → Health Connect record class name
_RECORD_CLASSES: dict[RecordType, str] = {
    RecordType.STEPS: "StepsRecord",
    RecordType.HEART_RATE: "HeartRateRecord",
    RecordType.SLEEP: "SleepSessionRecord",
}

_READ_PERMISSIONS: dict[RecordType, str] = {
    RecordType.STEPS: "android.permission.health.READ_STEPS",
    RecordType.HEART_RATE: "android.permission.health.READ_HEART_RATE",
    RecordType.SLEEP: "android.permission.health.READ_SLEEP",
}

_UNAVAILABLE_CODES = {"HEALTH_CONNECT_UNAVAILABLE", "SDK_UNAVAILABLE"}
_PERMISSION_CODES = {"PERMISSION_DENIED", "SECURITY_EXCEPTION"}


class HealthConnectReader(PlatformHealthReader):
    """Reads steps, heart rate and sleep sessions from Health Connect."""

    PLATFORM = HEALTH_CONNECT
    DISPLAY_NAME = "Health Connect"

    def __init__(self, bridge: HealthBridge) -> None:
        self._bridge = bridge

    async def read_samples(
        self, record_type: RecordType, start: datetime, end: datetime
    ) -> list[dict]:
        try:
            result = await self._bridge.invoke(
                "readRecords",
                {
                    "recordType": _RECORD_CLASSES[record_type],
                    "startTime": start.isoformat(),
                    "endTime": end.isoformat(),
                },
            )
        except BridgeError as exc:
            raise self._translate(exc, record_type) from exc

        records = result.get("records", []) if isinstance(result, dict) else result
        logger.debug("Health Connect: %d raw %s records", len(records or []), record_type.value)
        return list(records or [])

    async def check_permissions(self) -> PermissionState:
        try:
            result = await self._bridge.invoke(
                "getGrantedPermissions", {"permissions": list(_READ_PERMISSIONS.values())}
            )
        except BridgeError as exc:
            raise self._translate(exc) from exc

        granted = set(result.get("granted", []))
        return PermissionState(
            steps=_READ_PERMISSIONS[RecordType.STEPS] in granted,
            heart_rate=_READ_PERMISSIONS[RecordType.HEART_RATE] in granted,
            sleep=_READ_PERMISSIONS[RecordType.SLEEP] in granted,
        )

    async def request_permissions(self) -> PermissionState:
        try:
            await self._bridge.invoke(
                "requestPermissions", {"permissions": list(_READ_PERMISSIONS.values())}
            )
        except BridgeError as exc:
            raise self._translate(exc) from exc
        return await self.check_permissions()

    @staticmethod
    def _translate(exc: BridgeError, record_type: RecordType | None = None) -> Exception:
        if exc.code in _UNAVAILABLE_CODES:
            return HealthStoreUnavailable(HEALTH_CONNECT)
        if exc.code in _PERMISSION_CODES:
            return PermissionDenied(exc.message)
        label = record_type.value if record_type else "permissions"
        return HealthReadError(label, exc.message)
