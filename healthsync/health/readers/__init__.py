"""Platform health-store readers for HealthSync.

Each reader implements the PlatformHealthReader ABC and handles:
- Translating record types into platform identifiers
- Calling the native module through a HealthBridge
- Mapping platform error codes onto the HealthSync error taxonomy

Available readers:
    HealthConnectReader   Android Health Connect
    HealthKitReader       iOS HealthKit
"""

from __future__ import annotations

from healthsync.config import Settings, get_settings
from healthsync.health.base import PlatformHealthReader
from healthsync.health.readers.bridge import BridgeError, HealthBridge, HttpHealthBridge
from healthsync.health.readers.health_connect import HealthConnectReader
from healthsync.health.readers.healthkit import HealthKitReader

__all__ = [
    "BridgeError",
    "HealthBridge",
    "HttpHealthBridge",
    "HealthConnectReader",
    "HealthKitReader",
    "get_reader",
    "build_reader",
]

# Registry: platform slug → reader class
READER_REGISTRY: dict[str, type[PlatformHealthReader]] = {
    "health_connect": HealthConnectReader,
    "healthkit": HealthKitReader,
}


def get_reader(platform: str) -> type[PlatformHealthReader]:
    """Return the reader class for a platform slug.

    Raises:
        KeyError: If the platform is not registered.
    """
    if platform not in READER_REGISTRY:
        raise KeyError(
            f"No reader registered for platform '{platform}'. "
            f"Available: {list(READER_REGISTRY)}"
        )
    return READER_REGISTRY[platform]


def build_reader(
    settings: Settings | None = None, bridge: HealthBridge | None = None
) -> PlatformHealthReader:
    """Instantiate the reader configured by ``HEALTH_PLATFORM``.

    Uses an HttpHealthBridge pointed at ``HEALTH_BRIDGE_URL`` unless a bridge
    is supplied.
    """
    s = settings or get_settings()
    reader_cls = get_reader(s.health_platform)
    return reader_cls(bridge or HttpHealthBridge(s.health_bridge_url))
