"""Base classes and canonical data models for HealthSync.

Every platform reader subclasses PlatformHealthReader and returns raw
platform records; the normalizer turns those into the canonical
HealthSample / SleepSample models below.  These types are the single
source of truth consumed by the aggregator, the presentation layer and the
sync client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Unit(str, Enum):
    COUNT = "count"
    BPM = "bpm"
    HOURS = "hours"


class RecordType(str, Enum):
    STEPS = "steps"
    HEART_RATE = "heartRate"
    SLEEP = "sleep"


#: Read order used when several reads fail together: first listed wins.
RECORD_TYPE_PRIORITY: tuple[RecordType, ...] = (
    RecordType.STEPS,
    RecordType.HEART_RATE,
    RecordType.SLEEP,
)


# ---------------------------------------------------------------------------
# Canonical samples
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval ``[start, end)`` in UTC."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


@dataclass(frozen=True)
class HealthSample:
    """A single timestamped measurement read from a health store.

    Attributes:
        value:      Measured value (step count, beats per minute, hours).
        start_time: UTC start of the measurement.
        end_time:   UTC end of the measurement (equal to start for instants).
        unit:       Unit of ``value``.
    """

    value: float
    start_time: datetime
    end_time: datetime
    unit: Unit

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict in the sync endpoint's camelCase shape."""
        return {
            "value": self.value,
            "startTime": _isoformat(self.start_time),
            "endTime": _isoformat(self.end_time),
            "unit": self.unit.value,
        }


@dataclass(frozen=True)
class SleepSample(HealthSample):
    """A sleep period.  ``value`` always equals ``duration_hours``.

    Attributes:
        duration_hours: Length of the period in hours.
        stage:          Platform sleep stage tag, if the source reports one.
    """

    unit: Unit = Unit.HOURS
    duration_hours: float = 0.0
    stage: str | None = None

    def __post_init__(self) -> None:
        if self.end_time < self.start_time:
            raise ValueError(
                f"Sleep sample ends before it starts: {self.start_time} > {self.end_time}"
            )


@dataclass(frozen=True)
class PermissionState:
    """Read-permission status for the three record types."""

    steps: bool = False
    heart_rate: bool = False
    sleep: bool = False

    @property
    def all_granted(self) -> bool:
        return self.steps and self.heart_rate and self.sleep

    @classmethod
    def denied(cls) -> PermissionState:
        return cls()

    def to_dict(self) -> dict[str, bool]:
        return {
            "steps": self.steps,
            "heartRate": self.heart_rate,
            "sleep": self.sleep,
            "allGranted": self.all_granted,
        }


@dataclass(frozen=True)
class AggregatedHealthReport:
    """Combined result of one fetch.  Build with :meth:`build`, never by hand."""

    steps: tuple[HealthSample, ...]
    heart_rate: tuple[HealthSample, ...]
    sleep: tuple[SleepSample, ...]
    total_steps: float
    avg_heart_rate: float
    total_sleep_hours: float
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def build(
        cls,
        steps: list[HealthSample] | tuple[HealthSample, ...],
        heart_rate: list[HealthSample] | tuple[HealthSample, ...],
        sleep: list[SleepSample] | tuple[SleepSample, ...],
        last_updated: datetime | None = None,
    ) -> AggregatedHealthReport:
        heart_values = [s.value for s in heart_rate]
        return cls(
            steps=tuple(steps),
            heart_rate=tuple(heart_rate),
            sleep=tuple(sleep),
            total_steps=sum(s.value for s in steps),
            avg_heart_rate=sum(heart_values) / len(heart_values) if heart_values else 0,
            total_sleep_hours=sum(s.duration_hours for s in sleep),
            last_updated=last_updated or datetime.now(timezone.utc),
        )

    def latest(self, record_type: RecordType) -> HealthSample | None:
        """Return the most recent sample of a type (by start time), or None."""
        samples = {
            RecordType.STEPS: self.steps,
            RecordType.HEART_RATE: self.heart_rate,
            RecordType.SLEEP: self.sleep,
        }[record_type]
        return max(samples, key=lambda s: s.start_time, default=None)


# ---------------------------------------------------------------------------
# Abstract platform reader
# ---------------------------------------------------------------------------


class PlatformHealthReader(ABC):
    """Abstract base class for platform health-store readers.

    One implementation exists per platform; the concrete class is chosen
    from configuration (see ``healthsync.health.readers.build_reader``).
    Readers return raw platform records untouched; the normalizer absorbs
    the shape differences.

    Subclasses must implement:
        - read_samples()
        - check_permissions()
        - request_permissions()
    """

    #: Platform slug understood by the normalizer ('health_connect', 'healthkit').
    PLATFORM: str = "unknown"

    #: Human-readable name for logging.
    DISPLAY_NAME: str = "Unknown Platform"

    @abstractmethod
    async def read_samples(
        self, record_type: RecordType, start: datetime, end: datetime
    ) -> list[dict]:
        """Read raw records of one type for ``[start, end)``.

        Raises:
            HealthStoreUnavailable: The store is not present on the device.
            PermissionDenied:       The read scope for this type is missing.
            HealthReadError:        Any other platform failure.
        """

    @abstractmethod
    async def check_permissions(self) -> PermissionState:
        """Return the currently granted read permissions."""

    @abstractmethod
    async def request_permissions(self) -> PermissionState:
        """Ask the OS for read permissions.

        Resolves once the user answers or dismisses the consent prompt, with
        the permission state observed afterwards.
        """


def _isoformat(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
