"""HealthSync client-side health data pipeline.

This package reads step, heart-rate and sleep records from a platform
health store, normalizes them into one canonical schema, aggregates them
concurrently, and pushes steps to the sync endpoint.

Subpackages:
    readers/   Platform readers (Health Connect, HealthKit) and the native bridge

Core modules:
    base          PlatformHealthReader ABC and canonical data models
    normalizer    Raw platform record → HealthSample / SleepSample
    aggregator    Concurrent fan-out / fail-fast fan-in fetch
    state         Screen state machine for the presentation layer
    controller    Orchestrates permissions, fetches and syncs for a screen
    sync_client   HTTP client for the activity-steps endpoint
"""

from healthsync.health.aggregator import HealthAggregator
from healthsync.health.base import (
    AggregatedHealthReport,
    HealthSample,
    PermissionState,
    PlatformHealthReader,
    RecordType,
    SleepSample,
    TimeWindow,
    Unit,
)
from healthsync.health.controller import HealthDataController
from healthsync.health.sync_client import StepSyncClient, SyncResult

__all__ = [
    "AggregatedHealthReport",
    "HealthAggregator",
    "HealthDataController",
    "HealthSample",
    "PermissionState",
    "PlatformHealthReader",
    "RecordType",
    "SleepSample",
    "StepSyncClient",
    "SyncResult",
    "TimeWindow",
    "Unit",
]
