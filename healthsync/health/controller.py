"""Presentation-side orchestration of permissions, fetches and syncs.

``HealthDataController`` is what a dashboard screen talks to.  It owns the
screen's state machine and is the only code that moves it.
"""

from __future__ import annotations

import logging
from datetime import datetime

from healthsync.errors import HealthSyncError, PermissionDenied
from healthsync.health.aggregator import HealthAggregator
from healthsync.health.base import AggregatedHealthReport, PermissionState, PlatformHealthReader
from healthsync.health.state import HealthScreenState, HealthScreenStateMachine
from healthsync.health.sync_client import StepSyncClient, SyncResult

logger = logging.getLogger("healthsync.health.controller")


class HealthDataController:
    """Drive one health dashboard.

    Args:
        reader:      Platform reader for the current device.
        sync_client: Client for the step sync endpoint; required for ``sync_steps``.
        machine:     State machine to drive; a fresh one by default.
    """

    def __init__(
        self,
        reader: PlatformHealthReader,
        sync_client: StepSyncClient | None = None,
        machine: HealthScreenStateMachine | None = None,
    ) -> None:
        self._reader = reader
        self._aggregator = HealthAggregator(reader)
        self._sync_client = sync_client
        self._machine = machine or HealthScreenStateMachine()

    @property
    def state(self) -> HealthScreenState:
        return self._machine.state

    @property
    def machine(self) -> HealthScreenStateMachine:
        return self._machine

    async def load(self) -> PermissionState:
        """Initial permission check for a freshly opened screen.

        Failures here degrade to the all-denied state instead of raising, so
        the screen can still offer a request-permission action.
        """
        try:
            return await self.check_permissions()
        except HealthSyncError as exc:
            logger.warning("Initial permission check failed: %s", exc)
            self._machine.permissions_updated(PermissionState.denied())
            return self._machine.state.permissions

    async def check_permissions(self) -> PermissionState:
        permissions = await self._reader.check_permissions()
        self._machine.permissions_updated(permissions)
        return permissions

    async def request_permissions(self) -> PermissionState:
        permissions = await self._reader.request_permissions()
        self._machine.permissions_updated(permissions)
        return permissions

    async def fetch(self, start: datetime, end: datetime) -> AggregatedHealthReport:
        """Fetch a report for ``[start, end)`` and publish it to the screen.

        Raises:
            PermissionDenied: If any of the three read permissions is missing.
            Exception:        Whatever the aggregator raised, after the screen
                              has moved to the error status.
        """
        if not self._machine.state.permissions.all_granted:
            raise PermissionDenied()

        self._machine.start_loading()
        try:
            report = await self._aggregator.fetch(start, end)
        except Exception as exc:
            self._machine.load_failed(_describe(exc, "Failed to fetch health data"))
            raise
        self._machine.load_succeeded(report)
        return report

    async def today_steps(self) -> int:
        return await self._aggregator.today_steps()

    async def sync_steps(
        self, user_id: str, auth_token: str, start: datetime, end: datetime
    ) -> SyncResult:
        """Fetch ``[start, end)`` from the device and push its steps to the server."""
        if self._sync_client is None:
            raise RuntimeError("HealthDataController was created without a sync client")

        report = await self.fetch(start, end)
        try:
            return await self._sync_client.sync(user_id, list(report.steps), auth_token)
        except HealthSyncError as exc:
            logger.error("Health sync failed: %s", exc)
            raise


def _describe(exc: Exception, default: str) -> str:
    if isinstance(exc, HealthSyncError) and exc.message:
        return exc.message
    return str(exc) or default
