"""Screen state for the health dashboard.

The presentation layer owns exactly one ``HealthScreenStateMachine`` per
screen.  State is replaced, never mutated, and only through the transition
methods below, so a permission check and a fetch running at the same time
cannot interleave half-written updates.  Transitions are synchronous and
therefore atomic with respect to the event loop.

Allowed status transitions::

    idle    → loading
    loading → loading | success | error
    success → loading
    error   → loading

Permission updates are accepted in every status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable

from healthsync.errors import InvalidStateTransition
from healthsync.health.base import AggregatedHealthReport, PermissionState

logger = logging.getLogger("healthsync.health.state")


class ScreenStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


_TRANSITIONS: dict[ScreenStatus, frozenset[ScreenStatus]] = {
    ScreenStatus.IDLE: frozenset({ScreenStatus.LOADING}),
    ScreenStatus.LOADING: frozenset(
        {ScreenStatus.LOADING, ScreenStatus.SUCCESS, ScreenStatus.ERROR}
    ),
    ScreenStatus.SUCCESS: frozenset({ScreenStatus.LOADING}),
    ScreenStatus.ERROR: frozenset({ScreenStatus.LOADING}),
}


@dataclass(frozen=True)
class HealthScreenState:
    """Snapshot of everything the dashboard renders.

    Attributes:
        status:      Load status.
        report:      Last successful report (kept while reloading or on error).
        error:       Message of the last failure, cleared when loading starts.
        permissions: Last observed permission state.
    """

    status: ScreenStatus = ScreenStatus.IDLE
    report: AggregatedHealthReport | None = None
    error: str | None = None
    permissions: PermissionState = field(default_factory=PermissionState.denied)

    @property
    def is_loading(self) -> bool:
        return self.status is ScreenStatus.LOADING


Listener = Callable[[HealthScreenState], None]


class HealthScreenStateMachine:
    """Single update channel for one screen's state."""

    def __init__(self, initial: HealthScreenState | None = None) -> None:
        self._state = initial or HealthScreenState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> HealthScreenState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------- transitions ----------

    def start_loading(self) -> HealthScreenState:
        return self._move(ScreenStatus.LOADING, error=None)

    def load_succeeded(self, report: AggregatedHealthReport) -> HealthScreenState:
        return self._move(ScreenStatus.SUCCESS, report=report, error=None)

    def load_failed(self, message: str) -> HealthScreenState:
        return self._move(ScreenStatus.ERROR, error=message)

    def permissions_updated(self, permissions: PermissionState) -> HealthScreenState:
        return self._commit(replace(self._state, permissions=permissions))

    # ---------- internals ----------

    def _move(self, target: ScreenStatus, **changes: object) -> HealthScreenState:
        current = self._state.status
        if target not in _TRANSITIONS[current]:
            raise InvalidStateTransition(current.value, target.value)
        return self._commit(replace(self._state, status=target, **changes))

    def _commit(self, new_state: HealthScreenState) -> HealthScreenState:
        old_status = self._state.status
        self._state = new_state
        if old_status is not new_state.status:
            logger.debug("Screen state %s → %s", old_status.value, new_state.status.value)
        for listener in list(self._listeners):
            listener(new_state)
        return new_state
