"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from healthsync.config import Settings, get_settings
from healthsync.services.database import get_pool
from healthsync.services.step_store import StepRepository


def get_step_repository() -> StepRepository:
    """Repository bound to the process-wide pool.  Overridden in tests."""
    return StepRepository(get_pool())


# Annotated shortcuts for route signatures
Steps = Annotated[StepRepository, Depends(get_step_repository)]
AppSettings = Annotated[Settings, Depends(get_settings)]
