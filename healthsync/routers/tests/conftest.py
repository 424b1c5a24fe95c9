"""Fixtures for the HTTP endpoint tests.

The app is built without running its lifespan, so no real pool is created;
the step repository and settings are swapped through dependency overrides.
"""

from __future__ import annotations

from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from healthsync.config import Settings, get_settings
from healthsync.dependencies import get_step_repository
from healthsync.main import app
from healthsync.services.step_store import StepRepository
from healthsync.services.tests.conftest import FakePool

JWT_SECRET = "router-test-secret-long-enough-for-hs256"


def make_token(expires_in: timedelta = timedelta(hours=1), secret: str = JWT_SECRET) -> str:
    payload = {"sub": "user-1", "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def pool() -> FakePool:
    return FakePool()


@pytest.fixture
def client(pool: FakePool) -> Generator[TestClient, None, None]:
    """Test client whose repository writes to ``pool``."""
    app.dependency_overrides[get_step_repository] = lambda: StepRepository(pool)
    app.dependency_overrides[get_settings] = lambda: Settings(jwt_secret=JWT_SECRET)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}
