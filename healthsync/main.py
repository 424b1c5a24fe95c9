"""HealthSync API: FastAPI application entry point.

Run locally:
    uvicorn healthsync.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from healthsync.config import Settings, get_settings
from healthsync.errors import HealthSyncError
from healthsync.middleware.security import SecurityHeadersMiddleware
from healthsync.routers import activity_steps, health
from healthsync.services.database import close_pool, init_pool

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("healthsync")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting HealthSync API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    if not settings.jwt_secret:
        logger.warning("JWT_SECRET is empty; every sync request will be rejected")
    await init_pool(settings)
    yield
    await close_pool()
    logger.info("HealthSync API shut down")


# ---------- Error rendering ----------

async def healthsync_exception_handler(request: Request, exc: HealthSyncError) -> JSONResponse:
    """Render any HealthSyncError as ``{"error": message}``."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "%s %s → %d %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.code,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_exception_handler(
    request: Request, exc: RequestValidationError | ValidationError
) -> JSONResponse:
    """Render request and body validation failures as ``{"error": message}``."""
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    logger.warning("%s %s → 422: %s", request.method, request.url.path, "; ".join(problems))
    return JSONResponse(status_code=422, content={"error": "Invalid request"})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: anything unexpected is a 500 with a generic message."""
    logger.exception("%s %s → 500: unhandled %s", request.method, request.url.path, type(exc).__name__)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ---------- App factory ----------

API_PREFIX = "/api"


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app.  Interactive docs are only served outside production."""
    settings = settings or get_settings()
    production = settings.environment == "production"

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Step sample ingestion and history for the HealthSync mobile app.",
        version=settings.app_version,
        docs_url=None if production else "/docs",
        redoc_url=None,
        openapi_url=None if production else "/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        SecurityHeadersMiddleware,
        hsts=settings.environment != "development",
        api_prefix=API_PREFIX,
    )
    # Registered last, so it is outermost and answers preflight requests itself
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.add_exception_handler(HealthSyncError, healthsync_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router)
    app.include_router(activity_steps.router, prefix=API_PREFIX)
    return app


app = create_app()
