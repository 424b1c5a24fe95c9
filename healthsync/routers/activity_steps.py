"""Step sync endpoint: ingest step samples and read them back.

Ingest moves through ``Idle → TokenValidated → TransactionOpen`` and ends
in ``Committed`` or ``RolledBack``.  The token is checked before the body is
validated and before any connection is acquired, so a rejected request is
always a 401 and never reaches storage.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Query, Request

from healthsync.dependencies import AppSettings, Steps
from healthsync.models.base import ErrorResponse
from healthsync.models.steps import (
    StepIngestRequest,
    StepRecordRead,
    StepSamplePayload,
    SyncResponse,
)
from healthsync.services.step_store import StepRow
from healthsync.services.tokens import extract_bearer, verify_token

router = APIRouter(
    prefix="/activity-steps",
    tags=["activity-steps"],
    responses={
        401: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
logger = logging.getLogger("healthsync.routers.activity_steps")


# ---------- Token checks ----------


async def authorized_body(
    request: Request,
    settings: AppSettings,
    authorization: str | None = Header(default=None),
) -> Any:
    """Verify the token, then hand back the raw JSON body (None if unparseable).

    The ``authToken`` fallback is read from the raw body, so a malformed
    payload still gets a 401 when no valid token is present.
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    token = extract_bearer(authorization)
    if token is None and isinstance(payload, dict):
        candidate = payload.get("authToken", payload.get("auth_token"))
        token = candidate if isinstance(candidate, str) else None
    verify_token(token, settings)
    return payload


async def authorized_query(
    settings: AppSettings,
    auth_token: str | None = Query(default=None, alias="authToken"),
    authorization: str | None = Header(default=None),
) -> None:
    verify_token(extract_bearer(authorization) or auth_token, settings)


# ---------- Routes ----------


def _to_rows(steps: list[StepSamplePayload] | StepSamplePayload | int) -> list[StepRow]:
    if isinstance(steps, list):
        return [StepRow(value=s.value, created_at=s.start_time) for s in steps]
    if isinstance(steps, StepSamplePayload):
        return [StepRow(value=steps.value, created_at=steps.start_time)]
    # Bare count: stamped with the time of receipt
    return [StepRow(value=steps, created_at=datetime.now(timezone.utc))]


def _utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


@router.post("", response_model=SyncResponse, status_code=201)
async def ingest_steps(
    payload: Annotated[Any, Depends(authorized_body)],
    repo: Steps,
) -> Any:
    """Store a batch, a single sample or a bare count (body: ``StepIngestRequest``)."""
    body = StepIngestRequest.model_validate(payload)

    rows = _to_rows(body.steps)
    logger.debug("Ingesting %d step rows for user %s", len(rows), body.user_id)
    await repo.insert_many(body.user_id, rows)
    return SyncResponse(success=True)


@router.get(
    "",
    response_model=list[StepRecordRead],
    dependencies=[Depends(authorized_query)],
)
async def list_steps(
    repo: Steps,
    user_id: str = Query(alias="userId", min_length=1),
    start_date: datetime = Query(alias="startDate"),
    end_date: datetime = Query(alias="endDate"),
) -> Any:
    return await repo.query_range(user_id, _utc(start_date), _utc(end_date))
