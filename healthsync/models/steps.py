"""Pydantic models for the activity-steps endpoint."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import AliasChoices, Field, NonNegativeInt, field_validator

from healthsync.models.base import HealthSyncBase


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class StepSamplePayload(HealthSyncBase):
    """One step sample as sent by the client (``HealthSample.to_wire()``)."""

    value: int = Field(ge=0)
    start_time: datetime = Field(
        validation_alias=AliasChoices("startTime", "startDate", "start_time")
    )
    end_time: datetime | None = Field(
        default=None, validation_alias=AliasChoices("endTime", "endDate", "end_time")
    )
    unit: str = "count"

    @field_validator("start_time", "end_time")
    @classmethod
    def ensure_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class StepIngestRequest(HealthSyncBase):
    """POST body.  ``steps`` is a list (batch), one sample, or a bare count."""

    user_id: str = Field(min_length=1, validation_alias=AliasChoices("userId", "user_id"))
    steps: list[StepSamplePayload] | StepSamplePayload | NonNegativeInt
    auth_token: str | None = Field(
        default=None, validation_alias=AliasChoices("authToken", "auth_token")
    )


class StepRecordRead(HealthSyncBase):
    value: int
    created_at: datetime


class SyncResponse(HealthSyncBase):
    success: bool = True
