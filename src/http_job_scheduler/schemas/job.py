"""Pydantic schemas for job resources."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from http_job_scheduler.models import DeliveryMode
from http_job_scheduler.schemas.alert import AlertRead
from http_job_scheduler.schemas.execution import ExecutionRead
from http_job_scheduler.services.execution_state import ensure_utc


def _coerce_delivery_mode(value: Any) -> Any:
    if isinstance(value, str):
        return DeliveryMode(value)
    return value


class JobBase(BaseModel):
    """Shared job fields; ``api`` and ``type`` are accepted as field aliases."""

    model_config = ConfigDict(populate_by_name=True)

    schedule: str = Field(
        min_length=1,
        max_length=255,
        description="Six-field cron expression: second minute hour day month day_of_week",
    )
    target_url: str = Field(
        alias="api",
        min_length=1,
        max_length=2048,
        description="HTTP or HTTPS URL that receives an empty POST on every run",
    )
    delivery_mode: DeliveryMode = Field(
        default=DeliveryMode.AT_LEAST_ONCE,
        alias="type",
    )

    @field_validator("delivery_mode", mode="before")
    @classmethod
    def _parse_delivery_mode(cls, value: Any) -> Any:
        return _coerce_delivery_mode(value)


class JobCreate(JobBase):
    """Payload used to create a job."""

    is_active: bool = True


class JobUpdate(BaseModel):
    """Payload used to update mutable job fields."""

    model_config = ConfigDict(populate_by_name=True)

    schedule: str | None = Field(default=None, min_length=1, max_length=255)
    target_url: str | None = Field(
        default=None, alias="api", min_length=1, max_length=2048
    )
    delivery_mode: DeliveryMode | None = Field(default=None, alias="type")
    is_active: bool | None = None

    @field_validator("delivery_mode", mode="before")
    @classmethod
    def _parse_delivery_mode(cls, value: Any) -> Any:
        return _coerce_delivery_mode(value)


class JobRead(BaseModel):
    """Serialized job resource."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    schedule: str
    target_url: str
    delivery_mode: DeliveryMode
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class JobMutationResponse(BaseModel):
    """Acknowledgement returned by job create, update and delete."""

    job_id: UUID
    message: str


class JobTriggerResponse(JobMutationResponse):
    """Result of a manual run, including its terminal execution."""

    execution: ExecutionRead


class JobExecutionsResponse(BaseModel):
    """Most recent executions of one job, newest first."""

    job_id: UUID
    executions: list[ExecutionRead]


class JobAlertsResponse(BaseModel):
    """Failure alerts of one job, newest first."""

    job_id: UUID
    alerts: list[AlertRead]


__all__ = [
    "JobAlertsResponse",
    "JobBase",
    "JobCreate",
    "JobExecutionsResponse",
    "JobMutationResponse",
    "JobRead",
    "JobTriggerResponse",
    "JobUpdate",
]
