"""Pydantic schemas for job execution records."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from http_job_scheduler.models import ExecutionStatus
from http_job_scheduler.services.execution_state import ensure_utc


class ExecutionRead(BaseModel):
    """Serialized execution record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    job_id: UUID
    status: ExecutionStatus
    scheduled_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None
    http_status: int | None = None
    error_message: str | None = None
    retry_count: int = 0

    @field_validator("scheduled_at", "started_at", "completed_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return ensure_utc(value)


class ExecutionListResponse(BaseModel):
    """Execution list with the number of matching records."""

    executions: list[ExecutionRead]
    count: int


__all__ = ["ExecutionListResponse", "ExecutionRead"]
