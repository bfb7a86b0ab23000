"""Pydantic schemas for metrics and health responses."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class JobTotals(BaseModel):
    total: int
    active: int


class ExecutionTotals(BaseModel):
    """Execution counters; ``success_rate`` is a percentage with two decimals."""

    total: int
    successful: int
    failed: int
    success_rate: str
    recent_hour: int
    average_duration_ms: float | None


class MetricsResponse(BaseModel):
    """Point-in-time service metrics."""

    jobs: JobTotals
    executions: ExecutionTotals
    recent_alerts: int
    live_triggers: int
    scheduler_running: bool
    timestamp: datetime


class TriggerRead(BaseModel):
    """Live cron trigger of one active job."""

    model_config = ConfigDict(from_attributes=True)

    job_id: UUID
    trigger: str
    next_run_time: datetime | None = None


class TriggerListResponse(BaseModel):
    triggers: list[TriggerRead]
    scheduler_running: bool
    count: int


class HealthResponse(BaseModel):
    status: Literal["healthy"]
    timestamp: datetime
    uptime_seconds: float


__all__ = [
    "ExecutionTotals",
    "HealthResponse",
    "JobTotals",
    "MetricsResponse",
    "TriggerListResponse",
    "TriggerRead",
]
