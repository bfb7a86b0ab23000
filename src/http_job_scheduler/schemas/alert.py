"""Pydantic schemas for failure alerts."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AlertRead(BaseModel):
    """Serialized failure alert."""

    model_config = ConfigDict(from_attributes=True)

    job_id: UUID
    execution_id: UUID
    timestamp: datetime
    error: str


class AlertListResponse(BaseModel):
    alerts: list[AlertRead]
    count: int


__all__ = ["AlertListResponse", "AlertRead"]
