"""Job execution ORM model tracking one firing of a job."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import (
    DateTime,
    Enum as SqlEnum,
    Index,
    Integer,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from http_job_scheduler.models.base import Base


class ExecutionStatus(str, Enum):
    """Lifecycle states of a job execution."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.SUCCESS, ExecutionStatus.FAILED)


class JobExecution(Base):
    """Execution records kept for audit even after their job is deleted."""

    __tablename__ = "job_executions"
    __table_args__ = (
        Index("ix_job_executions_job_id_scheduled_at", "job_id", "scheduled_at"),
        Index("ix_job_executions_status", "status"),
    )

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    # No foreign key: executions outlive the job they belong to.
    job_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    status: Mapped[ExecutionStatus] = mapped_column(
        SqlEnum(
            ExecutionStatus,
            name="execution_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=ExecutionStatus.PENDING,
    )
    scheduled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    duration_ms: Mapped[int | None] = mapped_column(Integer)
    http_status: Mapped[int | None] = mapped_column(Integer)
    error_message: Mapped[str | None] = mapped_column(String(2048))
    retry_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )


__all__ = ["ExecutionStatus", "JobExecution"]
