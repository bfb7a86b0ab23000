"""Execution record persistence and lifecycle transitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from http_job_scheduler.models import ExecutionStatus, JobExecution
from http_job_scheduler.services.execution_state import (
    duration_between_ms,
    ensure_transition,
)
from http_job_scheduler.services.job_store import (
    SessionScopeFactory,
    default_session_factory,
)

DEFAULT_HISTORY_LIMIT = 5

_recorder_logger = logging.getLogger("http_job_scheduler.executions")


@dataclass(slots=True, frozen=True)
class ExecutionStats:
    """Aggregate execution counters for observability endpoints."""

    total: int
    successful: int
    failed: int
    recent_hour: int
    average_duration_ms: float | None

    @property
    def success_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.successful / self.total * 100


class ExecutionRecorder:
    """Create execution rows and drive them through their state machine."""

    def __init__(self, *, session_factory: SessionScopeFactory | None = None) -> None:
        self._session_factory = session_factory or default_session_factory()

    async def create_pending(
        self,
        *,
        job_id: UUID,
        scheduled_at: datetime | None = None,
    ) -> JobExecution:
        async with self._session_factory() as session:
            execution = JobExecution(
                job_id=job_id,
                status=ExecutionStatus.PENDING,
                scheduled_at=scheduled_at or datetime.now(UTC),
                retry_count=0,
            )
            session.add(execution)
            await session.flush()
            return execution

    async def mark_running(
        self,
        execution_id: UUID,
        *,
        started_at: datetime | None = None,
    ) -> JobExecution:
        async with self._session_factory() as session:
            execution = await self._transition(
                session, execution_id, ExecutionStatus.RUNNING
            )
            execution.started_at = started_at or datetime.now(UTC)
            await session.flush()
            return execution

    async def mark_succeeded(
        self,
        execution_id: UUID,
        *,
        http_status: int | None,
        retry_count: int = 0,
        completed_at: datetime | None = None,
    ) -> JobExecution:
        return await self._complete(
            execution_id,
            status=ExecutionStatus.SUCCESS,
            http_status=http_status,
            error_message=None,
            retry_count=retry_count,
            completed_at=completed_at,
        )

    async def mark_failed(
        self,
        execution_id: UUID,
        *,
        error_message: str,
        http_status: int | None = None,
        retry_count: int = 0,
        completed_at: datetime | None = None,
    ) -> JobExecution:
        return await self._complete(
            execution_id,
            status=ExecutionStatus.FAILED,
            http_status=http_status,
            error_message=error_message,
            retry_count=retry_count,
            completed_at=completed_at,
        )

    async def get(self, execution_id: UUID) -> JobExecution | None:
        async with self._session_factory() as session:
            return await session.get(JobExecution, execution_id)

    async def last_executions(
        self,
        job_id: UUID,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[JobExecution]:
        async with self._session_factory() as session:
            result = await session.scalars(
                select(JobExecution)
                .where(JobExecution.job_id == job_id)
                .order_by(JobExecution.scheduled_at.desc())
                .limit(limit)
            )
            return list(result)

    async def recent_executions(self, *, limit: int = 20) -> list[JobExecution]:
        async with self._session_factory() as session:
            result = await session.scalars(
                select(JobExecution)
                .order_by(JobExecution.scheduled_at.desc())
                .limit(limit)
            )
            return list(result)

    async def failed_executions(
        self,
        *,
        job_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[JobExecution]:
        statement = select(JobExecution).where(
            JobExecution.status == ExecutionStatus.FAILED
        )
        if job_id is not None:
            statement = statement.where(JobExecution.job_id == job_id)
        statement = statement.order_by(JobExecution.scheduled_at.desc())
        if limit is not None:
            statement = statement.limit(limit)

        async with self._session_factory() as session:
            result = await session.scalars(statement)
            return list(result)

    async def count_failed(self, *, job_id: UUID | None = None) -> int:
        statement = select(func.count(JobExecution.id)).where(
            JobExecution.status == ExecutionStatus.FAILED
        )
        if job_id is not None:
            statement = statement.where(JobExecution.job_id == job_id)

        async with self._session_factory() as session:
            return int(await session.scalar(statement) or 0)

    async def stats(self, *, now: datetime | None = None) -> ExecutionStats:
        one_hour_ago = (now or datetime.now(UTC)) - timedelta(hours=1)
        async with self._session_factory() as session:
            status_rows = (
                await session.execute(
                    select(JobExecution.status, func.count(JobExecution.id)).group_by(
                        JobExecution.status
                    )
                )
            ).all()
            recent_hour = int(
                await session.scalar(
                    select(func.count(JobExecution.id)).where(
                        JobExecution.scheduled_at > one_hour_ago
                    )
                )
                or 0
            )
            average_duration = await session.scalar(
                select(func.avg(JobExecution.duration_ms)).where(
                    JobExecution.duration_ms.is_not(None),
                    JobExecution.status.in_(
                        (ExecutionStatus.SUCCESS, ExecutionStatus.FAILED)
                    ),
                )
            )

        counts_by_status = {row[0]: int(row[1]) for row in status_rows}
        return ExecutionStats(
            total=sum(counts_by_status.values()),
            successful=counts_by_status.get(ExecutionStatus.SUCCESS, 0),
            failed=counts_by_status.get(ExecutionStatus.FAILED, 0),
            recent_hour=recent_hour,
            average_duration_ms=(
                float(average_duration) if average_duration is not None else None
            ),
        )

    async def _complete(
        self,
        execution_id: UUID,
        *,
        status: ExecutionStatus,
        http_status: int | None,
        error_message: str | None,
        retry_count: int,
        completed_at: datetime | None,
    ) -> JobExecution:
        finished_at = completed_at or datetime.now(UTC)
        async with self._session_factory() as session:
            execution = await self._transition(session, execution_id, status)
            execution.completed_at = finished_at
            execution.duration_ms = duration_between_ms(
                execution.started_at, finished_at
            )
            execution.http_status = http_status
            execution.error_message = (
                error_message[:2048] if error_message is not None else None
            )
            execution.retry_count = retry_count
            await session.flush()
            return execution

    @staticmethod
    async def _transition(
        session: AsyncSession,
        execution_id: UUID,
        target: ExecutionStatus,
    ) -> JobExecution:
        execution = await session.get(JobExecution, execution_id)
        if execution is None:
            raise LookupError(f"Execution '{execution_id}' not found")

        ensure_transition(execution.status, target)
        _recorder_logger.debug(
            "execution_status_transition",
            extra={
                "execution_id": str(execution_id),
                "job_id": str(execution.job_id),
                "from_status": execution.status.value,
                "to_status": target.value,
            },
        )
        execution.status = target
        return execution


__all__ = ["DEFAULT_HISTORY_LIMIT", "ExecutionRecorder", "ExecutionStats"]
