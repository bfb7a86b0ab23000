"""Persistence access for job definitions."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from http_job_scheduler.models import DeliveryMode, Job

SessionScopeFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

UPDATABLE_JOB_FIELDS = frozenset(
    {"schedule", "target_url", "delivery_mode", "is_active"}
)


@dataclass(slots=True, frozen=True)
class JobCounts:
    total: int
    active: int


def default_session_factory() -> SessionScopeFactory:
    from http_job_scheduler.database import session_scope

    return session_scope


class JobStore:
    """Create, read, update and delete job rows in short transactions."""

    def __init__(self, *, session_factory: SessionScopeFactory | None = None) -> None:
        self._session_factory = session_factory or default_session_factory()

    async def create(
        self,
        *,
        schedule: str,
        target_url: str,
        delivery_mode: DeliveryMode,
        is_active: bool = True,
    ) -> Job:
        async with self._session_factory() as session:
            job = Job(
                schedule=schedule,
                target_url=target_url,
                delivery_mode=delivery_mode,
                is_active=is_active,
            )
            session.add(job)
            await session.flush()
            await session.refresh(job)
            return job

    async def get(self, job_id: UUID) -> Job | None:
        async with self._session_factory() as session:
            return await session.get(Job, job_id)

    async def list_active(self) -> list[Job]:
        async with self._session_factory() as session:
            result = await session.scalars(
                select(Job).where(Job.is_active.is_(True)).order_by(Job.created_at)
            )
            return list(result)

    async def update(self, job_id: UUID, changes: dict[str, Any]) -> Job | None:
        unknown_fields = set(changes) - UPDATABLE_JOB_FIELDS
        if unknown_fields:
            raise ValueError(f"Unknown job fields: {sorted(unknown_fields)}")

        async with self._session_factory() as session:
            job = await session.get(Job, job_id)
            if job is None:
                return None

            for field_name, field_value in changes.items():
                setattr(job, field_name, field_value)
            job.updated_at = datetime.now(UTC)
            await session.flush()
            await session.refresh(job)
            return job

    async def delete(self, job_id: UUID) -> bool:
        async with self._session_factory() as session:
            job = await session.get(Job, job_id)
            if job is None:
                return False
            await session.delete(job)
            await session.flush()
            return True

    async def counts(self) -> JobCounts:
        async with self._session_factory() as session:
            total = int(await session.scalar(select(func.count(Job.id))) or 0)
            active = int(
                await session.scalar(
                    select(func.count(Job.id)).where(Job.is_active.is_(True))
                )
                or 0
            )
        return JobCounts(total=total, active=active)

    async def ping(self) -> None:
        """Run a trivial query, raising when the database is unreachable."""

        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))


__all__ = [
    "JobCounts",
    "JobStore",
    "SessionScopeFactory",
    "UPDATABLE_JOB_FIELDS",
    "default_session_factory",
]
