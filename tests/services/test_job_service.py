"""Tests for job management validation and trigger synchronization."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from uuid import uuid4

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from http_job_scheduler.models import Base, DeliveryMode, ExecutionStatus
from http_job_scheduler.services.alert_sink import AlertSink
from http_job_scheduler.services.execution_recorder import ExecutionRecorder
from http_job_scheduler.services.execution_state import ensure_utc
from http_job_scheduler.services.http_dispatcher import HTTPDispatcher
from http_job_scheduler.services.job_service import JobService, normalize_schedule
from http_job_scheduler.services.job_store import JobStore
from http_job_scheduler.services.scheduler import SchedulerService
from http_job_scheduler.services.validation import (
    InvalidScheduleError,
    InvalidTargetURLError,
    JobValidationError,
)


@pytest.mark.asyncio
async def test_job_service_crud_keeps_triggers_in_sync(tmp_path: Path) -> None:
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'job-service.sqlite'}"
    engine = create_async_engine(database_url)
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )

    @asynccontextmanager
    async def scoped_session() -> AsyncIterator[AsyncSession]:
        session = session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/fail":
            return httpx.Response(status_code=400)
        return httpx.Response(status_code=200)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    job_store = JobStore(session_factory=scoped_session)
    recorder = ExecutionRecorder(session_factory=scoped_session)
    alert_sink = AlertSink(max_alerts=50)
    scheduler = SchedulerService(
        job_store=job_store,
        execution_recorder=recorder,
        dispatcher=HTTPDispatcher(http_client=http_client, retry_base_delay_seconds=0),
        alert_sink=alert_sink,
    )
    service = JobService(
        job_store=job_store,
        execution_recorder=recorder,
        scheduler=scheduler,
        alert_sink=alert_sink,
    )

    try:
        job = await service.create_job(
            schedule="  0  */5 * * * *  ",
            target_url=" https://hooks.example.com/ok ",
        )
        assert job.schedule == "0 */5 * * * *"
        assert job.target_url == "https://hooks.example.com/ok"
        assert job.delivery_mode is DeliveryMode.AT_LEAST_ONCE
        assert scheduler.has_trigger(job.id)

        fetched = await service.get_job(job.id)
        assert fetched is not None
        assert fetched.id == job.id
        assert [item.id for item in await service.list_active_jobs()] == [job.id]

        deactivated = await service.update_job(job.id, {"is_active": False})
        assert deactivated is not None
        assert deactivated.is_active is False
        assert not scheduler.has_trigger(job.id)
        assert await service.list_active_jobs() == []

        reactivated = await service.update_job(
            job.id,
            {"is_active": True, "schedule": "0 0 12 * * 1-5", "target_url": None},
        )
        assert reactivated is not None
        assert reactivated.schedule == "0 0 12 * * 1-5"
        assert reactivated.target_url == "https://hooks.example.com/ok"
        assert ensure_utc(reactivated.updated_at) >= ensure_utc(job.updated_at)
        assert scheduler.has_trigger(job.id)

        with pytest.raises(InvalidScheduleError):
            await service.update_job(job.id, {"schedule": "0 0 12 * *"})
        with pytest.raises(InvalidTargetURLError):
            await service.update_job(job.id, {"target_url": "ftp://files.example"})
        assert scheduler.has_trigger(job.id)

        assert await service.update_job(uuid4(), {"is_active": True}) is None

        execution = await service.trigger_job(job.id)
        assert execution is not None
        assert execution.status is ExecutionStatus.SUCCESS
        history = await service.job_executions(job.id)
        assert history is not None
        assert [item.id for item in history] == [execution.id]
        assert await service.job_executions(uuid4()) is None
        assert await service.trigger_job(uuid4()) is None

        assert await service.delete_job(job.id) is True
        assert not scheduler.has_trigger(job.id)
        assert await service.get_job(job.id) is None
        assert await service.delete_job(job.id) is False
        # Executions outlive their job.
        assert [item.id for item in await recorder.last_executions(job.id)] == [
            execution.id
        ]
    finally:
        await scheduler.shutdown()
        await http_client.aclose()
        await engine.dispose()


@pytest.mark.asyncio
async def test_job_service_rejects_invalid_definitions(tmp_path: Path) -> None:
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'job-validation.sqlite'}"
    engine = create_async_engine(database_url)
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )

    @asynccontextmanager
    async def scoped_session() -> AsyncIterator[AsyncSession]:
        session = session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    job_store = JobStore(session_factory=scoped_session)
    recorder = ExecutionRecorder(session_factory=scoped_session)
    alert_sink = AlertSink(max_alerts=50)
    scheduler = SchedulerService(
        job_store=job_store,
        execution_recorder=recorder,
        dispatcher=HTTPDispatcher(),
        alert_sink=alert_sink,
    )
    service = JobService(
        job_store=job_store,
        execution_recorder=recorder,
        scheduler=scheduler,
        alert_sink=alert_sink,
    )

    try:
        for schedule in ("* * * * *", "* * * * * * *", "99 * * * * *"):
            with pytest.raises(InvalidScheduleError):
                await service.create_job(
                    schedule=schedule, target_url="https://hooks.example.com"
                )

        for target_url in ("", "not a url", "mailto:ops@example.com", "http://"):
            with pytest.raises(InvalidTargetURLError, match="Invalid API URL"):
                await service.create_job(schedule="* * * * * *", target_url=target_url)

        with pytest.raises(JobValidationError):
            await service.create_job(schedule="bad", target_url="https://ok.example")

        counts = await job_store.counts()
        assert counts.total == 0
        assert scheduler.live_job_ids() == []
    finally:
        await scheduler.shutdown()
        await engine.dispose()


def test_normalize_schedule_collapses_whitespace() -> None:
    assert normalize_schedule("0\t0  12 * *   MON") == "0 0 12 * * MON"
