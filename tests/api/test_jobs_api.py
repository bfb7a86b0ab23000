"""Tests for job management API routes."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from uuid import uuid4

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from http_job_scheduler.api.jobs import router
from http_job_scheduler.models import Base
from http_job_scheduler.services.alert_sink import AlertSink
from http_job_scheduler.services.execution_recorder import ExecutionRecorder
from http_job_scheduler.services.http_dispatcher import HTTPDispatcher
from http_job_scheduler.services.job_service import JobService
from http_job_scheduler.services.job_store import JobStore
from http_job_scheduler.services.scheduler import SchedulerService


@asynccontextmanager
async def _jobs_app(
    tmp_path: Path,
    handler: Callable[[httpx.Request], httpx.Response],
) -> AsyncIterator[FastAPI]:
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'jobs-api.sqlite'}"
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

    app = FastAPI()
    app.include_router(router)
    app.state.scheduler_service = scheduler
    app.state.job_service = JobService(
        job_store=job_store,
        execution_recorder=recorder,
        scheduler=scheduler,
        alert_sink=alert_sink,
    )

    try:
        yield app
    finally:
        await scheduler.shutdown()
        await http_client.aclose()
        await engine.dispose()


@pytest.mark.asyncio
async def test_jobs_api_create_read_update_delete(tmp_path: Path) -> None:
    async with _jobs_app(tmp_path, lambda request: httpx.Response(200)) as app:
        scheduler: SchedulerService = app.state.scheduler_service
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            create_response = await client.post(
                "/api/jobs",
                json={
                    "schedule": "0 */10 * * * *",
                    "api": "https://hooks.example.com/report",
                    "type": "ATLEAST_ONCE",
                },
            )
            assert create_response.status_code == 201
            assert create_response.json()["message"] == "Job created successfully"
            job_id = create_response.json()["job_id"]

            get_response = await client.get(f"/api/jobs/{job_id}")
            assert get_response.status_code == 200
            assert get_response.json()["target_url"] == "https://hooks.example.com/report"
            assert get_response.json()["delivery_mode"] == "AT_LEAST_ONCE"
            assert get_response.json()["is_active"] is True
            assert get_response.json()["created_at"].endswith("Z") or "+00:00" in (
                get_response.json()["created_at"]
            )

            list_response = await client.get("/api/jobs")
            assert list_response.status_code == 200
            assert [item["id"] for item in list_response.json()] == [job_id]
            assert [str(item) for item in scheduler.live_job_ids()] == [job_id]

            update_response = await client.put(
                f"/api/jobs/{job_id}", json={"is_active": False}
            )
            assert update_response.status_code == 200
            assert update_response.json() == {
                "job_id": job_id,
                "message": "Job updated successfully",
            }
            assert scheduler.live_job_ids() == []
            assert (await client.get("/api/jobs")).json() == []

            retarget_response = await client.put(
                f"/api/jobs/{job_id}",
                json={"api": "https://hooks.example.com/v2", "is_active": True},
            )
            assert retarget_response.status_code == 200
            refreshed = (await client.get(f"/api/jobs/{job_id}")).json()
            assert refreshed["target_url"] == "https://hooks.example.com/v2"
            assert [str(item) for item in scheduler.live_job_ids()] == [job_id]

            delete_response = await client.delete(f"/api/jobs/{job_id}")
            assert delete_response.status_code == 200
            assert scheduler.live_job_ids() == []

            missing_response = await client.get(f"/api/jobs/{job_id}")
            assert missing_response.status_code == 404
            assert missing_response.json()["detail"] == "Job not found"
            assert (await client.delete(f"/api/jobs/{job_id}")).status_code == 404
            assert (
                await client.put(f"/api/jobs/{job_id}", json={"is_active": True})
            ).status_code == 404


@pytest.mark.asyncio
async def test_jobs_api_rejects_invalid_definitions(tmp_path: Path) -> None:
    async with _jobs_app(tmp_path, lambda request: httpx.Response(200)) as app:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            bad_schedule = await client.post(
                "/api/jobs",
                json={"schedule": "*/5 * * * *", "api": "https://hooks.example.com"},
            )
            assert bad_schedule.status_code == 422
            assert "Expected format" in bad_schedule.json()["detail"]

            bad_url = await client.post(
                "/api/jobs",
                json={"schedule": "0 * * * * *", "api": "ftp://hooks.example.com"},
            )
            assert bad_url.status_code == 422
            assert bad_url.json()["detail"].startswith("Invalid API URL")

            bad_mode = await client.post(
                "/api/jobs",
                json={
                    "schedule": "0 * * * * *",
                    "api": "https://hooks.example.com",
                    "type": "EXACTLY_ONCE",
                },
            )
            assert bad_mode.status_code == 422

            created = await client.post(
                "/api/jobs",
                json={"schedule": "0 * * * * *", "api": "https://hooks.example.com"},
            )
            job_id = created.json()["job_id"]
            bad_update = await client.put(
                f"/api/jobs/{job_id}", json={"schedule": "61 * * * * *"}
            )
            assert bad_update.status_code == 422

            malformed_id = await client.get("/api/jobs/not-a-uuid")
            assert malformed_id.status_code == 422


@pytest.mark.asyncio
async def test_jobs_api_trigger_history_and_alerts(tmp_path: Path) -> None:
    async with _jobs_app(tmp_path, lambda request: httpx.Response(500)) as app:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            created = await client.post(
                "/api/jobs",
                json={"schedule": "0 0 0 1 1 *", "api": "https://hooks.example.com"},
            )
            job_id = created.json()["job_id"]

            trigger_response = await client.post(f"/api/jobs/{job_id}/trigger")
            assert trigger_response.status_code == 200
            execution = trigger_response.json()["execution"]
            assert execution["status"] == "FAILED"
            assert execution["http_status"] == 500
            assert execution["retry_count"] == 2
            assert execution["error_message"] == "HTTP 500: Internal Server Error"
            assert execution["duration_ms"] is not None

            history_response = await client.get(
                f"/api/jobs/{job_id}/executions", params={"limit": 5}
            )
            assert history_response.status_code == 200
            assert [item["id"] for item in history_response.json()["executions"]] == [
                execution["id"]
            ]

            alerts_response = await client.get(f"/api/jobs/{job_id}/alerts")
            assert alerts_response.status_code == 200
            alerts = alerts_response.json()["alerts"]
            assert len(alerts) == 1
            assert alerts[0]["execution_id"] == execution["id"]
            assert alerts[0]["job_id"] == job_id

            await client.put(f"/api/jobs/{job_id}", json={"is_active": False})
            inactive_trigger = await client.post(f"/api/jobs/{job_id}/trigger")
            assert inactive_trigger.status_code == 409

            unknown_id = uuid4()
            assert (
                await client.post(f"/api/jobs/{unknown_id}/trigger")
            ).status_code == 404
            assert (
                await client.get(f"/api/jobs/{unknown_id}/executions")
            ).status_code == 404
            unknown_alerts = await client.get(f"/api/jobs/{unknown_id}/alerts")
            assert unknown_alerts.json() == {"job_id": str(unknown_id), "alerts": []}


@pytest.mark.asyncio
async def test_jobs_api_returns_503_without_job_service() -> None:
    app = FastAPI()
    app.include_router(router)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/jobs")

    assert response.status_code == 503
    assert response.json()["detail"] == "Job service is unavailable"
