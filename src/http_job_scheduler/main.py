"""Application entry point for the HTTP job scheduler."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
import logging

from fastapi import FastAPI
import uvicorn

from http_job_scheduler import __version__
from http_job_scheduler.api.jobs import router as jobs_router
from http_job_scheduler.api.observability import router as observability_router
from http_job_scheduler.config import get_settings
from http_job_scheduler.database import (
    close_database,
    initialize_database,
    run_startup_database_health_check,
)
from http_job_scheduler.services.alert_sink import AlertSink
from http_job_scheduler.services.execution_recorder import ExecutionRecorder
from http_job_scheduler.services.http_dispatcher import HTTPDispatcher
from http_job_scheduler.services.job_service import JobService
from http_job_scheduler.services.job_store import JobStore
from http_job_scheduler.services.scheduler import SchedulerService
from http_job_scheduler.utils.logging import (
    add_request_logging_middleware,
    setup_logging,
)

__all__ = ["app", "create_app", "main"]

_lifecycle_logger = logging.getLogger("http_job_scheduler.lifecycle")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    app.state.started_at = datetime.now(UTC)

    await initialize_database()
    await run_startup_database_health_check()

    alert_sink = AlertSink(max_alerts=settings.ALERT_HISTORY_LIMIT)
    dispatcher = HTTPDispatcher(
        timeout_seconds=settings.DISPATCH_TIMEOUT_SECONDS,
        retry_base_delay_seconds=settings.DISPATCH_RETRY_BASE_DELAY_SECONDS,
        user_agent=settings.OUTBOUND_HTTP_USER_AGENT,
    )
    job_store = JobStore()
    execution_recorder = ExecutionRecorder()
    scheduler_service = SchedulerService.from_settings(
        settings,
        job_store=job_store,
        execution_recorder=execution_recorder,
        dispatcher=dispatcher,
        alert_sink=alert_sink,
    )
    job_service = JobService(
        job_store=job_store,
        execution_recorder=execution_recorder,
        scheduler=scheduler_service,
        alert_sink=alert_sink,
    )

    app.state.alert_sink = alert_sink
    app.state.dispatcher = dispatcher
    app.state.job_store = job_store
    app.state.execution_recorder = execution_recorder
    app.state.scheduler_service = scheduler_service
    app.state.job_service = job_service

    loaded_jobs = await scheduler_service.load_active_jobs()
    await scheduler_service.start()
    _lifecycle_logger.info(
        "startup_complete",
        extra={
            "loaded_jobs": loaded_jobs,
            "scheduler_enabled": scheduler_service.enabled,
        },
    )

    try:
        yield
    finally:
        await scheduler_service.shutdown()
        _lifecycle_logger.info(
            "shutdown_summary",
            extra={
                "inflight_executions": scheduler_service.inflight_count,
                "recorded_alerts": len(alert_sink),
            },
        )
        await close_database()


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="HTTP Job Scheduler",
        description="Call HTTP endpoints on cron schedules with retries and alerts",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    add_request_logging_middleware(app)
    app.include_router(jobs_router)
    app.include_router(observability_router)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "http_job_scheduler.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
