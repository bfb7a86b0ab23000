"""Metrics, health, alert and execution monitoring routes."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from http_job_scheduler.schemas import (
    AlertListResponse,
    AlertRead,
    ExecutionListResponse,
    ExecutionRead,
    ExecutionTotals,
    HealthResponse,
    JobTotals,
    MetricsResponse,
    TriggerListResponse,
    TriggerRead,
)
from http_job_scheduler.services.alert_sink import (
    DEFAULT_RECENT_ALERTS_LIMIT,
    AlertSink,
)
from http_job_scheduler.services.execution_recorder import ExecutionRecorder
from http_job_scheduler.services.job_store import JobStore
from http_job_scheduler.services.scheduler import SchedulerService

router = APIRouter(prefix="/api/observability", tags=["observability"])

_health_logger = logging.getLogger("http_job_scheduler.health")


def _app_state_dependency(attribute: str, expected_type: type[Any], label: str) -> Any:
    def dependency(request: Request) -> Any:
        service = getattr(request.app.state, attribute, None)
        if isinstance(service, expected_type):
            return service

        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} is unavailable",
        )

    return dependency


_get_job_store = _app_state_dependency("job_store", JobStore, "Job store")
_get_execution_recorder = _app_state_dependency(
    "execution_recorder", ExecutionRecorder, "Execution recorder"
)
_get_alert_sink = _app_state_dependency("alert_sink", AlertSink, "Alert sink")
_get_scheduler_service = _app_state_dependency(
    "scheduler_service", SchedulerService, "Scheduler service"
)


def _uptime_seconds(request: Request) -> float:
    started_at = getattr(request.app.state, "started_at", None)
    if not isinstance(started_at, datetime):
        return 0.0
    return round((datetime.now(UTC) - started_at).total_seconds(), 3)


@router.get("/metrics", response_model=MetricsResponse, status_code=status.HTTP_200_OK)
async def get_metrics(
    job_store: JobStore = Depends(_get_job_store),
    execution_recorder: ExecutionRecorder = Depends(_get_execution_recorder),
    alert_sink: AlertSink = Depends(_get_alert_sink),
    scheduler: SchedulerService = Depends(_get_scheduler_service),
) -> MetricsResponse:
    job_counts = await job_store.counts()
    stats = await execution_recorder.stats()

    return MetricsResponse(
        jobs=JobTotals(total=job_counts.total, active=job_counts.active),
        executions=ExecutionTotals(
            total=stats.total,
            successful=stats.successful,
            failed=stats.failed,
            success_rate=f"{stats.success_rate:.2f}%",
            recent_hour=stats.recent_hour,
            average_duration_ms=(
                round(stats.average_duration_ms, 2)
                if stats.average_duration_ms is not None
                else None
            ),
        ),
        recent_alerts=len(alert_sink.recent_alerts(DEFAULT_RECENT_ALERTS_LIMIT)),
        live_triggers=len(scheduler.live_job_ids()),
        scheduler_running=scheduler.running,
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Unhealthy"}},
)
async def get_health(
    request: Request,
    job_store: JobStore = Depends(_get_job_store),
) -> HealthResponse | JSONResponse:
    try:
        await job_store.ping()
    except Exception as error:
        _health_logger.exception("health_check_failed")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "error": str(error)},
        )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        uptime_seconds=_uptime_seconds(request),
    )


@router.get("/alerts", response_model=AlertListResponse, status_code=status.HTTP_200_OK)
async def list_recent_alerts(
    limit: int = Query(default=DEFAULT_RECENT_ALERTS_LIMIT, ge=1, le=1000),
    alert_sink: AlertSink = Depends(_get_alert_sink),
) -> AlertListResponse:
    alerts = [AlertRead.model_validate(alert) for alert in alert_sink.recent_alerts(limit)]
    return AlertListResponse(alerts=alerts, count=len(alerts))


@router.get(
    "/executions/recent",
    response_model=ExecutionListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_recent_executions(
    limit: int = Query(default=20, ge=1, le=500),
    execution_recorder: ExecutionRecorder = Depends(_get_execution_recorder),
) -> ExecutionListResponse:
    executions = await execution_recorder.recent_executions(limit=limit)
    return ExecutionListResponse(
        executions=[ExecutionRead.model_validate(item) for item in executions],
        count=len(executions),
    )


@router.get(
    "/executions/failed",
    response_model=ExecutionListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_failed_executions(
    job_id: UUID | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    execution_recorder: ExecutionRecorder = Depends(_get_execution_recorder),
) -> ExecutionListResponse:
    executions = await execution_recorder.failed_executions(job_id=job_id, limit=limit)
    total = await execution_recorder.count_failed(job_id=job_id)
    return ExecutionListResponse(
        executions=[ExecutionRead.model_validate(item) for item in executions],
        count=total,
    )


@router.get(
    "/triggers", response_model=TriggerListResponse, status_code=status.HTTP_200_OK
)
async def list_live_triggers(
    scheduler: SchedulerService = Depends(_get_scheduler_service),
) -> TriggerListResponse:
    triggers = [TriggerRead.model_validate(item) for item in scheduler.list_triggers()]
    return TriggerListResponse(
        triggers=triggers,
        scheduler_running=scheduler.running,
        count=len(triggers),
    )
