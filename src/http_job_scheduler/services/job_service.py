"""Job management boundary: validation, persistence and trigger registration."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from http_job_scheduler.models import DeliveryMode, Job, JobExecution
from http_job_scheduler.services.alert_sink import Alert, AlertSink
from http_job_scheduler.services.cron import build_cron_trigger
from http_job_scheduler.services.execution_recorder import (
    DEFAULT_HISTORY_LIMIT,
    ExecutionRecorder,
)
from http_job_scheduler.services.job_store import JobStore
from http_job_scheduler.services.scheduler import SchedulerService
from http_job_scheduler.services.validation import validate_target_url

_job_logger = logging.getLogger("http_job_scheduler.jobs")


def normalize_schedule(schedule: str) -> str:
    """Collapse whitespace and reject anything a trigger cannot be built from."""

    build_cron_trigger(schedule)
    return " ".join(schedule.split())


class JobService:
    """Validate job changes and keep live triggers in step with stored jobs."""

    def __init__(
        self,
        *,
        job_store: JobStore,
        execution_recorder: ExecutionRecorder,
        scheduler: SchedulerService,
        alert_sink: AlertSink,
    ) -> None:
        self._job_store = job_store
        self._execution_recorder = execution_recorder
        self._scheduler = scheduler
        self._alert_sink = alert_sink

    async def create_job(
        self,
        *,
        schedule: str,
        target_url: str,
        delivery_mode: DeliveryMode = DeliveryMode.AT_LEAST_ONCE,
        is_active: bool = True,
    ) -> Job:
        normalized_schedule = normalize_schedule(schedule)
        normalized_url = validate_target_url(target_url)

        job = await self._job_store.create(
            schedule=normalized_schedule,
            target_url=normalized_url,
            delivery_mode=delivery_mode,
            is_active=is_active,
        )
        self._scheduler.schedule_job(job)
        _job_logger.info(
            "job_created",
            extra={
                "job_id": str(job.id),
                "schedule": job.schedule,
                "target_url": job.target_url,
            },
        )
        return job

    async def get_job(self, job_id: UUID) -> Job | None:
        return await self._job_store.get(job_id)

    async def list_active_jobs(self) -> list[Job]:
        return await self._job_store.list_active()

    async def update_job(self, job_id: UUID, changes: dict[str, Any]) -> Job | None:
        """Apply a partial update and re-register the job's trigger before returning.

        ``None`` values in ``changes`` are ignored. Returns ``None`` when the job
        does not exist.
        """

        updates = {key: value for key, value in changes.items() if value is not None}
        if "schedule" in updates:
            updates["schedule"] = normalize_schedule(updates["schedule"])
        if "target_url" in updates:
            updates["target_url"] = validate_target_url(updates["target_url"])

        job = await self._job_store.update(job_id, updates)
        if job is None:
            return None

        if job.is_active:
            self._scheduler.schedule_job(job)
        else:
            self._scheduler.unschedule_job(job.id)

        _job_logger.info(
            "job_updated",
            extra={
                "job_id": str(job.id),
                "fields": sorted(updates),
                "is_active": job.is_active,
            },
        )
        return job

    async def delete_job(self, job_id: UUID) -> bool:
        self._scheduler.unschedule_job(job_id)
        deleted = await self._job_store.delete(job_id)
        if deleted:
            _job_logger.info("job_deleted", extra={"job_id": str(job_id)})
        return deleted

    async def trigger_job(self, job_id: UUID) -> JobExecution | None:
        """Run the job once, now, and return its terminal execution.

        Returns ``None`` when the job does not exist or is inactive.
        """

        job = await self._job_store.get(job_id)
        if job is None:
            return None

        _job_logger.info("job_manual_trigger", extra={"job_id": str(job_id)})
        return await self._scheduler.execute_job(job, wait_for_completion=True)

    async def job_executions(
        self,
        job_id: UUID,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[JobExecution] | None:
        if await self._job_store.get(job_id) is None:
            return None
        return await self._execution_recorder.last_executions(job_id, limit=limit)

    def job_alerts(self, job_id: UUID) -> list[Alert]:
        return self._alert_sink.alerts_for_job(job_id)


__all__ = ["JobService", "normalize_schedule"]
