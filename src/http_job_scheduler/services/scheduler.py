"""APScheduler-backed job scheduler owning live cron triggers and executions."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import partial
from typing import cast
from uuid import UUID

from apscheduler.events import EVENT_JOB_ERROR  # type: ignore[import-untyped]
from apscheduler.events import EVENT_JOB_MISSED
from apscheduler.events import JobExecutionEvent
from apscheduler.events import SchedulerEvent
from apscheduler.job import Job as TriggerHandle  # type: ignore[import-untyped]
from apscheduler.jobstores.base import JobLookupError  # type: ignore[import-untyped]
from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]

from http_job_scheduler.config import Settings
from http_job_scheduler.models import Job, JobExecution
from http_job_scheduler.services.alert_sink import AlertRecorder
from http_job_scheduler.services.cron import build_cron_trigger
from http_job_scheduler.services.execution_recorder import ExecutionRecorder
from http_job_scheduler.services.http_dispatcher import HTTPDispatcher
from http_job_scheduler.services.job_store import JobStore

_scheduler_logger = logging.getLogger("http_job_scheduler.scheduler")


@dataclass(slots=True, frozen=True)
class ScheduledTriggerState:
    """Serializable live trigger state for API responses."""

    job_id: UUID
    trigger: str
    next_run_time: datetime | None


def _trigger_id(job_id: UUID) -> str:
    return f"http-job:{job_id}"


class SchedulerService:
    """Map jobs to live cron triggers and run each firing to a terminal state."""

    def __init__(
        self,
        *,
        job_store: JobStore,
        execution_recorder: ExecutionRecorder,
        dispatcher: HTTPDispatcher,
        alert_sink: AlertRecorder,
        enabled: bool = True,
        timezone: str = "UTC",
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._job_store = job_store
        self._execution_recorder = execution_recorder
        self._dispatcher = dispatcher
        self._alert_sink = alert_sink
        self._enabled = enabled
        self._timezone = timezone
        # Triggers are rebuilt from job rows at startup, so the default
        # in-memory job store is used.
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone)
        self._scheduler.add_listener(
            self._handle_trigger_event,
            EVENT_JOB_MISSED | EVENT_JOB_ERROR,
        )
        self._triggers: dict[UUID, TriggerHandle] = {}
        self._inflight: set[asyncio.Task[JobExecution | None]] = set()
        self._shutdown_requested = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        job_store: JobStore,
        execution_recorder: ExecutionRecorder,
        dispatcher: HTTPDispatcher,
        alert_sink: AlertRecorder,
    ) -> SchedulerService:
        return cls(
            job_store=job_store,
            execution_recorder=execution_recorder,
            dispatcher=dispatcher,
            alert_sink=alert_sink,
            enabled=settings.SCHEDULER_ENABLED,
            timezone=settings.SCHEDULER_TIMEZONE,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def running(self) -> bool:
        if not self._enabled or self._shutdown_requested:
            return False
        return cast(bool, self._scheduler.running)

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    async def start(self) -> None:
        if not self._enabled:
            _scheduler_logger.info("scheduler_disabled")
            return

        if self._shutdown_requested or self._scheduler.running:
            return

        self._scheduler.start()
        _scheduler_logger.info(
            "scheduler_started", extra={"live_triggers": len(self._triggers)}
        )

    async def shutdown(self) -> None:
        """Stop and discard every trigger; in-flight executions keep running."""

        for job_id in list(self._triggers):
            self.unschedule_job(job_id)

        # AsyncIOScheduler may only queue its shutdown on the loop, so
        # `running` can stay true until that callback runs.
        if self._shutdown_requested or not self._scheduler.running:
            return

        self._shutdown_requested = True
        self._scheduler.shutdown(wait=False)
        _scheduler_logger.info(
            "scheduler_shutdown", extra={"inflight_executions": len(self._inflight)}
        )

    def schedule_job(self, job: Job) -> None:
        """Replace any trigger for ``job`` with one matching its schedule.

        Inactive jobs end up unscheduled. Raises ``InvalidScheduleError`` for a
        malformed schedule, leaving the job without a trigger.
        """

        self.unschedule_job(job.id)

        if not job.is_active:
            _scheduler_logger.info(
                "scheduler_job_inactive", extra={"job_id": str(job.id)}
            )
            return

        trigger = build_cron_trigger(job.schedule, timezone=self._timezone)
        handle = self._scheduler.add_job(
            func=self._fire,
            trigger=trigger,
            args=(job.id,),
            id=_trigger_id(job.id),
            name=f"POST {job.target_url}",
            replace_existing=True,
        )
        self._triggers[job.id] = handle
        _scheduler_logger.info(
            "scheduler_job_scheduled",
            extra={"job_id": str(job.id), "schedule": job.schedule},
        )

    def unschedule_job(self, job_id: UUID) -> None:
        handle = self._triggers.pop(job_id, None)
        if handle is None:
            return

        try:
            self._scheduler.remove_job(handle.id)
        except JobLookupError:
            _scheduler_logger.warning(
                "scheduler_trigger_already_removed", extra={"job_id": str(job_id)}
            )
        _scheduler_logger.info("scheduler_job_unscheduled", extra={"job_id": str(job_id)})

    async def load_active_jobs(self) -> int:
        """Register triggers for every active job; one bad job never blocks others."""

        jobs = await self._job_store.list_active()
        _scheduler_logger.info("scheduler_loading_active_jobs", extra={"count": len(jobs)})

        loaded = 0
        for job in jobs:
            try:
                self.schedule_job(job)
            except Exception:
                _scheduler_logger.exception(
                    "scheduler_job_load_failed",
                    extra={"job_id": str(job.id), "schedule": job.schedule},
                )
                continue
            loaded += 1

        return loaded

    async def execute_job(
        self, job: Job, *, wait_for_completion: bool = False
    ) -> JobExecution | None:
        """Dispatch one execution of ``job``.

        With ``wait_for_completion`` the call returns the terminal execution, or
        ``None`` when the job was gone or inactive by the time it ran. Otherwise
        the execution runs as a detached task whose errors are logged and never
        propagated, and ``None`` is returned at once.
        """

        if wait_for_completion:
            return await self._run_execution(job.id)

        self._spawn_execution(job.id)
        return None

    def has_trigger(self, job_id: UUID) -> bool:
        return job_id in self._triggers

    def live_job_ids(self) -> list[UUID]:
        return list(self._triggers)

    def list_triggers(self) -> list[ScheduledTriggerState]:
        return [
            ScheduledTriggerState(
                job_id=job_id,
                trigger=str(handle.trigger),
                # Pending handles (scheduler not started) have no next run yet.
                next_run_time=getattr(handle, "next_run_time", None),
            )
            for job_id, handle in self._triggers.items()
        ]

    async def wait_for_inflight(self) -> None:
        """Wait for executions that are currently in flight to finish."""

        if not self._inflight:
            return
        await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _fire(self, job_id: UUID) -> None:
        # Returns immediately so overlapping firings of one job are never
        # blocked by the trigger engine's instance limit.
        self._spawn_execution(job_id)

    def _spawn_execution(self, job_id: UUID) -> asyncio.Task[JobExecution | None]:
        task = asyncio.create_task(
            self._run_execution(job_id),
            name=f"http-job-execution:{job_id}",
        )
        self._inflight.add(task)
        task.add_done_callback(partial(self._on_execution_done, job_id))
        return task

    def _on_execution_done(
        self, job_id: UUID, task: asyncio.Task[JobExecution | None]
    ) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            _scheduler_logger.warning(
                "scheduler_execution_cancelled", extra={"job_id": str(job_id)}
            )
            return

        error = task.exception()
        if error is None:
            return

        _scheduler_logger.error(
            "scheduler_execution_unhandled_error",
            extra={"job_id": str(job_id), "exception": str(error)},
            exc_info=error,
        )

    async def _run_execution(self, job_id: UUID) -> JobExecution | None:
        # Always act on the current row, never on the job seen at scheduling time.
        current_job = await self._job_store.get(job_id)
        if current_job is None or not current_job.is_active:
            _scheduler_logger.warning(
                "scheduler_execution_skipped",
                extra={
                    "job_id": str(job_id),
                    "reason": "deleted" if current_job is None else "inactive",
                },
            )
            return None

        execution = await self._execution_recorder.create_pending(
            job_id=current_job.id,
            scheduled_at=datetime.now(UTC),
        )

        try:
            await self._execution_recorder.mark_running(execution.id)
            _scheduler_logger.debug(
                "scheduler_execution_started",
                extra={"job_id": str(current_job.id), "execution_id": str(execution.id)},
            )
            result = await self._dispatcher.execute(
                current_job.target_url,
                current_job.delivery_mode,
            )
            if result.success:
                finished = await self._execution_recorder.mark_succeeded(
                    execution.id,
                    http_status=result.http_status,
                    retry_count=result.retry_count,
                )
                _scheduler_logger.info(
                    "scheduler_execution_succeeded",
                    extra={
                        "job_id": str(current_job.id),
                        "execution_id": str(execution.id),
                        "http_status": result.http_status,
                        "duration_ms": finished.duration_ms,
                        "retry_count": result.retry_count,
                    },
                )
                return finished
        except Exception as error:
            error_message = str(error) or error.__class__.__name__
            _scheduler_logger.exception(
                "scheduler_execution_error",
                extra={
                    "job_id": str(current_job.id),
                    "execution_id": str(execution.id),
                },
            )
            return await self._record_failure(
                current_job,
                execution.id,
                error_message=error_message,
                http_status=None,
                retry_count=0,
            )

        return await self._record_failure(
            current_job,
            execution.id,
            error_message=result.error or "Unknown error",
            http_status=result.http_status,
            retry_count=result.retry_count,
        )

    async def _record_failure(
        self,
        job: Job,
        execution_id: UUID,
        *,
        error_message: str,
        http_status: int | None,
        retry_count: int,
    ) -> JobExecution:
        finished = await self._execution_recorder.mark_failed(
            execution_id,
            error_message=error_message,
            http_status=http_status,
            retry_count=retry_count,
        )
        _scheduler_logger.warning(
            "scheduler_execution_failed",
            extra={
                "job_id": str(job.id),
                "execution_id": str(execution_id),
                "http_status": http_status,
                "error": error_message,
            },
        )

        try:
            self._alert_sink.record(job, execution_id, error_message)
        except Exception:
            _scheduler_logger.exception(
                "scheduler_alert_failed",
                extra={"job_id": str(job.id), "execution_id": str(execution_id)},
            )

        return finished

    @staticmethod
    def _handle_trigger_event(event: SchedulerEvent) -> None:
        if not isinstance(event, JobExecutionEvent):
            return

        if event.code == EVENT_JOB_MISSED:
            _scheduler_logger.warning(
                "scheduler_trigger_missed",
                extra={
                    "trigger_id": event.job_id,
                    "scheduled_run_time": event.scheduled_run_time.isoformat(),
                },
            )
            return

        _scheduler_logger.error(
            "scheduler_trigger_failed",
            extra={
                "trigger_id": event.job_id,
                "exception": str(event.exception),
                "traceback": event.traceback,
            },
        )


__all__ = ["ScheduledTriggerState", "SchedulerService"]
