"""In-memory failure alert log."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from http_job_scheduler.models import Job

DEFAULT_RECENT_ALERTS_LIMIT = 50

_alert_logger = logging.getLogger("http_job_scheduler.alerts")


@dataclass(slots=True, frozen=True)
class Alert:
    """One terminal execution failure, correlated to its execution by id."""

    job_id: UUID
    execution_id: UUID
    timestamp: datetime
    error: str


class AlertRecorder(Protocol):
    def record(self, job: Job, execution_id: UUID, error: str) -> None: ...


class AlertSink:
    """Append-only alert log; callers may wire it to a real notification channel."""

    def __init__(self, *, max_alerts: int | None = None) -> None:
        if max_alerts is None:
            from http_job_scheduler.config import get_settings

            max_alerts = get_settings().ALERT_HISTORY_LIMIT
        if max_alerts < 1:
            raise ValueError("max_alerts must be at least one")

        self._alerts: deque[Alert] = deque(maxlen=max_alerts)

    def record(self, job: Job, execution_id: UUID, error: str) -> None:
        """Record a failure alert. Never raises."""

        try:
            alert = Alert(
                job_id=job.id,
                execution_id=execution_id,
                timestamp=datetime.now(UTC),
                error=error,
            )
            self._alerts.append(alert)
            _alert_logger.error(
                "job_execution_failure_alert",
                extra={
                    "job_id": str(alert.job_id),
                    "execution_id": str(alert.execution_id),
                    "target_url": job.target_url,
                    "schedule": job.schedule,
                    "error": alert.error,
                    "alerted_at": alert.timestamp.isoformat(),
                },
            )
        except Exception:
            _alert_logger.exception(
                "alert_record_failed",
                extra={"execution_id": str(execution_id)},
            )

    # Alerts are appended in time order, so reading backwards is newest first.
    def recent_alerts(self, limit: int = DEFAULT_RECENT_ALERTS_LIMIT) -> list[Alert]:
        if limit <= 0:
            return []
        return list(reversed(self._alerts))[:limit]

    def alerts_for_job(self, job_id: UUID) -> list[Alert]:
        return [alert for alert in reversed(self._alerts) if alert.job_id == job_id]

    def __len__(self) -> int:
        return len(self._alerts)


__all__ = ["Alert", "AlertRecorder", "AlertSink", "DEFAULT_RECENT_ALERTS_LIMIT"]
