"""Service layer for the HTTP job scheduler."""

from http_job_scheduler import __version__
from http_job_scheduler.services.alert_sink import (
    DEFAULT_RECENT_ALERTS_LIMIT,
    Alert,
    AlertRecorder,
    AlertSink,
)
from http_job_scheduler.services.cron import (
    CRON_FIELD_COUNT,
    CRON_FORMAT,
    build_cron_trigger,
    parse_cron_expression,
)
from http_job_scheduler.services.execution_recorder import (
    DEFAULT_HISTORY_LIMIT,
    ExecutionRecorder,
    ExecutionStats,
)
from http_job_scheduler.services.execution_state import (
    ALLOWED_TRANSITIONS,
    InvalidExecutionTransitionError,
    can_transition,
    ensure_transition,
)
from http_job_scheduler.services.http_dispatcher import (
    MAX_ATTEMPTS,
    DispatchResult,
    HTTPDispatcher,
    retry_delay_seconds,
)
from http_job_scheduler.services.job_service import JobService, normalize_schedule
from http_job_scheduler.services.job_store import JobCounts, JobStore
from http_job_scheduler.services.scheduler import (
    ScheduledTriggerState,
    SchedulerService,
)
from http_job_scheduler.services.validation import (
    InvalidScheduleError,
    InvalidTargetURLError,
    JobValidationError,
    validate_target_url,
)

__all__ = [
    "__version__",
    "ALLOWED_TRANSITIONS",
    "Alert",
    "AlertRecorder",
    "AlertSink",
    "CRON_FIELD_COUNT",
    "CRON_FORMAT",
    "DEFAULT_HISTORY_LIMIT",
    "DEFAULT_RECENT_ALERTS_LIMIT",
    "DispatchResult",
    "ExecutionRecorder",
    "ExecutionStats",
    "HTTPDispatcher",
    "InvalidExecutionTransitionError",
    "InvalidScheduleError",
    "InvalidTargetURLError",
    "JobCounts",
    "JobService",
    "JobStore",
    "JobValidationError",
    "MAX_ATTEMPTS",
    "ScheduledTriggerState",
    "SchedulerService",
    "build_cron_trigger",
    "can_transition",
    "ensure_transition",
    "normalize_schedule",
    "parse_cron_expression",
    "retry_delay_seconds",
    "validate_target_url",
]
