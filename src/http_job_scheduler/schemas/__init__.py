"""Schema exports for API serialization."""

from http_job_scheduler import __version__
from http_job_scheduler.schemas.alert import AlertListResponse, AlertRead
from http_job_scheduler.schemas.execution import ExecutionListResponse, ExecutionRead
from http_job_scheduler.schemas.job import (
    JobAlertsResponse,
    JobBase,
    JobCreate,
    JobExecutionsResponse,
    JobMutationResponse,
    JobRead,
    JobTriggerResponse,
    JobUpdate,
)
from http_job_scheduler.schemas.observability import (
    ExecutionTotals,
    HealthResponse,
    JobTotals,
    MetricsResponse,
    TriggerListResponse,
    TriggerRead,
)

__all__ = [
    "__version__",
    "AlertListResponse",
    "AlertRead",
    "ExecutionListResponse",
    "ExecutionRead",
    "ExecutionTotals",
    "HealthResponse",
    "JobAlertsResponse",
    "JobBase",
    "JobCreate",
    "JobExecutionsResponse",
    "JobMutationResponse",
    "JobRead",
    "JobTotals",
    "JobTriggerResponse",
    "JobUpdate",
    "MetricsResponse",
    "TriggerListResponse",
    "TriggerRead",
]
