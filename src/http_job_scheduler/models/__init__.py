"""ORM model exports."""

from http_job_scheduler import __version__
from http_job_scheduler.models.base import Base
from http_job_scheduler.models.job import DeliveryMode, Job
from http_job_scheduler.models.job_execution import ExecutionStatus, JobExecution

__all__ = [
    "__version__",
    "Base",
    "DeliveryMode",
    "ExecutionStatus",
    "Job",
    "JobExecution",
]
