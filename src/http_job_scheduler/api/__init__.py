"""API package exports."""

from http_job_scheduler import __version__
from http_job_scheduler.api.jobs import router as jobs_router
from http_job_scheduler.api.observability import router as observability_router

__all__ = [
    "__version__",
    "jobs_router",
    "observability_router",
]
