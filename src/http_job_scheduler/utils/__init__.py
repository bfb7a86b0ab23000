"""Utilities for shared application concerns."""

from http_job_scheduler import __version__
from http_job_scheduler.utils.logging import (
    add_request_logging_middleware,
    redact_url,
    setup_logging,
)

__all__ = [
    "__version__",
    "add_request_logging_middleware",
    "redact_url",
    "setup_logging",
]
