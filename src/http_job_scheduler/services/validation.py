"""Validation errors and helpers for job definitions before persistence."""

from __future__ import annotations

from urllib.parse import urlsplit

ALLOWED_TARGET_SCHEMES = frozenset({"http", "https"})


class JobValidationError(ValueError):
    """Raised when a job definition fails validation checks."""


class InvalidScheduleError(JobValidationError):
    """Raised when a cron schedule is not a well-formed six-field expression."""


class InvalidTargetURLError(JobValidationError):
    """Raised when a job target is not an absolute HTTP(S) URL."""


def validate_target_url(url: str) -> str:
    """Return the stripped URL, or raise when it cannot be dispatched to."""

    candidate = url.strip()
    if not candidate:
        raise InvalidTargetURLError("Invalid API URL: value is empty")

    try:
        parsed_url = urlsplit(candidate)
        # Accessing the port validates it.
        parsed_url.port
    except ValueError as error:
        raise InvalidTargetURLError(f"Invalid API URL: {error}") from error

    if parsed_url.scheme.lower() not in ALLOWED_TARGET_SCHEMES:
        raise InvalidTargetURLError(
            f"Invalid API URL: scheme must be http or https, got {parsed_url.scheme!r}"
        )

    if not parsed_url.hostname:
        raise InvalidTargetURLError("Invalid API URL: missing host")

    return candidate


__all__ = [
    "ALLOWED_TARGET_SCHEMES",
    "InvalidScheduleError",
    "InvalidTargetURLError",
    "JobValidationError",
    "validate_target_url",
]
