"""Execution lifecycle transitions: PENDING -> RUNNING -> SUCCESS | FAILED."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Final

from http_job_scheduler.models import ExecutionStatus

ALLOWED_TRANSITIONS: Final[dict[ExecutionStatus, frozenset[ExecutionStatus]]] = {
    ExecutionStatus.PENDING: frozenset(
        {ExecutionStatus.RUNNING, ExecutionStatus.FAILED}
    ),
    ExecutionStatus.RUNNING: frozenset(
        {ExecutionStatus.SUCCESS, ExecutionStatus.FAILED}
    ),
    ExecutionStatus.SUCCESS: frozenset(),
    ExecutionStatus.FAILED: frozenset(),
}


class InvalidExecutionTransitionError(RuntimeError):
    """Raised when an execution would move backwards or out of a terminal state."""

    def __init__(self, current: ExecutionStatus, target: ExecutionStatus) -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Execution cannot transition from {current.value} to {target.value}"
        )


def can_transition(current: ExecutionStatus, target: ExecutionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: ExecutionStatus, target: ExecutionStatus) -> None:
    if not can_transition(current, target):
        raise InvalidExecutionTransitionError(current, target)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def duration_between_ms(
    started_at: datetime | None, completed_at: datetime
) -> int | None:
    if started_at is None:
        return None
    elapsed = ensure_utc(completed_at) - ensure_utc(started_at)
    return max(0, int(round(elapsed.total_seconds() * 1000)))


__all__ = [
    "ALLOWED_TRANSITIONS",
    "InvalidExecutionTransitionError",
    "can_transition",
    "duration_between_ms",
    "ensure_transition",
    "ensure_utc",
]
