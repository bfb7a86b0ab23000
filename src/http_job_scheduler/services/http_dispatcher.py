"""HTTP dispatch of job invocations with bounded retries and linear backoff."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from time import perf_counter
from typing import Final

import httpx

from http_job_scheduler.config import get_settings
from http_job_scheduler.models import DeliveryMode

MAX_ATTEMPTS: Final[int] = 3
DEFAULT_MAX_REDIRECTS: Final[int] = 5

_logger = logging.getLogger("http_job_scheduler.dispatcher")


@dataclass(slots=True, frozen=True)
class DispatchResult:
    """Structured outcome of one logical invocation (all attempts included)."""

    success: bool
    duration_ms: int
    http_status: int | None = None
    error: str | None = None
    retry_count: int = 0


@dataclass(slots=True, frozen=True)
class _AttemptOutcome:
    success: bool
    retryable: bool
    http_status: int | None
    error: str | None


def _is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


def _is_server_error_status(status_code: int) -> bool:
    return 500 <= status_code < 600


def retry_delay_seconds(retry_number: int, base_delay_seconds: float) -> float:
    """Delay before the ``retry_number``-th retry (1-indexed), linear in n."""

    return float(base_delay_seconds * retry_number)


def _elapsed_ms(started_at: float) -> int:
    return int(round((perf_counter() - started_at) * 1000))


def _describe_transport_error(error: Exception) -> str:
    message = str(error).strip()
    if not message:
        return error.__class__.__name__
    return f"{error.__class__.__name__}: {message}"


def _classify_response(
    response: httpx.Response, delivery_mode: DeliveryMode
) -> _AttemptOutcome:
    status_code = response.status_code
    if _is_success_status(status_code):
        return _AttemptOutcome(
            success=True, retryable=False, http_status=status_code, error=None
        )

    reason = response.reason_phrase or "Unknown Status"
    return _AttemptOutcome(
        success=False,
        retryable=(
            delivery_mode is DeliveryMode.AT_LEAST_ONCE
            and _is_server_error_status(status_code)
        ),
        http_status=status_code,
        error=f"HTTP {status_code}: {reason}",
    )


class HTTPDispatcher:
    """POST to a job target, retrying transient failures per delivery mode."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float | None = None,
        retry_base_delay_seconds: float | None = None,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        user_agent: str | None = None,
    ) -> None:
        settings = get_settings()
        resolved_timeout = (
            settings.DISPATCH_TIMEOUT_SECONDS
            if timeout_seconds is None
            else timeout_seconds
        )
        resolved_base_delay = (
            settings.DISPATCH_RETRY_BASE_DELAY_SECONDS
            if retry_base_delay_seconds is None
            else retry_base_delay_seconds
        )
        if resolved_timeout <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        if resolved_base_delay < 0:
            raise ValueError("retry_base_delay_seconds must be zero or greater")
        if max_redirects < 0:
            raise ValueError("max_redirects must be zero or greater")

        self._http_client = http_client
        self._timeout_seconds = resolved_timeout
        self._retry_base_delay_seconds = resolved_base_delay
        self._max_redirects = max_redirects
        self._user_agent = user_agent or settings.OUTBOUND_HTTP_USER_AGENT

    @property
    def retry_base_delay_seconds(self) -> float:
        return self._retry_base_delay_seconds

    async def execute(
        self,
        url: str,
        delivery_mode: DeliveryMode,
        *,
        timeout_seconds: float | None = None,
    ) -> DispatchResult:
        """Invoke ``url`` and return the outcome; HTTP failures never raise."""

        timeout = httpx.Timeout(
            self._timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        started_at = perf_counter()
        last_http_status: int | None = None
        last_error: str | None = None

        async with self._http_client_context() as client:
            for attempt in range(1, MAX_ATTEMPTS + 1):
                outcome = await self._attempt(
                    client=client,
                    url=url,
                    timeout=timeout,
                    delivery_mode=delivery_mode,
                )
                retry_count = attempt - 1

                if outcome.success:
                    return DispatchResult(
                        success=True,
                        duration_ms=_elapsed_ms(started_at),
                        http_status=outcome.http_status,
                        retry_count=retry_count,
                    )

                if outcome.http_status is not None:
                    last_http_status = outcome.http_status
                last_error = outcome.error

                if not outcome.retryable or attempt == MAX_ATTEMPTS:
                    if outcome.retryable:
                        _logger.warning(
                            "dispatch_attempts_exhausted",
                            extra={
                                "url": url,
                                "attempts": attempt,
                                "http_status": last_http_status,
                                "error": last_error,
                            },
                        )
                    return DispatchResult(
                        success=False,
                        duration_ms=_elapsed_ms(started_at),
                        http_status=last_http_status,
                        error=last_error,
                        retry_count=retry_count,
                    )

                delay_seconds = retry_delay_seconds(
                    attempt, self._retry_base_delay_seconds
                )
                _logger.warning(
                    "dispatch_attempt_failed_retrying",
                    extra={
                        "url": url,
                        "attempt": attempt,
                        "max_attempts": MAX_ATTEMPTS,
                        "http_status": outcome.http_status,
                        "error": outcome.error,
                        "retry_delay_seconds": delay_seconds,
                    },
                )
                await asyncio.sleep(delay_seconds)

        raise RuntimeError(f"Unexpected dispatch loop exit for {url!r}")

    async def _attempt(
        self,
        *,
        client: httpx.AsyncClient,
        url: str,
        timeout: httpx.Timeout,
        delivery_mode: DeliveryMode,
    ) -> _AttemptOutcome:
        try:
            response = await client.post(
                url,
                content=b"",
                headers={"User-Agent": self._user_agent},
                timeout=timeout,
                follow_redirects=True,
            )
        except httpx.TransportError as error:
            # No response at all: timeout, refused connection, DNS failure.
            return _AttemptOutcome(
                success=False,
                retryable=delivery_mode is DeliveryMode.AT_LEAST_ONCE,
                http_status=None,
                error=_describe_transport_error(error),
            )
        except httpx.RequestError as error:
            _logger.error(
                "dispatch_request_error",
                extra={"url": url, "exception_class": error.__class__.__name__},
            )
            return _AttemptOutcome(
                success=False,
                retryable=False,
                http_status=None,
                error=_describe_transport_error(error),
            )

        return _classify_response(response, delivery_mode)

    @asynccontextmanager
    async def _http_client_context(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return

        async with httpx.AsyncClient(
            follow_redirects=True,
            max_redirects=self._max_redirects,
        ) as http_client:
            yield http_client


__all__ = [
    "DEFAULT_MAX_REDIRECTS",
    "DispatchResult",
    "HTTPDispatcher",
    "MAX_ATTEMPTS",
    "retry_delay_seconds",
]
