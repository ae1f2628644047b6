"""
Retry helpers for gateway calls.

Transient failures (timeouts, network errors, 429 and 5xx) are retried with
linear backoff up to a fixed attempt ceiling; client errors are raised
immediately.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
import structlog

from chatgraph.kernel.errors import GatewayError
from chatgraph.monitoring import get_metrics

logger = structlog.get_logger()

T = TypeVar("T")


def _as_gateway_error(operation: str, exc: BaseException, timeout: float) -> GatewayError | None:
    if isinstance(exc, GatewayError):
        return exc
    if isinstance(exc, asyncio.TimeoutError):
        return GatewayError(
            message=f"Gateway call timed out after {timeout}s",
            operation=operation,
            code="gateway.timeout",
        )
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError)):
        return GatewayError(
            message=f"Gateway network error: {exc}",
            operation=operation,
            code="gateway.network_error",
        )
    return None


async def call_with_retry(
    operation: str,
    func: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    timeout: float = 30.0,
    backoff: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await `func()` with a per-attempt timeout, retrying transient failures.

    The delay before attempt N+1 is `backoff * N`. Raises the last
    `GatewayError` once attempts are exhausted; exceptions that are not
    gateway/network failures propagate untouched on the first occurrence.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await asyncio.wait_for(func(), timeout=timeout)
        except Exception as e:
            error = _as_gateway_error(operation, e, timeout)
            if error is None:
                get_metrics().track_gateway_failure(operation)
                raise

            if not error.transient or attempt >= max_attempts:
                get_metrics().track_gateway_failure(operation)
                if error is e:
                    raise
                raise error from e

            delay = backoff * attempt
            reason = "status" if error.upstream_status is not None else "network"
            get_metrics().track_gateway_retry(operation, reason)
            logger.warning(
                "Retrying gateway call",
                operation=operation,
                attempt=attempt,
                delay=delay,
                upstream_status=error.upstream_status,
                error=error.message,
            )
            await sleep(delay)
