"""Retry-with-exponential-backoff for REST calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

from polycavora.core.config import RetryConfig
from polycavora.polymarket.exceptions import HttpError

logger = structlog.stdlib.get_logger()

T = TypeVar("T")


def backoff_delay(attempt: int, policy: RetryConfig) -> float:
    """Delay before retry number ``attempt`` (1-based), capped."""
    delay = policy.base_delay_secs * policy.backoff_factor ** (attempt - 1)
    return min(delay, policy.max_delay_secs)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryConfig | None = None,
    log: Any = None,
) -> T:
    """Await ``fn()`` and retry transient HttpErrors with exponential backoff.

    At most ``policy.max_attempts`` calls are made. Non-retryable errors
    (4xx other than 429) and any non-HttpError propagate immediately; on
    exhaustion the last HttpError is re-raised.
    """
    policy = policy or RetryConfig()
    log = log or logger
    max_attempts = max(1, policy.max_attempts)

    attempt = 1
    while True:
        try:
            return await fn()
        except HttpError as exc:
            if not exc.retryable or attempt >= max_attempts:
                raise
            delay = backoff_delay(attempt, policy)
            log.debug(
                "http_retry",
                attempt=attempt,
                max_attempts=max_attempts,
                status=exc.status,
                delay=delay,
            )
            await asyncio.sleep(delay)
            attempt += 1
