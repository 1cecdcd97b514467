"""Bounded retry with exponential backoff for LMS network operations."""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

from ilearning.config import MAX_RETRIES, RETRY_BACKOFF_BASE
from ilearning.errors import UnknownError


T = TypeVar("T")


class RetryPolicy:
    """
    Run an async operation up to ``max_attempts`` times.

    After failed attempt ``n`` (1-based) the policy sleeps ``backoff_base ** n``
    seconds before trying again; the last error is re-raised unchanged once the
    attempts are exhausted. Every ``Exception`` is retried unless ``retry_on``
    says otherwise. ``asyncio.CancelledError`` is never caught, so cancelling
    the caller aborts the loop immediately, backoff sleep included.
    """

    def __init__(
        self,
        max_attempts: int = MAX_RETRIES,
        backoff_base: float = RETRY_BACKOFF_BASE,
        retry_on: Optional[Callable[[Exception], bool]] = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.retry_on = retry_on
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        return float(self.backoff_base ** attempt)

    async def run(self, operation: Callable[[], Awaitable[T]], *, label: str = "operation") -> T:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                if self.retry_on is not None and not self.retry_on(exc):
                    logger.warning("{} failed with non-retryable {}: {}", label, type(exc).__name__, exc)
                    raise
                if attempt >= self.max_attempts:
                    logger.error(
                        "{} failed after {} attempts: {}: {}",
                        label,
                        attempt,
                        type(exc).__name__,
                        exc,
                    )
                    break
                delay = self.delay_for(attempt)
                logger.warning(
                    "{} attempt {}/{} failed ({}: {}), retrying in {:.0f}s",
                    label,
                    attempt,
                    self.max_attempts,
                    type(exc).__name__,
                    exc,
                    delay,
                )
                await self._sleep(delay)

        if last_error is None:
            raise UnknownError()
        raise last_error


async def with_retry(operation: Callable[[], Awaitable[T]], max_attempts: int = MAX_RETRIES) -> T:
    return await RetryPolicy(max_attempts=max_attempts).run(operation)


__all__ = ["RetryPolicy", "with_retry"]
