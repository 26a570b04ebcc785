"""InvocationGuard -- timeout + bounded exponential-backoff retry.

Wraps a single external call (the AI provider) so that:
- each attempt races the call against a timer; when the timer wins the
  attempt fails with InvocationTimeoutError and the in-flight call is
  abandoned (cancellation is requested but never awaited, so the guard
  returns on time even if the call ignores it)
- transient failures (ProviderError, TimeoutError) are retried up to
  ``max_retries`` times after ``min(base * 2^i, max_delay) + jitter``
  milliseconds, or after the provider's retry-after when it sent one
- the terminal attempt's error is re-raised unmodified

Uses tenacity for attempt accounting. A fresh AsyncRetrying is built per
call, so a guard instance holds only immutable configuration and is safe
to share. Each retry increments minutes_generation_retries_total.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt

from src.scribe.core.monitoring import minutes_generation_retries_total
from src.scribe.minutes.errors import InvocationTimeoutError, ProviderError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (ProviderError, TimeoutError)


def compute_backoff_ms(
    attempt_index: int,
    base_delay_ms: int,
    max_delay_ms: int = 10_000,
    jitter_ms: int = 1_000,
    jitter: Callable[[float, float], float] = random.uniform,
) -> float:
    """Delay before retrying after the 0-based ``attempt_index`` failed."""
    return min(base_delay_ms * 2**attempt_index, max_delay_ms) + jitter(0, jitter_ms)


class InvocationGuard:
    """Timeout and retry wrapper around one awaitable-producing operation.

    Args:
        timeout_ms: Budget for a single attempt.
        max_retries: Retries after the first attempt (total = max_retries + 1).
        base_delay_ms: Backoff base; doubles per failed attempt.
        max_delay_ms: Cap on the exponential part of the backoff.
        jitter_ms: Upper bound of the uniform random jitter added.
        sleep: Awaitable sleep taking seconds (injectable for tests).
        jitter: ``uniform(a, b)`` style random source.
    """

    def __init__(
        self,
        *,
        timeout_ms: int = 9000,
        max_retries: int = 2,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 10_000,
        jitter_ms: int = 1_000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.timeout_ms = timeout_ms
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.jitter_ms = jitter_ms
        self._sleep = sleep
        self._jitter = jitter

    async def invoke(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` under the timeout/retry policy.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per
                attempt.

        Returns:
            The first successful attempt's result.

        Raises:
            InvocationTimeoutError: The final attempt timed out.
            ProviderError: The final attempt failed at the provider.
            Exception: Any non-transient error, raised on first occurrence.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self._next_delay,
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return await retrying(self._attempt, operation)
        except RETRYABLE_ERRORS as exc:
            logger.error(
                "invocation_attempts_exhausted",
                attempts=retrying.statistics.get("attempt_number"),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise

    async def _attempt(self, operation: Callable[[], Awaitable[T]]) -> T:
        """One attempt: race the operation against the timeout."""
        task = asyncio.ensure_future(operation())
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout_ms / 1000)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task in done:
            return task.result()

        task.cancel()
        task.add_done_callback(_discard_abandoned)
        raise InvocationTimeoutError(self.timeout_ms)

    def _next_delay(self, retry_state: RetryCallState) -> float:
        """Seconds to wait before the next attempt (tenacity wait hook)."""
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, ProviderError) and exc.retry_after_ms is not None:
            delay_ms = float(exc.retry_after_ms)
        else:
            delay_ms = compute_backoff_ms(
                retry_state.attempt_number - 1,
                self.base_delay_ms,
                self.max_delay_ms,
                self.jitter_ms,
                self._jitter,
            )
        return delay_ms / 1000

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay_s = retry_state.next_action.sleep if retry_state.next_action else 0.0
        minutes_generation_retries_total.labels(error_type=type(exc).__name__).inc()
        logger.warning(
            "invocation_attempt_failed",
            attempt=retry_state.attempt_number,
            max_attempts=self.max_retries + 1,
            error_type=type(exc).__name__,
            error=str(exc),
            delay_ms=round(delay_s * 1000),
        )


def _discard_abandoned(task: asyncio.Future) -> None:
    """Retrieve an abandoned attempt's outcome so it is never reported."""
    if task.cancelled():
        return
    exc = task.exception()
    logger.debug(
        "abandoned_attempt_settled",
        error_type=type(exc).__name__ if exc else None,
    )
