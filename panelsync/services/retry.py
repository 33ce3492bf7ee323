"""Retry-with-backoff policy shared by every retrying remote operation."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Sequence

from panelsync.exceptions import RetryExhaustedError
from panelsync.utils.logging import get_logger

log = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class RetryPolicy:
    """Call an async function until it succeeds or attempts run out.

    ``delays[n-1]`` is waited before attempt ``n+1``; the last delay repeats
    when the schedule is shorter than the attempt count.
    """

    max_attempts: int = 3
    delays: Sequence[float] = (1.0,)
    retry_on: tuple[type[BaseException], ...] = (Exception,)
    should_retry: Optional[Callable[[BaseException], bool]] = None
    sleep: Sleep = field(default=asyncio.sleep, repr=False)

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before *attempt* (1-based)."""
        if attempt <= 1 or not self.delays:
            return 0.0
        idx = min(attempt - 2, len(self.delays) - 1)
        return float(self.delays[idx])

    def is_retryable(self, exc: BaseException) -> bool:
        if not isinstance(exc, self.retry_on):
            return False
        if self.should_retry is not None:
            return self.should_retry(exc)
        return True

    async def run(
        self,
        fn: Callable[[int], Awaitable[Any]],
        *,
        operation: str = "operation",
    ) -> Any:
        """Run ``fn(attempt)``; raise ``RetryExhaustedError`` after the last try."""
        attempts = max(1, self.max_attempts)
        for attempt in range(1, attempts + 1):
            delay = self.delay_before(attempt)
            if delay:
                await self.sleep(delay)
            try:
                return await fn(attempt)
            except Exception as exc:
                if not self.is_retryable(exc):
                    raise
                log.warning(
                    "retry.attempt_failed",
                    operation=operation,
                    attempt=attempt,
                    max_attempts=attempts,
                    error=str(exc),
                )
                if attempt == attempts:
                    raise RetryExhaustedError(operation, attempts, exc) from exc


def fixed(attempts: int, delay: float, **kwargs: Any) -> RetryPolicy:
    return RetryPolicy(max_attempts=attempts, delays=(delay,), **kwargs)


def linear(attempts: int, step: float, **kwargs: Any) -> RetryPolicy:
    """Delays of step, 2*step, 3*step, ..."""
    delays = tuple(step * n for n in range(1, max(attempts, 2)))
    return RetryPolicy(max_attempts=attempts, delays=delays, **kwargs)


def progressive(attempts: int, delays: Sequence[float], **kwargs: Any) -> RetryPolicy:
    return RetryPolicy(max_attempts=attempts, delays=tuple(delays), **kwargs)
