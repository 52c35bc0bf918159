"""
Explicit retry policy for backend calls.

A policy wraps a generic async "attempt" callable and returns a RetryResult
instead of raising. Errors are retried only when `ContactError.retryable` is
set; transient errors wait `base_delay * factor ** (retry - 1)` seconds,
document id conflicts are retried straight away (the next attempt generates a
new id).

Usage:
    policy = RetryPolicy(max_attempts=4, base_delay=1.0)
    result = await policy.execute(lambda attempt: adapter_call(attempt))
    if result.ok:
        ...
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from portfolio_api.core.errors import (
    ContactError,
    DocumentConflictError,
    UnknownBackendError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryResult(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[ContactError] = None
    attempts: int = 0
    delays: List[float] = field(default_factory=list)


@dataclass
class RetryPolicy:
    max_attempts: int = 4
    base_delay: float = 1.0
    factor: float = 2.0
    max_delay: Optional[float] = None
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_for(self, retry_number: int, error: ContactError) -> float:
        """Seconds to wait before retry `retry_number` (1-based)."""
        if isinstance(error, DocumentConflictError):
            return 0.0
        delay = self.base_delay * (self.factor ** (retry_number - 1))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def should_retry(self, error: ContactError, attempt: int) -> bool:
        return error.retryable and attempt < self.max_attempts

    async def execute(
        self,
        attempt_fn: Callable[[int], Awaitable[T]],
        on_retry: Optional[Callable[[int, ContactError, float], None]] = None,
    ) -> RetryResult[T]:
        result: RetryResult[T] = RetryResult(ok=False)

        for attempt in range(1, self.max_attempts + 1):
            result.attempts = attempt
            try:
                result.value = await attempt_fn(attempt)
                result.ok = True
                result.error = None
                return result
            except ContactError as exc:
                result.error = exc
            except Exception as exc:
                logger.exception("Unclassified error on attempt %s", attempt)
                result.error = UnknownBackendError(str(exc) or type(exc).__name__)

            if not self.should_retry(result.error, attempt):
                break

            delay = self.delay_for(attempt, result.error)
            result.delays.append(delay)
            logger.warning(
                "Attempt %s/%s failed (%s), retrying in %.2fs",
                attempt,
                self.max_attempts,
                result.error.code,
                delay,
            )
            if on_retry is not None:
                on_retry(attempt, result.error, delay)
            if delay > 0:
                await self.sleep(delay)

        if result.error is not None and result.error.retryable:
            logger.error(
                "Maximum retry attempts reached (%s) for %s",
                self.max_attempts,
                result.error.code,
            )
        return result
