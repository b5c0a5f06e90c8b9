"""
Bounded retry policy.

A small, reusable wrapper around tenacity so that every retry loop in the
codebase has the same shape: a maximum attempt count, a fixed or exponential
delay, and exactly one place where the decision to give up is made.

Usage:
    policy = RetryPolicy(max_attempts=5, delay_seconds=2.0)
    result = await policy.run(fetch_something, retry_on=(TransientError,))
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Backoff(str, Enum):
    """Delay strategy between attempts."""

    FIXED = "fixed"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry parameters for one kind of operation.

    Attributes:
        max_attempts: Total attempts including the first one (>= 1)
        delay_seconds: Fixed delay, or the multiplier for exponential backoff
        backoff: FIXED or EXPONENTIAL
        max_delay_seconds: Upper bound on a single exponential delay
        quiet_attempts: Retries up to this attempt number are logged at debug
            level; later ones at warning level
    """

    max_attempts: int = 5
    delay_seconds: float = 2.0
    backoff: Backoff = Backoff.FIXED
    max_delay_seconds: float = 30.0
    quiet_attempts: int = 2

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        """A policy that makes exactly one attempt."""
        return cls(max_attempts=1, delay_seconds=0)

    def _wait(self):
        if self.backoff is Backoff.EXPONENTIAL:
            return wait_exponential(
                multiplier=self.delay_seconds,
                max=self.max_delay_seconds,
            )
        return wait_fixed(self.delay_seconds)

    def _log_retry(self, operation: str) -> Callable[[RetryCallState], None]:
        def before_sleep(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            level = logging.DEBUG if state.attempt_number <= self.quiet_attempts else logging.WARNING
            logger.log(
                level,
                "%s failed (attempt %d/%d), retrying: %s",
                operation,
                state.attempt_number,
                self.max_attempts,
                exc,
            )

        return before_sleep

    async def run(
        self,
        fn: Callable[[], Awaitable[T]],
        *,
        retry_on: tuple[type[BaseException], ...],
        operation: str = "operation",
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> T:
        """
        Run ``fn`` until it succeeds, raises a non-retryable error, or the
        attempt budget is spent.

        Args:
            fn: Zero-argument callable returning an awaitable, called on
                each attempt (a coroutine function, a partial or a lambda)
            retry_on: Exception types that make an attempt eligible for retry
            operation: Name used in log messages
            sleep: Async sleep function (injectable for tests)

        Returns:
            The first successful result of ``fn``

        Raises:
            The last exception raised by ``fn`` when attempts are exhausted,
            or any exception not listed in ``retry_on`` immediately.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait(),
            retry=retry_if_exception_type(retry_on),
            before_sleep=self._log_retry(operation),
            sleep=sleep or asyncio.sleep,
            reraise=True,
        )

        # tenacity only awaits callables it recognises as coroutine functions
        async def attempt() -> T:
            return await fn()

        return await retrying(attempt)
