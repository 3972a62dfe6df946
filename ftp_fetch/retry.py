"""
Bounded retry with a fixed inter-attempt delay.

This module reduces a multi-attempt operation to a single outcome: the first
success, the first non-retryable failure, or the last failure once all
attempts are used up.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Tuple, Type, TypeVar

from .exceptions import ConnectivityError, TransferError

T = TypeVar("T")
logger = logging.getLogger(__name__)

DEFAULT_RETRYABLE_ERRORS: Tuple[Type[BaseException], ...] = (
    ConnectivityError,
    TransferError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior."""

    max_attempts: int = 2
    delay: float = 10.0  # Fixed delay in seconds
    retryable_errors: Tuple[Type[BaseException], ...] = DEFAULT_RETRYABLE_ERRORS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must be non-negative")

    def is_retryable(self, error: BaseException) -> bool:
        return isinstance(error, self.retryable_errors)


@dataclass
class RetryAttempt:
    """Information about one attempt."""

    attempt_number: int
    error: Optional[BaseException] = None
    start_time: float = field(default_factory=time.time)
    end_time: float = 0.0

    @property
    def duration(self) -> float:
        if self.end_time == 0.0:
            return time.time() - self.start_time
        return self.end_time - self.start_time

    @property
    def succeeded(self) -> bool:
        return self.end_time != 0.0 and self.error is None


RetryHook = Callable[[RetryAttempt, float], None]


class RetryManager:
    """
    Runs an async operation under a ``RetryPolicy``.

    Args:
        policy: Attempt count, delay and retryable error kinds
        sleep: Awaitable sleep used between attempts
        on_retry: Called with the failed attempt and the delay before the next one
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        on_retry: Optional[RetryHook] = None,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep or asyncio.sleep
        self._on_retry = on_retry
        self.attempts: List[RetryAttempt] = []

    async def run(self, func: Callable[[], Awaitable[T]], operation_key: str = "") -> T:
        """
        Execute ``func`` with retry logic.

        Returns:
            Result of the first successful call

        Raises:
            Exception: The first non-retryable error, or the last error once
                every attempt failed
        """
        operation_key = operation_key or getattr(func, "__name__", "operation")
        self.attempts = []
        max_attempts = self.policy.max_attempts

        for number in range(1, max_attempts + 1):
            attempt = RetryAttempt(attempt_number=number)
            self.attempts.append(attempt)
            try:
                result = await func()
            except Exception as e:
                attempt.error = e
                attempt.end_time = time.time()

                if not self.policy.is_retryable(e):
                    logger.debug(
                        f"Not retrying {operation_key} after attempt {number}: {type(e).__name__}"
                    )
                    raise
                if number >= max_attempts:
                    logger.warning(
                        f"Operation {operation_key} failed after {number} attempts: {e}"
                    )
                    raise

                logger.info(
                    f"Attempt {number}/{max_attempts} of {operation_key} failed ({e}); "
                    f"retrying in {self.policy.delay:.1f}s"
                )
                if self._on_retry is not None:
                    self._on_retry(attempt, self.policy.delay)
                if self.policy.delay > 0:
                    await self._sleep(self.policy.delay)
                continue

            attempt.end_time = time.time()
            logger.debug(f"Operation {operation_key} succeeded on attempt {number}")
            return result

        raise RuntimeError(f"Operation {operation_key} made no attempts")

    async def run_silent(
        self,
        func: Callable[[], Awaitable[T]],
        default: Optional[T] = None,
        operation_key: str = "",
    ) -> Optional[T]:
        """Like ``run``, but returns ``default`` instead of raising."""
        try:
            return await self.run(func, operation_key)
        except Exception as e:
            logger.info(f"Operation {operation_key or 'operation'} gave up: {e}")
            return default

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def last_error(self) -> Optional[BaseException]:
        for attempt in reversed(self.attempts):
            if attempt.error is not None:
                return attempt.error
        return None
