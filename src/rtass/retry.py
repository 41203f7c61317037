"""Retry policy for judge calls.

The policy is an explicit value rather than a loop hidden inside the caller,
so attempt limits, per-attempt timeouts and backoff can each be tested with a
fake judge and a fake sleep.

Retries are backoff-free by default: a failed attempt is followed immediately
by the next one. Backoff is opt-in through ``BackoffStrategy``.

Example:
    ```python
    from rtass.retry import RetryConfig, RetryExecutor

    config = RetryConfig(max_attempts=3, attempt_timeout=60.0)
    executor = RetryExecutor(config)
    result = await executor.execute(call_judge, prompt)
    ```
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import JudgeTimeoutError

logger = logging.getLogger(__name__)


class BackoffStrategy(Enum):
    """Backoff strategies for retries."""

    NONE = "none"
    """Retry immediately."""

    FIXED = "fixed"
    """Fixed delay between retries."""

    LINEAR = "linear"
    """Delay increases linearly with each attempt."""

    EXPONENTIAL = "exponential"
    """Delay multiplies by backoff_multiplier with each attempt."""


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_attempts: Maximum number of attempts, including the first.
        attempt_timeout: Seconds allowed per attempt. ``None`` disables the
            timeout. An expired attempt raises ``JudgeTimeoutError`` and is
            treated like any other retryable failure.
        backoff_strategy: Algorithm for computing the delay between attempts.
        initial_delay: Base delay in seconds for non-NONE strategies.
        max_delay: Upper bound on any single delay.
        backoff_multiplier: Multiplier for the exponential strategy.
        retry_on_exceptions: If set, only these exception types are retried.
            Anything else propagates immediately.
        on_retry: Hook called with ``(attempt_number, exception)`` before each retry.
        on_failure: Hook called with the final exception when attempts run out.
        sleep: Coroutine used to wait between attempts. Tests inject a fake.
    """

    max_attempts: int = 1
    attempt_timeout: float | None = None
    backoff_strategy: BackoffStrategy = BackoffStrategy.NONE
    initial_delay: float = 0.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0

    retry_on_exceptions: tuple[type[BaseException], ...] | None = None

    on_retry: Callable[[int, Exception], None] | None = None
    on_failure: Callable[[Exception], None] | None = None
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep


class RetryExecutor:
    """Runs an async callable under a ``RetryConfig``.

    Each attempt is a fresh call. Nothing carries over between attempts; a
    later success fully replaces whatever an earlier attempt produced.
    """

    def __init__(self, config: RetryConfig) -> None:
        if config.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {config.max_attempts}")
        self.config = config

    def _calculate_delay(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt`` (1-based), capped at max_delay."""
        cfg = self.config

        if cfg.backoff_strategy == BackoffStrategy.NONE:
            return 0.0
        elif cfg.backoff_strategy == BackoffStrategy.FIXED:
            delay = cfg.initial_delay
        elif cfg.backoff_strategy == BackoffStrategy.LINEAR:
            delay = cfg.initial_delay * attempt
        elif cfg.backoff_strategy == BackoffStrategy.EXPONENTIAL:
            delay = cfg.initial_delay * (cfg.backoff_multiplier ** (attempt - 1))
        else:
            delay = cfg.initial_delay

        return min(delay, cfg.max_delay)

    def _is_retryable(self, error: Exception) -> bool:
        allowed = self.config.retry_on_exceptions
        if allowed is None:
            return True
        return isinstance(error, allowed)

    async def _run_attempt(
        self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any
    ) -> Any:
        timeout = self.config.attempt_timeout
        if timeout is None:
            return await func(*args, **kwargs)
        try:
            return await asyncio.wait_for(func(*args, **kwargs), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise JudgeTimeoutError(
                f"Attempt timed out after {timeout:g}s",
                context={"timeout_seconds": timeout},
            ) from e

    async def execute(
        self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any
    ) -> Any:
        """Execute an async callable with retry logic.

        Args:
            func: Coroutine function to call once per attempt.
            *args: Positional arguments forwarded to func.
            **kwargs: Keyword arguments forwarded to func.

        Returns:
            The return value of the first successful attempt.

        Raises:
            Exception: The exception from the final attempt, unchanged, or any
                non-retryable exception immediately. Cancellation propagates
                without further attempts.
        """
        max_attempts = self.config.max_attempts

        for attempt in range(1, max_attempts + 1):
            try:
                return await self._run_attempt(func, *args, **kwargs)
            except Exception as e:
                if not self._is_retryable(e):
                    raise

                if attempt >= max_attempts:
                    if self.config.on_failure:
                        self.config.on_failure(e)
                    raise

                if self.config.on_retry:
                    self.config.on_retry(attempt, e)

                delay = self._calculate_delay(attempt)
                logger.debug(
                    "Retry after exception (attempt %d/%d), delay=%.2fs: %s",
                    attempt, max_attempts, delay, e,
                )
                if delay > 0:
                    await self.config.sleep(delay)

        # Unreachable: the loop either returns or raises on the last attempt.
        raise RuntimeError("retry loop exited without a result")
