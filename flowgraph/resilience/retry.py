"""Retry policy implementation."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from flowgraph.core.types import RetryConfig

T = TypeVar("T")

RetryHook = Callable[[int, Exception, float], Awaitable[None] | None]


class RetryPolicy:
    """Attempt loop with multiplicative backoff.

    The delay before retry ``n`` (0-indexed) is
    ``base_delay * backoff_multiplier ** n``; a multiplier of 1 gives a
    constant delay.

    Example:
        >>> policy = RetryPolicy(max_retries=2, base_delay=0.5, backoff_multiplier=2.0)
        >>> [policy.get_delay(n) for n in range(2)]
        [0.5, 1.0]
        >>> result = await policy.execute(some_async_func, arg1, arg2)
    """

    def __init__(
        self,
        max_retries: int = 0,
        base_delay: float = 1.0,
        backoff_multiplier: float = 1.0,
        max_delay: float | None = None,
        jitter: bool = False,
        jitter_factor: float = 0.1,
        retryable_errors: tuple[type[Exception], ...] = (Exception,),
    ) -> None:
        """Initialize retry policy.

        Args:
            max_retries: Retries after the first attempt.
            base_delay: Delay before the first retry, in seconds.
            backoff_multiplier: Factor applied per further retry.
            max_delay: Optional cap in seconds.
            jitter: Whether to add random jitter to delays.
            jitter_factor: Jitter as fraction of delay (0.0-1.0).
            retryable_errors: Exception types to retry on.
        """
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if backoff_multiplier < 0:
            raise ValueError("backoff_multiplier must be non-negative")
        if max_delay is not None and max_delay < base_delay:
            raise ValueError("max_delay must be >= base_delay")

        self._max_retries = max_retries
        self._base_delay = base_delay
        self._backoff_multiplier = backoff_multiplier
        self._max_delay = max_delay
        self._jitter = jitter
        self._jitter_factor = jitter_factor
        self._retryable_errors = retryable_errors

    @classmethod
    def from_config(
        cls,
        config: RetryConfig | None,
        *,
        default_delay_ms: float = 1000.0,
        default_multiplier: float = 1.0,
    ) -> RetryPolicy:
        """Build a policy from a node's retry config (milliseconds)."""
        if config is None:
            return cls(max_retries=0, base_delay=default_delay_ms / 1000)
        delay_ms = config.delay_ms if config.delay_ms is not None else default_delay_ms
        multiplier = (
            config.backoff_multiplier
            if config.backoff_multiplier is not None
            else default_multiplier
        )
        return cls(
            max_retries=config.max_retries,
            base_delay=delay_ms / 1000,
            backoff_multiplier=multiplier,
        )

    @property
    def max_retries(self) -> int:
        """Maximum retry attempts."""
        return self._max_retries

    @property
    def max_attempts(self) -> int:
        return self._max_retries + 1

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt number.

        Args:
            attempt: Attempt number (0-indexed, 0 is first retry).

        Returns:
            Delay in seconds.
        """
        delay = self._base_delay * (self._backoff_multiplier ** attempt)

        if self._max_delay is not None:
            delay = min(delay, self._max_delay)

        if self._jitter:
            jitter_range = delay * self._jitter_factor
            delay += random.uniform(-jitter_range, jitter_range)
            delay = max(0.0, delay)

        return delay

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """Determine if operation should be retried.

        Only the attempt bound and ``retryable_errors`` decide; an error's
        ``retryable`` flag is informational, so a tool failing every attempt
        is always called ``max_retries + 1`` times.

        Args:
            error: The exception that occurred.
            attempt: Current attempt number (0-indexed).

        Returns:
            True if should retry, False otherwise.
        """
        if attempt >= self._max_retries:
            return False

        return isinstance(error, self._retryable_errors)

    async def execute(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        on_retry: RetryHook | None = None,
        **kwargs: Any,
    ) -> T:
        """Execute function with retry logic.

        Args:
            func: Async function to execute.
            *args: Positional arguments for func.
            on_retry: Called with (attempt, error, delay) before each sleep.
            **kwargs: Keyword arguments for func.

        Returns:
            Result of successful execution.

        Raises:
            Exception: The last exception if all retries exhausted.
        """
        attempt = 0
        while True:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if not self.should_retry(e, attempt):
                    raise

                delay = self.get_delay(attempt)
                if on_retry is not None:
                    hook_result = on_retry(attempt, e, delay)
                    if asyncio.iscoroutine(hook_result):
                        await hook_result
                await asyncio.sleep(delay)
                attempt += 1
