"""Unit tests for RetryPolicy."""

from __future__ import annotations

import asyncio

import pytest

from flowgraph.core.types import RetryConfig
from flowgraph.errors.exceptions import ToolExecutionError, ToolNotFoundError
from flowgraph.resilience.retry import RetryPolicy


class TestRetryPolicyDelays:
    """Tests for backoff computation."""

    def test_constant_delay_by_default(self) -> None:
        policy = RetryPolicy(max_retries=3, base_delay=1.0)

        assert [policy.get_delay(n) for n in range(3)] == [1.0, 1.0, 1.0]

    def test_multiplier(self) -> None:
        """Delay before retry n is base * multiplier ** n."""
        policy = RetryPolicy(max_retries=3, base_delay=0.5, backoff_multiplier=2.0)

        assert [policy.get_delay(n) for n in range(3)] == [0.5, 1.0, 2.0]

    def test_max_delay_cap(self) -> None:
        policy = RetryPolicy(base_delay=1.0, backoff_multiplier=3.0, max_delay=5.0)

        assert policy.get_delay(10) == 5.0

    def test_jitter_stays_in_range(self) -> None:
        policy = RetryPolicy(base_delay=1.0, jitter=True, jitter_factor=0.1)

        for _ in range(20):
            assert 0.9 <= policy.get_delay(0) <= 1.1

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retries": -1},
            {"base_delay": -0.1},
            {"backoff_multiplier": -2},
            {"base_delay": 2.0, "max_delay": 1.0},
        ],
    )
    def test_invalid_arguments(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)


class TestRetryPolicyFromConfig:
    """Tests for building policies from node config."""

    def test_none_config_means_single_attempt(self) -> None:
        policy = RetryPolicy.from_config(None)

        assert policy.max_retries == 0
        assert policy.max_attempts == 1

    def test_milliseconds_converted(self) -> None:
        policy = RetryPolicy.from_config(
            RetryConfig(max_retries=2, delay_ms=250, backoff_multiplier=2)
        )

        assert policy.max_attempts == 3
        assert policy.get_delay(0) == 0.25
        assert policy.get_delay(1) == 0.5

    def test_defaults_applied(self) -> None:
        """Unset delay and multiplier use the given defaults."""
        policy = RetryPolicy.from_config(
            RetryConfig(max_retries=1),
            default_delay_ms=1000.0,
            default_multiplier=1.0,
        )

        assert policy.get_delay(0) == 1.0
        assert policy.get_delay(5) == 1.0


class TestRetryPolicyShouldRetry:
    """Tests for should_retry."""

    def test_attempt_bound(self) -> None:
        policy = RetryPolicy(max_retries=2)

        assert policy.should_retry(RuntimeError("x"), 0) is True
        assert policy.should_retry(RuntimeError("x"), 1) is True
        assert policy.should_retry(RuntimeError("x"), 2) is False

    def test_retryable_flag_does_not_stop_retries(self) -> None:
        """Every failed attempt counts toward the bound, whatever the error."""
        policy = RetryPolicy(max_retries=2)

        assert policy.should_retry(ToolExecutionError("down", tool_id="t"), 0) is True
        assert policy.should_retry(ToolNotFoundError("t"), 0) is True
        assert policy.should_retry(ToolNotFoundError("t"), 2) is False

    def test_retryable_errors_filter(self) -> None:
        policy = RetryPolicy(max_retries=2, retryable_errors=(ConnectionError,))

        assert policy.should_retry(ConnectionError(), 0) is True
        assert policy.should_retry(ValueError(), 0) is False


class TestRetryPolicyExecute:
    """Tests for execute."""

    @pytest.mark.asyncio
    async def test_success_first_try(self) -> None:
        calls = 0

        async def operation() -> str:
            nonlocal calls
            calls += 1
            return "ok"

        result = await RetryPolicy(max_retries=3, base_delay=0).execute(operation)

        assert result == "ok"
        assert calls == 1

    @pytest.mark.asyncio
    async def test_eventual_success(self) -> None:
        calls = 0

        async def flaky(value: int) -> int:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise ConnectionError("transient")
            return value * 2

        result = await RetryPolicy(max_retries=3, base_delay=0.001).execute(flaky, 21)

        assert result == 42
        assert calls == 3

    @pytest.mark.asyncio
    async def test_exhausted_raises_last_error(self) -> None:
        calls = 0

        async def failing() -> None:
            nonlocal calls
            calls += 1
            raise RuntimeError(f"failure {calls}")

        with pytest.raises(RuntimeError, match="failure 3"):
            await RetryPolicy(max_retries=2, base_delay=0.001).execute(failing)

        assert calls == 3

    @pytest.mark.asyncio
    async def test_on_retry_hook(self) -> None:
        """Hook sees each retried attempt with its delay; async hooks are awaited."""
        seen: list[tuple[int, str, float]] = []

        async def hook(attempt: int, error: Exception, delay: float) -> None:
            seen.append((attempt, str(error), delay))

        async def failing() -> None:
            raise RuntimeError("nope")

        policy = RetryPolicy(max_retries=2, base_delay=0.001, backoff_multiplier=2.0)
        with pytest.raises(RuntimeError):
            await policy.execute(failing, on_retry=hook)

        assert seen == [(0, "nope", 0.001), (1, "nope", 0.002)]

    @pytest.mark.asyncio
    async def test_cancellation_not_retried(self) -> None:
        calls = 0

        async def cancelled() -> None:
            nonlocal calls
            calls += 1
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await RetryPolicy(max_retries=3, base_delay=0).execute(cancelled)

        assert calls == 1
