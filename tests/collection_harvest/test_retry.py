"""
Tests for RetryPolicy.

============================================================
TEST SCENARIOS
============================================================
1. Fails k < max_attempts times -> succeeds after exactly k delays
2. Fails on every attempt -> RetryExhausted after max_attempts
3. NonRetryableHttpError -> no retry
4. 429 responses count as attempts and get the backoff delay
5. Delays grow exponentially and respect the cap

============================================================
"""

import pytest
from unittest.mock import AsyncMock

from collection_harvest.exceptions import (
    NonRetryableHttpError,
    RateLimitError,
    RetryExhausted,
    TransientHttpError,
)
from collection_harvest.retry import RetryPolicy, retry_with_backoff


def flaky(failures: int, value: str = "ok"):
    """Operation that raises ``failures`` times, then returns ``value``."""
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise TransientHttpError(f"failure {calls['count']}")
        return value

    return operation, calls


# ============================================================
# RETRY BEHAVIOUR
# ============================================================

class TestRetryPolicy:
    """Tests for RetryPolicy.run."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [0, 1, 2, 4])
    async def test_succeeds_after_k_failures(self, sleep_recorder, failures):
        """k failures below the bound means k delays and the success value."""
        policy = RetryPolicy(max_attempts=5, initial_delay_seconds=0.25, sleep=sleep_recorder)
        operation, calls = flaky(failures)

        result = await policy.run(operation)

        assert result == "ok"
        assert calls["count"] == failures + 1
        assert len(sleep_recorder.delays) == failures

    @pytest.mark.asyncio
    async def test_exhausts_after_max_attempts(self, sleep_recorder):
        """Failing on every attempt raises RetryExhausted."""
        policy = RetryPolicy(max_attempts=3, initial_delay_seconds=0.25, sleep=sleep_recorder)
        operation, calls = flaky(10)

        with pytest.raises(RetryExhausted) as exc_info:
            await policy.run(operation, description="flaky op")

        assert calls["count"] == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, TransientHttpError)
        assert exc_info.value.__cause__ is exc_info.value.last_error
        assert len(sleep_recorder.delays) == 2

    @pytest.mark.asyncio
    async def test_failures_equal_to_bound_exhaust(self, sleep_recorder):
        """k == max_attempts is already exhausted."""
        policy = RetryPolicy(max_attempts=2, sleep=sleep_recorder)
        operation, calls = flaky(2)

        with pytest.raises(RetryExhausted):
            await policy.run(operation)

        assert calls["count"] == 2

    @pytest.mark.asyncio
    async def test_non_retryable_is_raised_immediately(self, sleep_recorder):
        """4xx classification short-circuits the retry loop."""
        policy = RetryPolicy(max_attempts=5, sleep=sleep_recorder)
        operation = AsyncMock(side_effect=NonRetryableHttpError("HTTP 404", status_code=404))

        with pytest.raises(NonRetryableHttpError):
            await policy.run(operation)

        assert operation.await_count == 1
        assert sleep_recorder.delays == []

    @pytest.mark.asyncio
    async def test_rate_limit_counts_as_attempt(self, sleep_recorder):
        """A steady 429 exhausts the policy after max_attempts calls."""
        policy = RetryPolicy(max_attempts=3, initial_delay_seconds=0.25, sleep=sleep_recorder)
        operation = AsyncMock(
            side_effect=RateLimitError("Rate limit exceeded", retry_after_seconds=2)
        )

        with pytest.raises(RetryExhausted) as exc_info:
            await policy.run(operation)

        assert operation.await_count == 3
        assert sleep_recorder.delays == [0.25, 0.5]
        assert isinstance(exc_info.value.last_error, RateLimitError)

    @pytest.mark.asyncio
    async def test_rate_limit_then_success(self, sleep_recorder):
        """One 429 costs one attempt and one backoff delay."""
        policy = RetryPolicy(max_attempts=2, initial_delay_seconds=0.25, sleep=sleep_recorder)
        operation = AsyncMock(side_effect=[
            RateLimitError("Rate limit exceeded", retry_after_seconds=2),
            "done",
        ])

        assert await policy.run(operation) == "done"
        assert operation.await_count == 2
        assert sleep_recorder.delays == [0.25]

    @pytest.mark.asyncio
    async def test_any_exception_is_retryable(self, sleep_recorder):
        """Plain exceptions are retried too."""
        policy = RetryPolicy(max_attempts=3, sleep=sleep_recorder)
        operation = AsyncMock(side_effect=[ValueError("bad"), "done"])

        assert await policy.run(operation) == "done"
        assert operation.await_count == 2


# ============================================================
# BACKOFF SCHEDULE
# ============================================================

class TestBackoffSchedule:
    """Tests for the delay sequence."""

    @pytest.mark.asyncio
    async def test_delays_grow_exponentially(self, sleep_recorder):
        """0.25, 0.5, 1.0, 2.0 for the default multiplier."""
        policy = RetryPolicy(max_attempts=5, initial_delay_seconds=0.25, sleep=sleep_recorder)
        operation, _ = flaky(10)

        with pytest.raises(RetryExhausted):
            await policy.run(operation)

        assert sleep_recorder.delays == [0.25, 0.5, 1.0, 2.0]

    def test_first_attempt_has_no_delay(self):
        """Attempt 1 is immediate."""
        assert RetryPolicy().delay_for(1) == 0.0

    def test_delay_is_capped(self):
        """Delays never exceed max_delay_seconds."""
        policy = RetryPolicy(initial_delay_seconds=10, max_delay_seconds=15)

        assert policy.delay_for(2) == 10
        assert policy.delay_for(3) == 15
        assert policy.delay_for(8) == 15

    def test_jitter_only_adds(self):
        """Jitter never shortens the delay."""
        policy = RetryPolicy(initial_delay_seconds=1.0, jitter=0.5)

        for _ in range(20):
            assert 1.0 <= policy.delay_for(2) <= 1.5

    def test_invalid_configuration(self):
        """Nonsensical bounds are rejected."""
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)
        with pytest.raises(ValueError):
            RetryPolicy(backoff_multiplier=0.5)


class TestRetryWithBackoff:
    """Tests for the convenience wrapper."""

    @pytest.mark.asyncio
    async def test_returns_value(self):
        """Immediate success needs no delay."""
        operation = AsyncMock(return_value=42)

        assert await retry_with_backoff(operation, 5, 0.25) == 42
        operation.assert_awaited_once()
