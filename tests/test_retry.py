"""Unit and property tests for RetryRunner.

Tests the fixed-delay retry loop, the attempt bound, per-attempt
timeouts and the deterministic (no retry) mode.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from hypothesis import given, strategies as st, settings

from core.exceptions import CaseTimeoutError, ConformanceMismatchError, RateLimitError
from core.retry import RetryRunner
from core.stats import CaseOutcome, RunStatistics


@pytest.fixture
def stats():
    """Run statistics inside an open run."""
    stats = RunStatistics()
    stats.start("retry tests")
    return stats


@pytest.fixture
def sleep():
    """Sleep stub so tests never wait."""
    return AsyncMock()


class TestRetryRunner:
    """Tests for RetryRunner.run()."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, stats, sleep):
        """A passing case takes one attempt and never sleeps."""
        runner = RetryRunner(stats, sleep=sleep)
        attempt_fn = AsyncMock(return_value=None)

        result = await runner.run("case", attempt_fn, max_attempts=5, base_delay=1.0)

        assert result.outcome == CaseOutcome.PASSED
        assert result.attempts == 1
        assert result.error is None
        attempt_fn.assert_awaited_once()
        sleep.assert_not_awaited()
        assert stats.retries == 0

    @pytest.mark.asyncio
    async def test_success_after_retries(self, stats, sleep):
        """Intermediate failures are retried and do not fail the case."""
        runner = RetryRunner(stats, sleep=sleep)
        attempt_fn = AsyncMock(side_effect=[RateLimitError("infura"), RateLimitError("infura"), None])

        result = await runner.run("case", attempt_fn, max_attempts=5, base_delay=1.0)

        assert result.outcome == CaseOutcome.PASSED
        assert result.attempts == 3
        assert stats.retries == 2
        assert [r.succeeded for r in stats.attempts_for("case")] == [False, False, True]

    @pytest.mark.asyncio
    async def test_fixed_delay_between_attempts(self, stats, sleep):
        """The delay is the same between every pair of attempts."""
        runner = RetryRunner(stats, sleep=sleep)
        attempt_fn = AsyncMock(side_effect=ValueError("nope"))

        await runner.run("case", attempt_fn, max_attempts=4, base_delay=2.5)

        assert [call.args[0] for call in sleep.await_args_list] == [2.5, 2.5, 2.5]

    @pytest.mark.asyncio
    async def test_only_last_error_surfaced(self, stats, sleep):
        """The final attempt's error is the one reported."""
        runner = RetryRunner(stats, sleep=sleep)
        attempt_fn = AsyncMock(side_effect=[
            RateLimitError("infura"),
            ConformanceMismatchError("hash", "0xaa", "0xbb"),
        ])

        result = await runner.run("case", attempt_fn, max_attempts=2, base_delay=0)

        assert result.outcome == CaseOutcome.FAILED
        assert result.error_type == "ConformanceMismatchError"
        assert "hash" in result.error

    @pytest.mark.asyncio
    async def test_mismatch_is_retried_like_transient_errors(self, stats, sleep):
        """A comparator mismatch is retried up to the bound."""
        runner = RetryRunner(stats, sleep=sleep)
        attempt_fn = AsyncMock(side_effect=ConformanceMismatchError("hash", "0xaa", "0xbb"))

        result = await runner.run("case", attempt_fn, max_attempts=3, base_delay=0)

        assert result.attempts == 3
        assert attempt_fn.await_count == 3

    @pytest.mark.asyncio
    async def test_deterministic_runs_once(self, stats, sleep):
        """A deterministic case is never retried."""
        runner = RetryRunner(stats, sleep=sleep)
        attempt_fn = AsyncMock(side_effect=ValueError("nope"))

        result = await runner.run(
            "case", attempt_fn, max_attempts=5, base_delay=1.0, deterministic=True
        )

        assert result.outcome == CaseOutcome.FAILED
        assert result.attempts == 1
        assert len(stats.attempts_for("case")) == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_timeout_fails_attempt(self, stats, sleep):
        """An attempt exceeding its timeout fails with CaseTimeoutError."""
        runner = RetryRunner(stats, sleep=sleep)

        async def slow():
            await asyncio.sleep(10)

        result = await runner.run(
            "slow case", slow, max_attempts=1, base_delay=0, timeout_seconds=0.01
        )

        assert result.outcome == CaseOutcome.FAILED
        assert result.error_type == CaseTimeoutError.__name__

    @pytest.mark.asyncio
    async def test_custom_success_outcome(self, stats, sleep):
        """Negative cases report their own success outcome."""
        runner = RetryRunner(stats, sleep=sleep)

        result = await runner.run(
            "negative", AsyncMock(), max_attempts=1, base_delay=0,
            success_outcome=CaseOutcome.SKIPPED_UNSUPPORTED,
        )

        assert result.outcome == CaseOutcome.SKIPPED_UNSUPPORTED

    @pytest.mark.asyncio
    async def test_invalid_max_attempts(self, stats, sleep):
        """max_attempts below 1 is rejected."""
        runner = RetryRunner(stats, sleep=sleep)

        with pytest.raises(ValueError):
            await runner.run("case", AsyncMock(), max_attempts=0, base_delay=0)

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, stats, sleep):
        """Cancellation is never swallowed as a failed attempt."""
        runner = RetryRunner(stats, sleep=sleep)
        attempt_fn = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await runner.run("case", attempt_fn, max_attempts=3, base_delay=0)

        assert stats.attempts_for("case") == []


class TestRetryBoundProperty:
    """Retry bound: N attempts allowed means exactly N attempt records."""

    @given(max_attempts=st.integers(min_value=1, max_value=10))
    @settings(max_examples=50)
    def test_permanent_failure_records_exactly_n_attempts(self, max_attempts):
        """A permanently failing case records N attempts, never N+1 or fewer."""
        stats = RunStatistics()
        stats.start("bound")
        runner = RetryRunner(stats, sleep=AsyncMock())
        attempt_fn = AsyncMock(side_effect=RateLimitError("infura"))

        result = asyncio.run(
            runner.run("case", attempt_fn, max_attempts=max_attempts, base_delay=1.0)
        )

        assert result.outcome == CaseOutcome.FAILED
        assert result.attempts == max_attempts
        assert len(stats.attempts_for("case")) == max_attempts
        assert stats.retries == max_attempts - 1
        assert attempt_fn.await_count == max_attempts
