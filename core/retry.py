"""Retry runner for conformance cases against live providers.

A case body is re-attempted after a fixed delay until it succeeds or the
attempt budget is spent. Every error kind is retried the same way: a
flaky gateway and a genuine data regression look identical from here, so
the bounded attempt count is what caps the cost of a real failure.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from core.exceptions import CaseTimeoutError
from core.stats import CaseOutcome, CaseResult, RunStatistics


logger = logging.getLogger(__name__)

AttemptFn = Callable[[], Awaitable[Any]]


class RetryRunner:
    """Executes a case body with bounded, fixed-delay retries.

    Attempts and retry events are recorded in the run statistics; only the
    final attempt's error is surfaced in the returned ``CaseResult``.
    """

    def __init__(
        self,
        stats: RunStatistics,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the runner.

        Args:
            stats: Run statistics receiving attempt and retry records.
            sleep: Coroutine used for the inter-attempt delay.
        """
        self.stats = stats
        self._sleep = sleep

    async def run(
        self,
        description: str,
        attempt_fn: AttemptFn,
        max_attempts: int,
        base_delay: float,
        timeout_seconds: Optional[float] = None,
        deterministic: bool = False,
        success_outcome: CaseOutcome = CaseOutcome.PASSED,
    ) -> CaseResult:
        """Run a case until it passes or runs out of attempts.

        Args:
            description: Human-readable case name.
            attempt_fn: No-argument coroutine function; raises on failure.
            max_attempts: Total number of attempts allowed.
            base_delay: Fixed delay in seconds between attempts.
            timeout_seconds: Optional bound on each attempt.
            deterministic: Run exactly once, never retry.
            success_outcome: Outcome reported when an attempt succeeds.

        Returns:
            The final CaseResult.

        Raises:
            ValueError: If max_attempts is less than 1.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        attempts_allowed = 1 if deterministic else max_attempts
        started = time.monotonic()
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts_allowed + 1):
            attempt_started = time.monotonic()
            log_extra = {"attempt": attempt, "max_attempts": attempts_allowed}

            try:
                if timeout_seconds is not None:
                    try:
                        await asyncio.wait_for(attempt_fn(), timeout=timeout_seconds)
                    except asyncio.TimeoutError:
                        raise CaseTimeoutError(description, timeout_seconds)
                else:
                    await attempt_fn()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                self.stats.record_attempt(
                    description,
                    attempt,
                    succeeded=False,
                    elapsed_seconds=time.monotonic() - attempt_started,
                    error=e,
                )
                logger.info(
                    f"Attempt {attempt}/{attempts_allowed} failed for {description}: {e}",
                    extra={**log_extra, "error_type": type(e).__name__}
                )
            else:
                self.stats.record_attempt(
                    description,
                    attempt,
                    succeeded=True,
                    elapsed_seconds=time.monotonic() - attempt_started,
                )
                return CaseResult(
                    name=description,
                    outcome=success_outcome,
                    attempts=attempt,
                    elapsed_seconds=time.monotonic() - started,
                )

            if attempt < attempts_allowed:
                self.stats.record_retry(description, attempt)
                if base_delay > 0:
                    await self._sleep(base_delay)

        logger.warning(
            f"All {attempts_allowed} attempt(s) failed for {description}",
            extra={
                "attempts": attempts_allowed,
                "last_error": str(last_error),
                "error_type": type(last_error).__name__ if last_error else "unknown",
            }
        )
        return CaseResult(
            name=description,
            outcome=CaseOutcome.FAILED,
            attempts=attempts_allowed,
            elapsed_seconds=time.monotonic() - started,
            error=str(last_error) if last_error else None,
            error_type=type(last_error).__name__ if last_error else None,
        )
