"""Run statistics for a conformance run.

``RunStatistics`` is the run context handed to the retry runner and the
matrix driver. It is bracketed by ``start()`` and ``end()``; recording
anything outside that bracket is a programming error. Counters are not
safe for concurrent mutation: one run, one event loop, one instance.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from core.exceptions import StatisticsLifecycleError


logger = logging.getLogger(__name__)


class CaseOutcome(str, Enum):
    """Final outcome of a conformance case."""
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED_UNSUPPORTED = "skipped_unsupported"


@dataclass
class AttemptRecord:
    """One attempt of one case."""

    case: str
    attempt: int
    succeeded: bool
    elapsed_seconds: float
    error: Optional[str] = None


@dataclass
class CaseResult:
    """Final result of a conformance case as surfaced by the retry runner."""

    name: str
    outcome: CaseOutcome
    attempts: int
    elapsed_seconds: float
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def failed(self) -> bool:
        """Check if the case failed."""
        return self.outcome == CaseOutcome.FAILED

    def to_dict(self) -> dict:
        """Convert result to dictionary."""
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "attempts": self.attempts,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "error": self.error,
            "error_type": self.error_type,
        }


@dataclass
class Exclusion:
    """A (provider, network) pair left out of the matrix on purpose."""

    provider: str
    network: str
    reason: str

    def to_dict(self) -> dict:
        """Convert exclusion to dictionary."""
        return {"provider": self.provider, "network": self.network, "reason": self.reason}


@dataclass
class RunSummary:
    """Report of a finished conformance run."""

    name: str
    results: list[CaseResult] = field(default_factory=list)
    exclusions: list[Exclusion] = field(default_factory=list)
    total_attempts: int = 0
    retries: int = 0
    duration_seconds: float = 0.0

    def _count(self, outcome: CaseOutcome) -> int:
        return sum(1 for result in self.results if result.outcome == outcome)

    @property
    def passed(self) -> int:
        return self._count(CaseOutcome.PASSED)

    @property
    def failed(self) -> int:
        return self._count(CaseOutcome.FAILED)

    @property
    def skipped_unsupported(self) -> int:
        return self._count(CaseOutcome.SKIPPED_UNSUPPORTED)

    @property
    def success(self) -> bool:
        """Check if no case failed."""
        return self.failed == 0

    def to_dict(self) -> dict:
        """Convert summary to dictionary."""
        return {
            "name": self.name,
            "total": len(self.results),
            "passed": self.passed,
            "failed": self.failed,
            "skipped_unsupported": self.skipped_unsupported,
            "total_attempts": self.total_attempts,
            "retries": self.retries,
            "duration_seconds": round(self.duration_seconds, 3),
            "success": self.success,
            "results": [result.to_dict() for result in self.results],
            "exclusions": [exclusion.to_dict() for exclusion in self.exclusions],
        }


class RunStatistics:
    """Counters and timers for one conformance run."""

    def __init__(self) -> None:
        self._name: Optional[str] = None
        self._start_time: Optional[float] = None
        self._is_started = False
        self._attempts: list[AttemptRecord] = []
        self._results: list[CaseResult] = []
        self._exclusions: list[Exclusion] = []
        self._retries = 0

    @property
    def is_started(self) -> bool:
        return self._is_started

    @property
    def attempts(self) -> list[AttemptRecord]:
        """All attempt records of the current run."""
        return list(self._attempts)

    @property
    def results(self) -> list[CaseResult]:
        return list(self._results)

    @property
    def retries(self) -> int:
        return self._retries

    def attempts_for(self, case: str) -> list[AttemptRecord]:
        """Get the attempt records of a single case."""
        return [record for record in self._attempts if record.case == case]

    def start(self, name: str) -> None:
        """Reset all counters and open the run bracket.

        Raises:
            StatisticsLifecycleError: If a run is already in progress.
        """
        if self._is_started:
            raise StatisticsLifecycleError(
                f"Run '{self._name}' already started; use a fresh RunStatistics "
                f"for concurrent or nested runs"
            )

        self._name = name
        self._attempts = []
        self._results = []
        self._exclusions = []
        self._retries = 0
        self._start_time = time.monotonic()
        self._is_started = True
        logger.info(f"Conformance run started: {name}", extra={"run_name": name})

    def time_elapsed(self) -> float:
        """Get elapsed time since start, or 0.0 if not started."""
        if not self._is_started or self._start_time is None:
            return 0.0
        return time.monotonic() - self._start_time

    def _require_started(self, action: str) -> None:
        if not self._is_started:
            raise StatisticsLifecycleError(
                f"Cannot {action} outside of a run; call start() first"
            )

    def record_attempt(
        self,
        case: str,
        attempt: int,
        succeeded: bool,
        elapsed_seconds: float,
        error: Optional[BaseException] = None,
    ) -> None:
        """Record one attempt of a case."""
        self._require_started("record an attempt")
        self._attempts.append(
            AttemptRecord(
                case=case,
                attempt=attempt,
                succeeded=succeeded,
                elapsed_seconds=elapsed_seconds,
                error=str(error) if error is not None else None,
            )
        )

    def record_retry(self, case: str, attempt: int) -> None:
        """Record that a failed attempt will be retried."""
        self._require_started("record a retry")
        self._retries += 1
        logger.debug(
            f"Retry scheduled for {case} after attempt {attempt}",
            extra={"attempt": attempt}
        )

    def record_result(self, result: CaseResult) -> None:
        """Record the final result of a case."""
        self._require_started("record a result")
        self._results.append(result)

    def record_exclusion(self, provider: str, network: str, reason: str) -> None:
        """Record a (provider, network) pair that produces no cases."""
        self._require_started("record an exclusion")
        self._exclusions.append(Exclusion(provider=provider, network=network, reason=reason))

    def end(self) -> RunSummary:
        """Close the run bracket and emit the run summary.

        Raises:
            StatisticsLifecycleError: If no run is in progress.
        """
        self._require_started("end a run")

        summary = RunSummary(
            name=self._name or "",
            results=list(self._results),
            exclusions=list(self._exclusions),
            total_attempts=len(self._attempts),
            retries=self._retries,
            duration_seconds=self.time_elapsed(),
        )

        self._is_started = False
        self._start_time = None

        log_level = logging.INFO if summary.success else logging.WARNING
        logger.log(
            log_level,
            f"Conformance run finished: {summary.name}: {summary.passed} passed, "
            f"{summary.failed} failed, {summary.skipped_unsupported} unsupported "
            f"in {summary.duration_seconds:.2f}s",
            extra={
                "run_name": summary.name,
                "passed": summary.passed,
                "failed": summary.failed,
                "skipped_unsupported": summary.skipped_unsupported,
                "total_attempts": summary.total_attempts,
                "retries": summary.retries,
                "exclusions": len(summary.exclusions),
                "duration_seconds": summary.duration_seconds,
            }
        )
        for result in summary.results:
            if result.failed:
                logger.warning(
                    f"FAILED {result.name} after {result.attempts} attempt(s): {result.error}",
                    extra={"attempts": result.attempts, "error_type": result.error_type}
                )

        return summary
