"""Unit tests for RunStatistics.

Tests the start/end bracket, attempt and retry recording, and the run
summary produced at the end of a run.
"""

import pytest

from core.exceptions import StatisticsLifecycleError
from core.stats import CaseOutcome, CaseResult, RunStatistics


def _result(name: str, outcome: CaseOutcome, attempts: int = 1) -> CaseResult:
    return CaseResult(name=name, outcome=outcome, attempts=attempts, elapsed_seconds=0.1)


class TestRunBracket:
    """Tests for the start()/end() lifecycle."""

    def test_recording_before_start_raises(self):
        """Nothing can be recorded outside a run."""
        stats = RunStatistics()

        with pytest.raises(StatisticsLifecycleError):
            stats.record_attempt("case", 1, succeeded=True, elapsed_seconds=0.0)
        with pytest.raises(StatisticsLifecycleError):
            stats.record_retry("case", 1)
        with pytest.raises(StatisticsLifecycleError):
            stats.record_result(_result("case", CaseOutcome.PASSED))
        with pytest.raises(StatisticsLifecycleError):
            stats.record_exclusion("p", "homestead", "no endpoint configured")

    def test_end_without_start_raises(self):
        """end() outside a run is a lifecycle error."""
        with pytest.raises(StatisticsLifecycleError):
            RunStatistics().end()

    def test_nested_start_raises(self):
        """A second start() before end() is rejected."""
        stats = RunStatistics()
        stats.start("first")

        with pytest.raises(StatisticsLifecycleError):
            stats.start("second")

    def test_start_resets_counters(self):
        """start() clears everything recorded by a previous run."""
        stats = RunStatistics()
        stats.start("first")
        stats.record_attempt("case", 1, succeeded=False, elapsed_seconds=0.1, error=ValueError("x"))
        stats.record_retry("case", 1)
        stats.record_result(_result("case", CaseOutcome.FAILED))
        stats.end()

        stats.start("second")
        assert stats.attempts == []
        assert stats.results == []
        assert stats.retries == 0
        assert stats.is_started

    def test_time_elapsed_zero_when_not_started(self):
        """time_elapsed() is 0.0 outside a run."""
        assert RunStatistics().time_elapsed() == 0.0


class TestSummary:
    """Tests for the summary emitted by end()."""

    def test_summary_counts(self):
        """The summary counts outcomes, attempts, retries and exclusions."""
        stats = RunStatistics()
        stats.start("Test Provider Methods")

        stats.record_attempt("a", 1, succeeded=False, elapsed_seconds=0.1, error=ValueError("boom"))
        stats.record_retry("a", 1)
        stats.record_attempt("a", 2, succeeded=True, elapsed_seconds=0.1)
        stats.record_result(_result("a", CaseOutcome.PASSED, attempts=2))
        stats.record_attempt("b", 1, succeeded=False, elapsed_seconds=0.1)
        stats.record_result(_result("b", CaseOutcome.FAILED))
        stats.record_attempt("c", 1, succeeded=True, elapsed_seconds=0.1)
        stats.record_result(_result("c", CaseOutcome.SKIPPED_UNSUPPORTED))
        stats.record_exclusion("cloudflare", "homestead", "provider excluded")

        summary = stats.end()

        assert summary.name == "Test Provider Methods"
        assert summary.passed == 1
        assert summary.failed == 1
        assert summary.skipped_unsupported == 1
        assert summary.total_attempts == 4
        assert summary.retries == 1
        assert len(summary.exclusions) == 1
        assert summary.success is False
        assert not stats.is_started

    def test_attempts_for_case(self):
        """Attempt records can be filtered per case, with error text kept."""
        stats = RunStatistics()
        stats.start("run")
        stats.record_attempt("a", 1, succeeded=False, elapsed_seconds=0.1, error=ValueError("boom"))
        stats.record_attempt("b", 1, succeeded=True, elapsed_seconds=0.1)

        records = stats.attempts_for("a")

        assert len(records) == 1
        assert records[0].error == "boom"
        assert records[0].succeeded is False

    def test_summary_to_dict(self):
        """to_dict() exposes per-case results and totals."""
        stats = RunStatistics()
        stats.start("run")
        stats.record_result(_result("a", CaseOutcome.PASSED))

        data = stats.end().to_dict()

        assert data["total"] == 1
        assert data["success"] is True
        assert data["results"][0]["outcome"] == "passed"
        assert data["exclusions"] == []
