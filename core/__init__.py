"""Core module for the provider conformance harness."""

from core.exceptions import (
    HarnessError,
    ProviderError,
    ProviderConnectionError,
    ProviderTimeoutError,
    RateLimitError,
    ProviderResponseError,
    UnsupportedOperationError,
    ConformanceError,
    ConformanceMismatchError,
    ShapeInvariantError,
    UnsupportedExpectationError,
    CaseTimeoutError,
    ConfigurationError,
    FixtureError,
    StatisticsLifecycleError,
)
from core.operations import Operation
from core.stats import CaseOutcome, CaseResult, RunStatistics, RunSummary
from core.retry import RetryRunner

__all__ = [
    # Errors
    "HarnessError",
    "ProviderError",
    "ProviderConnectionError",
    "ProviderTimeoutError",
    "RateLimitError",
    "ProviderResponseError",
    "UnsupportedOperationError",
    "ConformanceError",
    "ConformanceMismatchError",
    "ShapeInvariantError",
    "UnsupportedExpectationError",
    "CaseTimeoutError",
    "ConfigurationError",
    "FixtureError",
    "StatisticsLifecycleError",
    # Operations
    "Operation",
    # Run state
    "CaseOutcome",
    "CaseResult",
    "RunStatistics",
    "RunSummary",
    "RetryRunner",
]
