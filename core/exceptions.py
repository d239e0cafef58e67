"""Custom exceptions for the provider conformance harness.

Provides a hierarchy of exceptions for the failure categories a run can
produce, so the retry runner, the matrix driver and the report can tell
them apart and log them consistently.
"""

from typing import Any, Optional


class HarnessError(Exception):
    """Base exception for all conformance harness errors."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# ==================== Provider Errors ====================

class ProviderError(HarnessError):
    """Base exception for errors raised by a provider backend."""
    pass


class ProviderConnectionError(ProviderError):
    """Raised when unable to connect to a provider endpoint."""

    def __init__(
        self,
        provider: str,
        message: str,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=f"Connection to {provider} failed: {message}",
            details={
                "provider": provider,
                "original_error": str(original_error) if original_error else None,
            }
        )
        self.provider = provider
        self.original_error = original_error


class ProviderTimeoutError(ProviderError):
    """Raised when a provider request times out."""

    def __init__(
        self,
        provider: str,
        timeout_seconds: float,
        method: str = "request"
    ):
        super().__init__(
            message=f"{method} to {provider} timed out after {timeout_seconds}s",
            details={
                "provider": provider,
                "timeout_seconds": timeout_seconds,
                "method": method,
            }
        )
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self.method = method


class RateLimitError(ProviderError):
    """Raised when rate limited by a provider."""

    def __init__(
        self,
        provider: str,
        retry_after_seconds: Optional[int] = None
    ):
        message = f"Rate limited by {provider}"
        if retry_after_seconds:
            message += f", retry after {retry_after_seconds}s"

        super().__init__(
            message=message,
            details={
                "provider": provider,
                "retry_after_seconds": retry_after_seconds,
            }
        )
        self.provider = provider
        self.retry_after_seconds = retry_after_seconds


class ProviderResponseError(ProviderError):
    """Raised when a provider returns an HTTP or JSON-RPC error response."""

    def __init__(
        self,
        provider: str,
        status_code: Optional[int] = None,
        error_message: Optional[str] = None,
        response_body: Optional[str] = None,
        rpc_code: Optional[int] = None
    ):
        message = f"Error response from {provider}"
        if status_code:
            message += f" (HTTP {status_code})"
        if rpc_code is not None:
            message += f" (RPC {rpc_code})"
        if error_message:
            message += f": {error_message}"

        super().__init__(
            message=message,
            details={
                "provider": provider,
                "status_code": status_code,
                "rpc_code": rpc_code,
                "error_message": error_message,
                "response_body": response_body[:500] if response_body else None,
            }
        )
        self.provider = provider
        self.status_code = status_code
        self.rpc_code = rpc_code
        self.error_message = error_message


class UnsupportedOperationError(ProviderError):
    """Raised when a provider cannot perform an operation at all.

    The ``operation`` attribute carries the canonical operation name
    (e.g. ``"getBlock(blockHash)"``) so negative tests can match on it.
    """

    code = "UNSUPPORTED_OPERATION"

    def __init__(self, operation: str, provider: Optional[str] = None):
        message = f"Unsupported operation: {operation}"
        if provider:
            message += f" (provider {provider})"
        super().__init__(
            message=message,
            details={
                "code": self.code,
                "operation": operation,
                "provider": provider,
            }
        )
        self.operation = operation
        self.provider = provider


# ==================== Conformance Errors ====================

class ConformanceError(HarnessError):
    """Base exception for a live result that does not conform."""
    pass


class ConformanceMismatchError(ConformanceError):
    """Raised when a field of a live result differs from the fixture."""

    def __init__(self, field: str, expected: Any, actual: Any):
        super().__init__(
            message=f"{field}: expected {expected!r}, got {actual!r}",
            details={
                "field": field,
                "expected": repr(expected)[:200],
                "actual": repr(actual)[:200],
            }
        )
        self.field = field
        self.expected = expected
        self.actual = actual


class ShapeInvariantError(ConformanceMismatchError):
    """Raised when a pending block violates its shape invariants."""
    pass


class UnsupportedExpectationError(ConformanceError):
    """Raised when an operation expected to be unsupported behaves otherwise."""

    def __init__(
        self,
        operation: str,
        reason: str,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=f"Expected {operation} to raise UNSUPPORTED_OPERATION: {reason}",
            details={
                "operation": operation,
                "reason": reason,
                "original_error": str(original_error) if original_error else None,
            }
        )
        self.operation = operation
        self.reason = reason
        self.original_error = original_error


class CaseTimeoutError(HarnessError):
    """Raised when a single conformance case attempt exceeds its timeout."""

    def __init__(self, case: str, timeout_seconds: float):
        super().__init__(
            message=f"Case '{case}' exceeded timeout of {timeout_seconds:.1f} seconds",
            details={"case": case, "timeout_seconds": timeout_seconds}
        )
        self.case = case
        self.timeout_seconds = timeout_seconds


# ==================== Setup Errors ====================

class ConfigurationError(HarnessError):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(
            message=f"Configuration error: {message}",
            details={"config_key": config_key} if config_key else {}
        )
        self.config_key = config_key


class FixtureError(HarnessError):
    """Raised when golden fixture data cannot be loaded or parsed."""

    def __init__(self, source: str, reason: str):
        super().__init__(
            message=f"Failed to load fixtures from {source}: {reason}",
            details={"source": source, "reason": reason}
        )
        self.source = source
        self.reason = reason


class StatisticsLifecycleError(HarnessError):
    """Raised when run statistics are used outside their start/end bracket."""
    pass
