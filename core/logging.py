"""Structured logging configuration for the provider conformance harness.

Provides JSON-formatted logging with correlation fields (run_id and the
name of the conformance case being executed) so that every provider call
logged during a run can be traced back to the case that made it.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any, Optional

from pythonjsonlogger import jsonlogger


_run_id_context: ContextVar[Optional[str]] = ContextVar("run_id", default=None)
_case_context: ContextVar[Optional[str]] = ContextVar("case", default=None)


def get_run_id() -> Optional[str]:
    """Get the current run_id from context."""
    return _run_id_context.get()


def set_run_id(run_id: Optional[str]) -> None:
    """Set the run_id in context for the current task.

    Args:
        run_id: The run_id to set, or None to clear.
    """
    _run_id_context.set(run_id)


def get_case() -> Optional[str]:
    """Get the name of the conformance case currently executing."""
    return _case_context.get()


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds run_id and case to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation fields to the log record if available.

        Args:
            record: The log record to modify.

        Returns:
            Always True to allow the record through.
        """
        run_id = get_run_id()
        if run_id is None:
            run_id = getattr(record, "run_id", None)
        record.run_id = run_id or "N/A"

        case = get_case()
        if case is None:
            case = getattr(record, "case", None)
        record.case = case or "N/A"
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields for structured logging."""

    def __init__(
        self,
        *args: Any,
        service_name: str = "provider-conformance",
        **kwargs: Any
    ):
        """Initialize the formatter.

        Args:
            service_name: Name of the service for log identification.
            *args: Positional arguments for parent class.
            **kwargs: Keyword arguments for parent class.
        """
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any]
    ) -> None:
        """Add custom fields to the log record.

        Args:
            log_record: The dict that will be serialized to JSON.
            record: The original LogRecord.
            message_dict: Dict from the log message if it was a dict.
        """
        super().add_fields(log_record, record, message_dict)

        log_record["time"] = log_record.pop("asctime", None) or self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = self.service_name

        for key in ("run_id", "case"):
            value = getattr(record, key, None)
            if value and value != "N/A":
                log_record[key] = value
            else:
                log_record.pop(key, None)

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        log_record.pop("levelname", None)
        log_record.pop("name", None)


class TextFormatter(logging.Formatter):
    """Text formatter with correlation field support for terminals."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record, prefixing run_id and case when set.

        Args:
            record: The log record to format.

        Returns:
            Formatted log string.
        """
        prefix = ""
        run_id = getattr(record, "run_id", None)
        if run_id and run_id != "N/A":
            prefix += f"[run_id={run_id}] "
        case = getattr(record, "case", None)
        if case and case != "N/A":
            prefix += f"[{case}] "

        if not prefix:
            return super().format(record)

        original_msg = record.msg
        record.msg = f"{prefix}{original_msg}"
        try:
            return super().format(record)
        finally:
            record.msg = original_msg


def configure_logging(
    level: str = "INFO",
    fmt: str = "json",
    service_name: str = "provider-conformance"
) -> logging.Logger:
    """Configure structured logging for the harness.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: Log format ('json' or 'text').
        service_name: Service name for log identification.

    Returns:
        The root logger configured with the specified settings.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.addFilter(CorrelationIdFilter())

    if fmt == "json":
        formatter = CustomJsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            service_name=service_name
        )
    else:
        formatter = TextFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name."""
    return logging.getLogger(name)


class LogContext:
    """Context manager for setting run_id and/or case during a block of code.

    Usage:
        with LogContext(run_id="abc-123", case="fetches transaction: ..."):
            logger.info("This log will include run_id and case")
    """

    def __init__(self, run_id: Optional[str] = None, case: Optional[str] = None):
        self.run_id = run_id
        self.case = case
        self._run_token: Any = None
        self._case_token: Any = None

    def __enter__(self) -> "LogContext":
        """Enter the context and set the correlation fields."""
        if self.run_id:
            self._run_token = _run_id_context.set(self.run_id)
        if self.case:
            self._case_token = _case_context.set(self.case)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit the context and restore the previous values."""
        if self._case_token is not None:
            _case_context.reset(self._case_token)
        if self._run_token is not None:
            _run_id_context.reset(self._run_token)
