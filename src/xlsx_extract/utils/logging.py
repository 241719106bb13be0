"""Structured logging utilities for xlsx extraction.

This module provides:
- Extraction ID tracking using contextvars for correlation across a run
- Structured logging with consistent format and metadata
- Performance metrics logging helpers

Usage:
    from xlsx_extract.utils.logging import get_logger, LogContext

    logger = get_logger(__name__)

    with LogContext(extraction_id="abc-123", operation="convert"):
        logger.info("Converting workbook", sheets=3)

    with timed_operation(logger, "convert") as metrics:
        metrics.rows_emitted += 1
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

_extraction_id_var: ContextVar[str | None] = ContextVar("extraction_id", default=None)
_extra_context_var: ContextVar[dict[str, Any] | None] = ContextVar(
    "extra_context", default=None
)


def get_extraction_id() -> str | None:
    """Get the current extraction ID from context.

    Returns:
        The current extraction ID or None if not set.
    """
    return _extraction_id_var.get()


def set_extraction_id(extraction_id: str | None) -> None:
    """Set the extraction ID in context.

    Args:
        extraction_id: The extraction ID to set, or None to clear.
    """
    _extraction_id_var.set(extraction_id)


def get_extra_context() -> dict[str, Any]:
    """Get additional context from context vars.

    Returns:
        Dictionary of extra context values.
    """
    ctx = _extra_context_var.get()
    return ctx if ctx is not None else {}


def set_extra_context(context: dict[str, Any]) -> None:
    """Set additional context in context vars."""
    _extra_context_var.set(context)


def clear_context() -> None:
    """Clear all context variables."""
    _extraction_id_var.set(None)
    _extra_context_var.set(None)


@dataclass
class PerformanceMetrics:
    """Container for performance metrics of one extraction or conversion.

    Attributes:
        operation: Name of the operation being measured.
        start_time: When the operation started.
        end_time: When the operation ended.
        duration_seconds: Duration in seconds.
        sheets_processed: Number of sheets streamed.
        rows_emitted: Number of rows delivered to the consumer.
        bytes_written: Number of characters written to the output sink.
        custom_metrics: Additional custom metrics.
    """

    operation: str
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    duration_seconds: float = 0.0
    sheets_processed: int = 0
    rows_emitted: int = 0
    bytes_written: int = 0
    custom_metrics: dict[str, Any] = field(default_factory=dict)

    def finish(self) -> None:
        """Mark the operation as complete and calculate duration."""
        self.end_time = datetime.now(UTC)
        self.duration_seconds = (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging.

        Returns:
            Dictionary with all non-zero metrics.
        """
        result: dict[str, Any] = {
            "operation": self.operation,
            "duration_seconds": self.duration_seconds,
        }
        if self.sheets_processed > 0:
            result["sheets_processed"] = self.sheets_processed
        if self.rows_emitted > 0:
            result["rows_emitted"] = self.rows_emitted
        if self.bytes_written > 0:
            result["bytes_written"] = self.bytes_written
        if self.custom_metrics:
            result["custom_metrics"] = self.custom_metrics
        return result


class StructuredLogFormatter(logging.Formatter):
    """Log formatter that prefixes records with the active log context."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with context information.

        Args:
            record: The log record to format.

        Returns:
            Formatted log message string.
        """
        prefix_parts = []
        extraction_id = get_extraction_id()
        if extraction_id:
            prefix_parts.append(f"extraction_id={extraction_id}")
        for key, value in get_extra_context().items():
            prefix_parts.append(f"{key}={value}")

        prefix = f"[{' '.join(prefix_parts)}] " if prefix_parts else ""

        original_msg = record.msg
        record.msg = f"{prefix}{original_msg}"
        result = super().format(record)
        record.msg = original_msg

        return result


class StructuredLogger:
    """Logger wrapper that appends key=value pairs to messages.

    Wraps a standard Python logger with additional methods for:
    - Logging with automatic context inclusion
    - Performance metrics logging
    - Structured error logging with exception details
    """

    def __init__(self, name: str) -> None:
        """Initialize the structured logger.

        Args:
            name: Logger name (typically __name__ of the module).
        """
        self._logger = logging.getLogger(name)
        self._name = name

    @property
    def logger(self) -> logging.Logger:
        """Access the underlying Python logger."""
        return self._logger

    def _build_message(self, message: str, **kwargs: Any) -> str:
        if not kwargs:
            return message

        parts = [f"{k}={v}" for k, v in kwargs.items()]
        return f"{message} | {', '.join(parts)}"

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a debug message."""
        self._logger.debug(self._build_message(message, **kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info message."""
        self._logger.info(self._build_message(message, **kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message."""
        self._logger.warning(self._build_message(message, **kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log an error message.

        Args:
            message: Log message.
            exc_info: Whether to include exception info.
            **kwargs: Additional structured data.
        """
        self._logger.error(self._build_message(message, **kwargs), exc_info=exc_info)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log an exception with traceback."""
        self._logger.exception(self._build_message(message, **kwargs))

    def log_performance(self, metrics: PerformanceMetrics) -> None:
        """Log performance metrics.

        Args:
            metrics: Performance metrics to log.
        """
        self.info(f"Performance: {metrics.operation}", **metrics.to_dict())

    def log_extraction_result(
        self,
        source: str,
        success: bool,
        duration_seconds: float,
        sheets: int,
        rows: int,
        error_code: str | None = None,
        **extra: Any,
    ) -> None:
        """Log completion of an extraction or conversion.

        Args:
            source: Spreadsheet path or stream description.
            success: Whether the run finished without error.
            duration_seconds: Total processing time.
            sheets: Number of sheets streamed.
            rows: Number of rows emitted.
            error_code: Error code when the run failed.
            **extra: Additional structured data (extraction id, error text).
        """
        kwargs: dict[str, Any] = {
            "source": source,
            "success": success,
            "duration_seconds": f"{duration_seconds:.2f}",
            "sheets": sheets,
            "rows": rows,
        }
        if error_code:
            kwargs["error_code"] = error_code
        kwargs.update(extra)

        level = logging.INFO if success else logging.ERROR
        self._logger.log(level, self._build_message("Extraction completed", **kwargs))


class LogContext:
    """Context manager for adding temporary context to logs.

    Usage:
        with LogContext(extraction_id="123", sheet="Sheet1"):
            logger.info("Streaming rows")  # includes extraction_id and sheet
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize with context values.

        Args:
            **kwargs: Key-value pairs to add to log context.
        """
        self._new_context = kwargs
        self._old_context: dict[str, Any] = {}
        self._old_extraction_id: str | None = None

    def __enter__(self) -> "LogContext":
        """Enter the context, saving old values and setting new ones."""
        self._old_context = get_extra_context().copy()
        self._old_extraction_id = get_extraction_id()

        new_context = dict(self._new_context)
        extraction_id = new_context.pop("extraction_id", None)
        if extraction_id is not None:
            set_extraction_id(extraction_id)

        merged = self._old_context.copy()
        merged.update(new_context)
        set_extra_context(merged)

        return self

    def __exit__(self, *args: Any) -> None:
        """Exit the context, restoring old values."""
        set_extra_context(self._old_context)
        set_extraction_id(self._old_extraction_id)


@contextmanager
def timed_operation(
    logger: StructuredLogger,
    operation: str,
) -> Generator[PerformanceMetrics, None, None]:
    """Context manager for timing operations.

    Usage:
        with timed_operation(logger, "convert") as metrics:
            metrics.rows_emitted = 10

        # logs: "Performance: convert | operation=convert, duration_seconds=..."

    Args:
        logger: Logger to use for output.
        operation: Name of the operation.

    Yields:
        PerformanceMetrics instance for tracking.
    """
    metrics = PerformanceMetrics(operation=operation)
    try:
        yield metrics
    finally:
        metrics.finish()
        logger.log_performance(metrics)


def configure_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
    use_structured_formatter: bool = True,
) -> None:
    """Configure root logging for command-line use.

    Args:
        level: Log level (int or string like "INFO").
        format_string: Custom format string (uses default if None).
        use_structured_formatter: Whether to use the structured formatter.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stderr, so converted output on stdout stays clean
    handler = logging.StreamHandler()
    handler.setLevel(level)

    formatter: logging.Formatter
    if use_structured_formatter:
        formatter = StructuredLogFormatter(format_string)
    else:
        formatter = logging.Formatter(format_string)

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        StructuredLogger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("Sheet streamed", sheet="Data", rows=10)
    """
    return StructuredLogger(name)
