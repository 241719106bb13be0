"""Centralized exception classes for xlsx extraction.

This module provides a hierarchy of custom exceptions with error codes and
structured error details for consistent error handling throughout the
extraction engine.

Exception Hierarchy:
    XLSXError (base)
    ├── ArchiveError
    │   ├── ArchiveNotFoundError
    │   ├── CorruptArchiveError
    │   └── MissingPartError
    ├── WorkbookError
    │   └── MalformedWorkbookError
    ├── SelectionError
    │   ├── SheetNotFoundError
    │   └── InvalidOptionsError
    ├── StreamingError
    │   ├── MalformedXMLError
    │   ├── TruncatedStreamError
    │   ├── InvalidTransitionError
    │   ├── SharedStringIndexError
    │   └── CellValueError
    └── OutputError

Error Codes:
    All errors have a unique error code (e.g., "E1001") that can be used
    for programmatic error handling and documentation.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Enumeration of all error codes used by the engine.

    Error codes are grouped by category:
    - E1xxx: Archive/container errors
    - E2xxx: Workbook structure errors
    - E3xxx: Sheet selection and option errors
    - E4xxx: Worksheet streaming errors
    - E5xxx: Output errors
    - E9xxx: Internal/unexpected errors
    """

    # Archive errors (E1xxx)
    ARCHIVE_NOT_FOUND = "E1001"
    CORRUPT_ARCHIVE = "E1002"
    MISSING_PART = "E1003"

    # Workbook errors (E2xxx)
    MALFORMED_WORKBOOK = "E2001"

    # Selection errors (E3xxx)
    SHEET_NOT_FOUND = "E3001"
    INVALID_OPTIONS = "E3002"

    # Streaming errors (E4xxx)
    MALFORMED_XML = "E4001"
    TRUNCATED_STREAM = "E4002"
    INVALID_TRANSITION = "E4003"
    SHARED_STRING_OUT_OF_RANGE = "E4004"
    INVALID_CELL_VALUE = "E4005"

    # Output errors (E5xxx)
    OUTPUT_WRITE_FAILED = "E5001"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"


class XLSXError(Exception):
    """Base exception for all xlsx extraction errors.

    All custom exceptions raised by the engine inherit from this class.
    It provides:
    - Unique error codes for programmatic handling
    - Structured error details for logging and debugging

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for error events and logs.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# =============================================================================
# Archive Errors (E1xxx)
# =============================================================================


class ArchiveError(XLSXError):
    """Base class for container-level errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CORRUPT_ARCHIVE,
        archive_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with archive path information.

        Args:
            message: Error message.
            error_code: Error code.
            archive_path: Path to the problematic archive.
            details: Additional details.
        """
        details = details or {}
        if archive_path:
            details["archive_path"] = archive_path
        super().__init__(message, error_code, details)
        self.archive_path = archive_path


class ArchiveNotFoundError(ArchiveError):
    """Raised when the spreadsheet file does not exist."""

    def __init__(
        self,
        archive_path: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with archive path.

        Args:
            archive_path: Path to the file that was not found.
            message: Optional custom message.
            details: Additional details.
        """
        message = message or f"Spreadsheet file not found: {archive_path}"
        super().__init__(
            message=message,
            error_code=ErrorCode.ARCHIVE_NOT_FOUND,
            archive_path=archive_path,
            details=details,
        )


class CorruptArchiveError(ArchiveError):
    """Raised when the ZIP container or one of its entries cannot be read."""

    def __init__(
        self,
        message: str,
        archive_path: str | None = None,
        part_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the failing part, if known.

        Args:
            message: Error message.
            archive_path: Path to the archive.
            part_name: Entry that failed to read.
            details: Additional details.
        """
        details = details or {}
        if part_name:
            details["part_name"] = part_name
        super().__init__(
            message=message,
            error_code=ErrorCode.CORRUPT_ARCHIVE,
            archive_path=archive_path,
            details=details,
        )
        self.part_name = part_name


class MissingPartError(ArchiveError):
    """Raised when a required part (workbook, selected worksheet) is absent."""

    def __init__(
        self,
        part_name: str,
        archive_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the missing part name.

        Args:
            part_name: Path of the part inside the archive.
            archive_path: Path to the archive.
            details: Additional details.
        """
        details = details or {}
        details["part_name"] = part_name
        super().__init__(
            message=f"Required part missing from archive: {part_name}",
            error_code=ErrorCode.MISSING_PART,
            archive_path=archive_path,
            details=details,
        )
        self.part_name = part_name


# =============================================================================
# Workbook Errors (E2xxx)
# =============================================================================


class WorkbookError(XLSXError):
    """Base class for workbook structure errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.MALFORMED_WORKBOOK,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


class MalformedWorkbookError(WorkbookError):
    """Raised when the workbook index cannot be resolved to worksheet parts."""

    def __init__(
        self,
        message: str,
        sheet_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the offending sheet entry.

        Args:
            message: Error message.
            sheet_name: Display name of the sheet entry, if known.
            details: Additional details.
        """
        details = details or {}
        if sheet_name:
            details["sheet_name"] = sheet_name
        super().__init__(message, ErrorCode.MALFORMED_WORKBOOK, details)
        self.sheet_name = sheet_name


# =============================================================================
# Selection Errors (E3xxx)
# =============================================================================


class SelectionError(XLSXError):
    """Base class for sheet selection and option errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.SHEET_NOT_FOUND,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


class SheetNotFoundError(SelectionError):
    """Raised when no sheet matches the requested selector."""

    def __init__(
        self,
        selector: str,
        value: Any,
        available: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the selector that matched nothing.

        Args:
            selector: Selector family (sheet_nr, sheet_name, sheet_id).
            value: Requested value.
            available: Display names of the sheets in the workbook.
            details: Additional details.
        """
        details = details or {}
        details["selector"] = selector
        details["value"] = value
        if available is not None:
            details["available_sheets"] = available
        super().__init__(
            message=f"No sheet matches {selector}={value!r}",
            error_code=ErrorCode.SHEET_NOT_FOUND,
            details=details,
        )
        self.selector = selector
        self.value = value


class InvalidOptionsError(SelectionError):
    """Raised when extraction options fail validation."""

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with validation details.

        Args:
            message: Main error message.
            errors: List of validation errors.
            details: Additional details.
        """
        details = details or {}
        if errors:
            details["validation_errors"] = errors
        super().__init__(message, ErrorCode.INVALID_OPTIONS, details)
        self.errors = errors or []


# =============================================================================
# Streaming Errors (E4xxx)
# =============================================================================


class StreamingError(XLSXError):
    """Base class for errors raised while streaming a worksheet part."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.MALFORMED_XML,
        part_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the part being streamed.

        Args:
            message: Error message.
            error_code: Error code.
            part_name: Archive part being parsed when the error occurred.
            details: Additional details.
        """
        details = details or {}
        if part_name:
            details["part_name"] = part_name
        super().__init__(message, error_code, details)
        self.part_name = part_name


class MalformedXMLError(StreamingError):
    """Raised when the XML tokenizer rejects the markup."""

    def __init__(
        self,
        message: str,
        part_name: str | None = None,
        line: int | None = None,
        column: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with position information.

        Args:
            message: Error message.
            part_name: Archive part being parsed.
            line: Line number reported by the tokenizer.
            column: Column number reported by the tokenizer.
            details: Additional details.
        """
        details = details or {}
        if line is not None:
            details["line"] = line
        if column is not None:
            details["column"] = column
        super().__init__(message, ErrorCode.MALFORMED_XML, part_name, details)


class TruncatedStreamError(StreamingError):
    """Raised when a part ends before its markup is complete."""

    def __init__(
        self,
        message: str,
        part_name: str | None = None,
        state: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if state:
            details["state"] = state
        super().__init__(message, ErrorCode.TRUNCATED_STREAM, part_name, details)


class InvalidTransitionError(StreamingError):
    """Raised when the worksheet state machine sees an element out of place."""

    def __init__(
        self,
        element: str,
        state: str,
        part_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["element"] = element
        details["state"] = state
        super().__init__(
            f"Unexpected <{element}> in state {state}",
            ErrorCode.INVALID_TRANSITION,
            part_name,
            details,
        )


class SharedStringIndexError(StreamingError):
    """Raised when a cell references a shared string beyond the table."""

    def __init__(
        self,
        index: int,
        table_size: int,
        address: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the bad index.

        Args:
            index: Index referenced by the cell.
            table_size: Number of entries in the shared string table.
            address: Cell reference, if known.
            details: Additional details.
        """
        details = details or {}
        details["index"] = index
        details["table_size"] = table_size
        if address:
            details["address"] = address
        super().__init__(
            f"Shared string index {index} out of range (table size {table_size})",
            ErrorCode.SHARED_STRING_OUT_OF_RANGE,
            details=details,
        )
        self.index = index
        self.table_size = table_size


class CellValueError(StreamingError):
    """Raised when a cell's literal cannot be interpreted for its type."""

    def __init__(
        self,
        message: str,
        raw_value: str | None = None,
        address: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if raw_value is not None:
            details["raw_value"] = raw_value
        if address:
            details["address"] = address
        super().__init__(message, ErrorCode.INVALID_CELL_VALUE, details=details)


# =============================================================================
# Output Errors (E5xxx)
# =============================================================================


class OutputError(XLSXError):
    """Raised when converted output cannot be written."""

    def __init__(
        self,
        message: str,
        destination: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if destination:
            details["destination"] = destination
        super().__init__(message, ErrorCode.OUTPUT_WRITE_FAILED, details)
        self.destination = destination
