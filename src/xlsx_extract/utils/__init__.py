"""Utilities package for xlsx extraction.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from xlsx_extract.utils.exceptions import (
    ArchiveError,
    ArchiveNotFoundError,
    CellValueError,
    CorruptArchiveError,
    ErrorCode,
    InvalidOptionsError,
    InvalidTransitionError,
    MalformedWorkbookError,
    MalformedXMLError,
    MissingPartError,
    OutputError,
    SelectionError,
    SharedStringIndexError,
    SheetNotFoundError,
    StreamingError,
    TruncatedStreamError,
    WorkbookError,
    XLSXError,
)
from xlsx_extract.utils.logging import (
    LogContext,
    StructuredLogger,
    get_extraction_id,
    get_logger,
    set_extraction_id,
)

__all__ = [
    # Exceptions
    "ArchiveError",
    "ArchiveNotFoundError",
    "CellValueError",
    "CorruptArchiveError",
    "ErrorCode",
    "InvalidOptionsError",
    "InvalidTransitionError",
    "MalformedWorkbookError",
    "MalformedXMLError",
    "MissingPartError",
    "OutputError",
    "SelectionError",
    "SharedStringIndexError",
    "SheetNotFoundError",
    "StreamingError",
    "TruncatedStreamError",
    "WorkbookError",
    "XLSXError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "get_extraction_id",
    "get_logger",
    "set_extraction_id",
]
