"""Streaming extraction of tabular data from XLSX workbooks."""

__version__ = "0.1.0"

from xlsx_extract.models import (  # noqa: E402
    ConvertValues,
    ExtractionOptions,
    OutputFormat,
    SheetSelector,
    XMLParserBackend,
)
from xlsx_extract.output import JSONWriter, OutputService, TSVWriter  # noqa: E402
from xlsx_extract.services import XLSXExtractor  # noqa: E402
from xlsx_extract.utils.exceptions import ErrorCode, XLSXError  # noqa: E402
from xlsx_extract.xlsx_document import (  # noqa: E402
    Cell,
    CellType,
    EndEvent,
    ErrorEvent,
    Row,
    RowEvent,
    SheetDescriptor,
    SheetEndEvent,
    SheetEvent,
)

__all__ = [
    "Cell",
    "CellType",
    "ConvertValues",
    "EndEvent",
    "ErrorCode",
    "ErrorEvent",
    "ExtractionOptions",
    "JSONWriter",
    "OutputFormat",
    "OutputService",
    "Row",
    "RowEvent",
    "SheetDescriptor",
    "SheetEndEvent",
    "SheetEvent",
    "SheetSelector",
    "TSVWriter",
    "XLSXError",
    "XLSXExtractor",
    "XMLParserBackend",
    "__version__",
]
