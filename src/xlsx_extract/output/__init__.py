"""Output generation module for extraction results.

This module provides the delimited-text and JSON writers and the service
that converts workbooks into files with them.
"""

from xlsx_extract.output.json_writer import JSONWriter
from xlsx_extract.output.output_service import (
    ConversionResult,
    OutputService,
    resolve_output_format,
)
from xlsx_extract.output.tsv_writer import TSVWriter

__all__ = [
    "ConversionResult",
    "JSONWriter",
    "OutputService",
    "TSVWriter",
    "resolve_output_format",
]
