"""Output service for converting workbooks into delimited text or JSON.

This module runs the extractor and streams its rows into a writer, either
into a file (removed again if the conversion fails) or into an open text
stream such as stdout.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TextIO

from xlsx_extract.models import OutputFormat
from xlsx_extract.output.json_writer import JSONWriter
from xlsx_extract.output.tsv_writer import TSVWriter
from xlsx_extract.services.extractor import (
    OptionsInput,
    Source,
    XLSXExtractor,
    coerce_options,
)
from xlsx_extract.utils.exceptions import OutputError, XLSXError
from xlsx_extract.utils.logging import LogContext, get_logger, timed_operation

logger = get_logger(__name__)


@dataclass
class ConversionResult:
    """Summary of a finished conversion."""

    destination: str
    """Output path, or the name of the text stream."""

    format: OutputFormat
    """Serialization used (tsv or json)."""

    sheets: int = 0
    """Number of sheets streamed."""

    rows: int = 0
    """Number of rows written."""

    processing_time_seconds: float = 0.0
    """Wall-clock duration of the conversion."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "destination": self.destination,
            "format": self.format.value,
            "sheets": self.sheets,
            "rows": self.rows,
            "processing_time_seconds": self.processing_time_seconds,
        }


def resolve_output_format(
    requested: OutputFormat, destination: str | Path | None = None
) -> OutputFormat:
    """Choose the file serialization: JSON when requested or named `.json`."""
    if requested is OutputFormat.JSON:
        return OutputFormat.JSON
    if destination is not None and Path(destination).suffix.lower() == ".json":
        return OutputFormat.JSON
    return OutputFormat.TSV


class OutputService:
    """Service converting workbooks into text files."""

    def __init__(self, extractor: XLSXExtractor | None = None) -> None:
        """Initialize the output service.

        Args:
            extractor: Extractor to use. Creates a default one if not provided.
        """
        self.extractor = extractor or XLSXExtractor()

    def convert(
        self,
        source: Source,
        destination: str | Path,
        options: OptionsInput = None,
    ) -> ConversionResult:
        """Convert a workbook into a TSV or JSON file.

        The file is written incrementally. If extraction or writing fails the
        partially written file is removed and the error re-raised.

        Args:
            source: Path to the workbook or a binary stream.
            destination: Output file path.
            options: Extraction options.

        Returns:
            ConversionResult describing the output.

        Raises:
            XLSXError: Any extraction error.
            OutputError: If the destination cannot be written.
        """
        opts = coerce_options(options)
        path = Path(destination)
        fmt = resolve_output_format(opts.format, path)

        with LogContext(extraction_id=uuid.uuid4().hex[:12], destination=str(path)):
            try:
                with path.open("w", encoding="utf-8", newline="") as sink:
                    result = self.write(source, sink, opts, fmt)
            except XLSXError:
                self._remove_partial(path)
                raise
            except OSError as e:
                self._remove_partial(path)
                raise OutputError(
                    f"Cannot write output file: {e}", destination=str(path)
                ) from e

        result.destination = str(path)
        logger.info("Conversion written", **result.to_dict())
        return result

    def write(
        self,
        source: Source,
        sink: TextIO,
        options: OptionsInput = None,
        fmt: OutputFormat | None = None,
    ) -> ConversionResult:
        """Stream a workbook into an open text sink.

        Args:
            source: Path to the workbook or a binary stream.
            sink: Text stream receiving the output.
            options: Extraction options.
            fmt: Serialization; derived from `options.format` if omitted.

        Returns:
            ConversionResult describing the output.
        """
        opts = coerce_options(options)
        fmt = fmt or resolve_output_format(opts.format)
        start_time = time.time()

        writer: TSVWriter | JSONWriter
        if fmt is OutputFormat.JSON:
            writer = JSONWriter(sink)
        else:
            writer = TSVWriter.from_options(sink, opts)

        with timed_operation(logger, f"convert_{fmt.value}") as metrics:
            with writer:
                end = writer.write_events(self.extractor.iter_events(source, opts))
            metrics.sheets_processed = end.sheets if end else 0
            metrics.rows_emitted = writer.rows_written
            metrics.bytes_written = writer.chars_written

        return ConversionResult(
            destination=getattr(sink, "name", None) or "<stream>",
            format=fmt,
            sheets=end.sheets if end else 0,
            rows=writer.rows_written,
            processing_time_seconds=time.time() - start_time,
        )

    @staticmethod
    def _remove_partial(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove partial output", path=str(path), error=str(e))
