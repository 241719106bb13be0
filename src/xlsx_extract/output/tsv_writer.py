"""Delimited-text serialization of extracted rows."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, TextIO

from xlsx_extract.models import ExtractionOptions
from xlsx_extract.utils.exceptions import OutputError
from xlsx_extract.xlsx_document import (
    EndEvent,
    ErrorEvent,
    Event,
    Row,
    RowEvent,
    format_display_value,
)


class TSVWriter:
    """Write rows as delimited text lines to a text sink.

    Rows are joined by the line terminator and exactly one terminator follows
    the last row, written by `close()`. A writer that received no rows emits
    only the terminator. The sink itself is left open.

    Usage:
        with open("out.tsv", "w", encoding="utf-8", newline="") as fh:
            with TSVWriter(fh) as writer:
                writer.write_events(extractor.iter_events("book.xlsx"))
    """

    def __init__(
        self,
        sink: TextIO,
        delimiter: str = "\t",
        endofline: str = "\n",
        float_comma: bool = False,
    ) -> None:
        if not delimiter or not endofline:
            raise ValueError("delimiter and endofline must be non-empty")
        self.sink = sink
        self.delimiter = delimiter
        self.endofline = endofline
        self.float_comma = float_comma
        self.rows_written = 0
        self.chars_written = 0
        self._closed = False

    @classmethod
    def from_options(cls, sink: TextIO, options: ExtractionOptions) -> TSVWriter:
        return cls(
            sink,
            delimiter=options.tsv_delimiter,
            endofline=options.tsv_endofline,
            float_comma=options.tsv_float_comma,
        )

    def format_row(self, row: Row | Sequence[Any]) -> str:
        """Render one row as a delimited line without terminator."""
        if isinstance(row, Row):
            return row.to_tsv(self.delimiter, self.float_comma)
        return self.delimiter.join(
            format_display_value(value, self.float_comma) for value in row
        )

    def write_row(self, row: Row | Sequence[Any]) -> None:
        """Write one row; the terminator of the previous row is written first."""
        if self._closed:
            raise OutputError("Cannot write to a closed TSV writer")
        line = self.format_row(row)
        if self.rows_written:
            line = self.endofline + line
        self._write(line)
        self.rows_written += 1

    def write_events(self, events: Iterable[Event]) -> EndEvent | None:
        """Consume an extraction event stream, writing every row.

        Returns:
            The terminal `EndEvent`, or None if the stream had none.

        Raises:
            XLSXError: The error carried by an `ErrorEvent`.
        """
        for event in events:
            if isinstance(event, RowEvent):
                self.write_row(event.row)
            elif isinstance(event, ErrorEvent):
                raise event.error
            elif isinstance(event, EndEvent):
                return event
        return None

    def close(self) -> None:
        """Write the final line terminator. Further calls do nothing."""
        if self._closed:
            return
        self._write(self.endofline)
        self._closed = True

    def _write(self, text: str) -> None:
        try:
            self.sink.write(text)
        except OSError as e:
            raise OutputError(
                f"Failed to write delimited output: {e}",
                destination=getattr(self.sink, "name", None),
            ) from e
        self.chars_written += len(text)

    def __enter__(self) -> TSVWriter:
        return self

    def __exit__(self, exc_type: Any, *args: Any) -> None:
        # an aborted stream gets no terminator
        if exc_type is None:
            self.close()
