"""Incremental JSON serialization of extracted rows."""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from typing import Any, TextIO

from xlsx_extract.utils.exceptions import OutputError
from xlsx_extract.xlsx_document import (
    EndEvent,
    ErrorEvent,
    Event,
    Row,
    RowEvent,
    json_value,
)


class JSONWriter:
    """Write rows as a JSON array of value arrays, one row per line.

    Dates are written as ISO-8601 UTC strings. The array is opened with the
    first row and closed by `close()`, so only one row is held at a time.
    """

    def __init__(self, sink: TextIO, ensure_ascii: bool = False) -> None:
        self.sink = sink
        self.ensure_ascii = ensure_ascii
        self.rows_written = 0
        self.chars_written = 0
        self._closed = False

    def write_row(self, row: Row | Sequence[Any]) -> None:
        if self._closed:
            raise OutputError("Cannot write to a closed JSON writer")
        values = row.values() if isinstance(row, Row) else list(row)
        encoded = json.dumps(
            [json_value(value) for value in values], ensure_ascii=self.ensure_ascii
        )
        self._write(("[\n" if not self.rows_written else ",\n") + encoded)
        self.rows_written += 1

    def write_events(self, events: Iterable[Event]) -> EndEvent | None:
        """Consume an extraction event stream, writing every row.

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
        if self._closed:
            return
        self._write("\n]\n" if self.rows_written else "[]\n")
        self._closed = True

    def _write(self, text: str) -> None:
        try:
            self.sink.write(text)
        except OSError as e:
            raise OutputError(
                f"Failed to write JSON output: {e}",
                destination=getattr(self.sink, "name", None),
            ) from e
        self.chars_written += len(text)

    def __enter__(self) -> JSONWriter:
        return self

    def __exit__(self, exc_type: Any, *args: Any) -> None:
        if exc_type is None:
            self.close()
