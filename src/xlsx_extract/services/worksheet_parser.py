"""Streaming worksheet parser.

Turns the XML events of one worksheet part into `Row` objects, one row at a
time. The parser is a three-state machine:

    OUTSIDE_ROW --<row>--> IN_ROW --<c>--> IN_CELL
    OUTSIDE_ROW <--</row>-- IN_ROW <--</c>-- IN_CELL

Cell values are resolved when the cell closes, using the shared string table
and the set of date styles of the workbook.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import BinaryIO

from openpyxl.utils.cell import column_index_from_string, coordinate_from_string
from openpyxl.utils.datetime import MAC_EPOCH, WINDOWS_EPOCH, from_excel
from openpyxl.utils.exceptions import CellCoordinatesException

from xlsx_extract.models import ConvertValues, ExtractionOptions
from xlsx_extract.services.number_formats import DateFormatSet
from xlsx_extract.services.shared_strings import SharedStringTable
from xlsx_extract.services.xml_events import (
    StartElement,
    Text,
    XMLEventSource,
    get_event_source,
)
from xlsx_extract.utils.exceptions import (
    CellValueError,
    InvalidTransitionError,
    StreamingError,
    TruncatedStreamError,
)
from xlsx_extract.utils.logging import get_logger
from xlsx_extract.xlsx_document import Cell, CellType, CellValue, Row

logger = get_logger(__name__)

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")


class ParserState(str, Enum):
    OUTSIDE_ROW = "OutsideRow"
    IN_ROW = "InRow"
    IN_CELL = "InCell"


def serial_to_datetime(serial: float, date1904: bool = False) -> datetime:
    """Convert a spreadsheet date serial to a naive datetime.

    In the 1900 system the phantom 1900-02-29 (serial 60) collapses onto
    1900-02-28, which keeps later serials aligned. Time-only serials (below 1) are
    anchored on the epoch date.
    """
    epoch = MAC_EPOCH if date1904 else WINDOWS_EPOCH
    converted = from_excel(serial, epoch=epoch)
    if isinstance(converted, time):
        return datetime.combine(epoch.date(), converted)
    if isinstance(converted, date) and not isinstance(converted, datetime):
        return datetime.combine(converted, time())
    return converted


@dataclass(slots=True)
class _CellBuffer:
    """Attributes and text of the cell being parsed."""

    address: str | None
    cell_type: str | None
    style_index: int | None
    value_parts: list[str] = field(default_factory=list)
    inline_parts: list[str] = field(default_factory=list)
    has_value: bool = False
    has_inline: bool = False


class WorksheetParser:
    """Parse worksheet parts into rows of resolved cells.

    One parser can be reused across sheets of the same workbook; the lookup
    tables it holds are read-only.
    """

    def __init__(
        self,
        shared_strings: SharedStringTable | None = None,
        date_formats: DateFormatSet | None = None,
        options: ExtractionOptions | None = None,
        event_source: XMLEventSource | None = None,
        date1904: bool = False,
    ) -> None:
        """Initialize the parser.

        Args:
            shared_strings: Shared string table of the workbook.
            date_formats: Date styles of the workbook.
            options: Extraction options (conversion switches, rounding).
            event_source: XML backend; defaults to the one named in options.
            date1904: Whether the workbook uses the 1904 date system.
        """
        self.options = options or ExtractionOptions()
        self.shared_strings = shared_strings or SharedStringTable()
        self.date_formats = date_formats or DateFormatSet()
        self.event_source = event_source or get_event_source(self.options.parser)
        self.date1904 = date1904 or self.options.date1904

    @property
    def convert(self) -> ConvertValues:
        return self.options.convert_values

    def iter_rows(self, stream: BinaryIO, part_name: str | None = None) -> Iterator[Row]:
        """Yield the rows of a worksheet part in document order.

        The generator is forward-only; rows are yielded as soon as their
        closing tag is seen.

        Raises:
            InvalidTransitionError: On a `<c>` outside a row or a nested `<row>`.
            TruncatedStreamError: If the part ends inside a row or cell.
            SharedStringIndexError: On a shared string index outside the table.
            CellValueError: On a literal that does not fit its cell type.
            MalformedXMLError: On markup the tokenizer rejects.
        """
        part_name = part_name or getattr(stream, "name", None)
        state = ParserState.OUTSIDE_ROW
        row_index: int | None = None
        last_row_index = 0
        last_column = 0
        cells: list[Cell] = []
        buffer: _CellBuffer | None = None
        # element currently collecting text inside a cell: "v", "t" or None
        collecting: str | None = None
        in_inline = False
        phonetic_depth = 0

        for event in self.event_source.iter_events(stream, part_name):
            if isinstance(event, Text):
                if buffer is None or phonetic_depth:
                    continue
                if collecting == "v":
                    buffer.value_parts.append(event.data)
                elif collecting == "t":
                    buffer.inline_parts.append(event.data)
                continue

            name = event.name
            if isinstance(event, StartElement):
                if name == "row":
                    if state is not ParserState.OUTSIDE_ROW:
                        raise InvalidTransitionError(name, state.value, part_name)
                    state = ParserState.IN_ROW
                    row_index = _to_int(event.attrs.get("r"))
                    if row_index is None:
                        row_index = last_row_index + 1
                    last_column = 0
                    cells = []
                elif name == "c":
                    if state is not ParserState.IN_ROW:
                        raise InvalidTransitionError(name, state.value, part_name)
                    state = ParserState.IN_CELL
                    buffer = _CellBuffer(
                        event.attrs.get("r"),
                        event.attrs.get("t"),
                        _to_int(event.attrs.get("s")),
                    )
                elif state is ParserState.IN_CELL and buffer is not None:
                    if name == "v":
                        collecting = "v"
                        buffer.has_value = True
                    elif name == "is":
                        in_inline = True
                        buffer.has_inline = True
                    elif name == "rPh":
                        phonetic_depth += 1
                    elif name == "t" and in_inline:
                        collecting = "t"
                continue

            # EndElement
            if name == "c" and state is ParserState.IN_CELL and buffer is not None:
                cell = self._build_cell(buffer, row_index, last_column, part_name)
                last_column = cell.column or last_column + 1
                cells.append(cell)
                buffer = None
                collecting = None
                in_inline = False
                phonetic_depth = 0
                state = ParserState.IN_ROW
            elif name == "row" and state is ParserState.IN_ROW:
                state = ParserState.OUTSIDE_ROW
                last_row_index = row_index or last_row_index + 1
                yield Row(index=row_index, cells=tuple(cells))
                cells = []
            elif state is ParserState.IN_CELL:
                if name in ("v", "t"):
                    collecting = None
                elif name == "is":
                    in_inline = False
                elif name == "rPh":
                    phonetic_depth = max(phonetic_depth - 1, 0)

        if state is not ParserState.OUTSIDE_ROW:
            raise TruncatedStreamError(
                f"Worksheet ended in state {state.value}",
                part_name=part_name,
                state=state.value,
            )

    # ------------------------------------------------------------------ #
    # Cell resolution
    # ------------------------------------------------------------------ #

    def _build_cell(
        self,
        buffer: _CellBuffer,
        row_index: int | None,
        last_column: int,
        part_name: str | None,
    ) -> Cell:
        row, column = _split_address(buffer.address)
        if row is None:
            row = row_index
        if column is None:
            column = last_column + 1

        try:
            data_type = CellType(buffer.cell_type or CellType.NUMBER.value)
        except ValueError as e:
            raise CellValueError(
                f"Unknown cell type {buffer.cell_type!r}",
                address=buffer.address,
                details={"part_name": part_name} if part_name else None,
            ) from e

        if data_type is CellType.INLINE_STRING:
            raw = "".join(buffer.inline_parts) if buffer.has_inline else None
        else:
            raw = "".join(buffer.value_parts) if buffer.has_value else None

        try:
            value = self.resolve_value(data_type, raw, buffer.style_index, buffer.address)
        except StreamingError as e:
            if part_name and e.part_name is None:
                e.part_name = part_name
                e.details.setdefault("part_name", part_name)
            raise

        return Cell(
            address=buffer.address,
            raw_value=raw,
            value=value,
            data_type=data_type,
            row=row,
            column=column,
            style_index=buffer.style_index,
        )

    def resolve_value(
        self,
        data_type: CellType,
        raw: str | None,
        style_index: int | None = None,
        address: str | None = None,
    ) -> CellValue:
        """Resolve the literal of a cell into its typed value.

        Args:
            data_type: Value of the cell's `t` attribute.
            raw: Literal text of `<v>` (or the inline string), None if absent.
            style_index: Value of the cell's `s` attribute.
            address: Cell reference, for error details.

        Returns:
            The typed value; None for an empty cell.
        """
        if raw is None:
            return None

        if data_type is CellType.SHARED_STRING:
            if not _INTEGER_RE.match(raw.strip()):
                raise CellValueError(
                    f"Shared string index is not an integer: {raw!r}",
                    raw_value=raw,
                    address=address,
                )
            return self.shared_strings.resolve(int(raw), address=address)

        if data_type is CellType.BOOLEAN:
            return raw.strip() == "1" if self.convert.bools else raw

        if data_type is CellType.DATE:
            if not self.convert.dates:
                return raw
            try:
                return datetime.fromisoformat(raw.strip())
            except ValueError as e:
                raise CellValueError(
                    f"Invalid ISO-8601 date: {raw!r}", raw_value=raw, address=address
                ) from e

        if data_type is CellType.NUMBER:
            return self._resolve_number(raw, style_index, address)

        # inline strings, formula strings and error codes keep their text
        return raw

    def _resolve_number(
        self, raw: str, style_index: int | None, address: str | None
    ) -> CellValue:
        literal = raw.strip()
        if not literal:
            return None
        if not _NUMBER_RE.match(literal):
            raise CellValueError(
                f"Invalid numeric literal: {raw!r}", raw_value=raw, address=address
            )

        if self.convert.dates and self.date_formats.is_date(style_index):
            try:
                return serial_to_datetime(float(literal), self.date1904)
            except (OverflowError, ValueError) as e:
                raise CellValueError(
                    f"Date serial out of range: {raw!r}", raw_value=raw, address=address
                ) from e

        if _INTEGER_RE.match(literal):
            return int(literal) if self.convert.ints else raw

        if not self.convert.floats:
            return raw
        number = float(literal)
        if self.options.round_floats:
            number = float(f"{number:.15g}")
        return number


def _to_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _split_address(address: str | None) -> tuple[int | None, int | None]:
    """Split an `A1` reference into 1-based (row, column)."""
    if not address:
        return None, None
    try:
        column_letter, row = coordinate_from_string(address)
        return row, column_index_from_string(column_letter)
    except (CellCoordinatesException, ValueError):
        logger.debug("Unparsable cell reference", address=address)
        return None, None
