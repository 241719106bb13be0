"""Dataclasses representing extracted workbook content and stream events."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from xlsx_extract.utils.exceptions import XLSXError

CellValue = str | int | float | bool | datetime | None


class CellType(str, Enum):
    """Cell type attribute (`t`) of a worksheet cell."""

    SHARED_STRING = "s"
    INLINE_STRING = "inlineStr"
    BOOLEAN = "b"
    NUMBER = "n"
    ERROR = "e"
    STRING = "str"
    DATE = "d"


@dataclass(frozen=True)
class SheetDescriptor:
    """A sheet entry of the workbook, in workbook order."""

    number: int
    name: str
    relationship_id: str
    sheet_id: str | None = None
    part_path: str = ""
    state: str = "visible"

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "name": self.name,
            "relationship_id": self.relationship_id,
            "sheet_id": self.sheet_id,
            "part_path": self.part_path,
            "state": self.state,
        }


def format_datetime(value: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with millisecond precision."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


def format_display_value(value: CellValue, float_comma: bool = False) -> str:
    """Render a resolved cell value as delimited-text display text.

    Args:
        value: Resolved cell value.
        float_comma: Use a decimal comma instead of a decimal point.

    Returns:
        The display string; empty cells render as "".
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        text = format_float(value)
        return text.replace(".", ",") if float_comma else text
    return str(value)


def format_float(value: float) -> str:
    """Render a float with the shortest round-trip digits.

    Positional notation is used for magnitudes from 1e-6 up to 1e21, and
    exponent notation without zero padding (`1e-7`, `1.5e+21`) outside it.
    """
    if not math.isfinite(value):
        return repr(value)
    if value == 0:
        return "0"
    text = repr(value)
    if "e" not in text:
        return text[:-2] if text.endswith(".0") else text
    mantissa, _, exponent = text.partition("e")
    power = int(exponent)
    if -7 < power < 21:
        return format(Decimal(text), "f")
    sign = "+" if power > 0 else "-"
    return f"{mantissa}e{sign}{abs(power)}"


def json_value(value: CellValue) -> Any:
    """Convert a resolved cell value into a JSON-serializable value."""
    if isinstance(value, datetime):
        return format_datetime(value)
    return value


@dataclass(frozen=True)
class Cell:
    """A single worksheet cell with its literal and resolved values."""

    address: str | None
    raw_value: str | None
    value: CellValue
    data_type: CellType = CellType.NUMBER
    row: int | None = None
    column: int | None = None
    style_index: int | None = None

    @property
    def is_empty(self) -> bool:
        return self.value is None

    @property
    def converted(self) -> bool:
        """Whether type resolution changed the literal value."""
        return self.value != self.raw_value

    def display_value(self, float_comma: bool = False) -> str:
        return format_display_value(self.value, float_comma)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"address": self.address, "type": self.data_type.value}
        if self.raw_value is not None:
            result["raw"] = self.raw_value
        if self.converted:
            result["value"] = json_value(self.value)
        return result


@dataclass(frozen=True)
class Row:
    """An ordered, possibly sparse sequence of cells.

    Column gaps are not back-filled; use `dense_values` for a dense view.
    """

    index: int | None
    cells: tuple[Cell, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.cells

    def __len__(self) -> int:
        return len(self.cells)

    def values(self) -> list[CellValue]:
        return [cell.value for cell in self.cells]

    def display_values(self, float_comma: bool = False) -> list[str]:
        return [cell.display_value(float_comma) for cell in self.cells]

    def dense_values(self, fill: Any = None) -> list[Any]:
        """Return values placed by column index, gaps filled with `fill`.

        Cells without a resolvable column follow the previous cell.
        """
        dense: list[Any] = []
        for cell in self.cells:
            column = cell.column if cell.column is not None else len(dense) + 1
            if column > len(dense):
                dense.extend([fill] * (column - 1 - len(dense)))
                dense.append(cell.value)
            else:
                dense[column - 1] = cell.value
        return dense

    def to_tsv(self, delimiter: str = "\t", float_comma: bool = False) -> str:
        return delimiter.join(self.display_values(float_comma))

    def to_json(self) -> str:
        return json.dumps([json_value(value) for value in self.values()])


# =============================================================================
# Stream events
# =============================================================================


@dataclass(frozen=True)
class SheetEvent:
    """Emitted before the rows of a selected sheet."""

    sheet: SheetDescriptor
    kind: str = field(default="sheet", init=False)


@dataclass(frozen=True)
class RowEvent:
    """One row of the current sheet."""

    sheet: SheetDescriptor
    row: Row
    kind: str = field(default="row", init=False)


@dataclass(frozen=True)
class SheetEndEvent:
    """Emitted after the last row of a sheet that streamed completely."""

    sheet: SheetDescriptor
    rows: int = 0
    kind: str = field(default="sheet-end", init=False)


@dataclass(frozen=True)
class EndEvent:
    """Terminal event of a successful extraction."""

    sheets: int = 0
    rows: int = 0
    kind: str = field(default="end", init=False)


@dataclass(frozen=True)
class ErrorEvent:
    """Terminal event of a failed extraction."""

    error: XLSXError
    kind: str = field(default="error", init=False)


Event = SheetEvent | RowEvent | SheetEndEvent | EndEvent | ErrorEvent


# =============================================================================
# Collected results
# =============================================================================


@dataclass
class ExtractedSheet:
    """A sheet together with all of its emitted rows."""

    sheet: SheetDescriptor
    rows: list[Row] = field(default_factory=list)


@dataclass
class ExtractedWorkbook:
    """All selected sheets of one extraction, in workbook order."""

    sheets: list[ExtractedSheet] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def sheet(self, name: str) -> ExtractedSheet:
        for extracted in self.sheets:
            if extracted.sheet.name == name:
                return extracted
        raise KeyError(name)
