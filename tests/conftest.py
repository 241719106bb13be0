from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path

import pytest
from openpyxl import Workbook

from tests.fixtures import DATE_STYLES, build_xlsx, sheet_xml


@pytest.fixture
def make_xlsx(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing hand-made workbooks into the test's temp dir."""
    counter = {"n": 0}

    def factory(sheets: Sequence[tuple[str, str]], **kwargs: object) -> Path:
        counter["n"] += 1
        return build_xlsx(tmp_path / f"book{counter['n']}.xlsx", sheets, **kwargs)  # type: ignore[arg-type]

    return factory


@pytest.fixture
def filtered_rows_xlsx(make_xlsx: Callable[..., Path]) -> Path:
    """One sheet with rows [A, <empty>, B, C]."""
    rows = (
        '<row r="1"><c r="A1" t="inlineStr"><is><t>A</t></is></c></row>'
        '<row r="2"/>'
        '<row r="3"><c r="A3" t="inlineStr"><is><t>B</t></is></c></row>'
        '<row r="4"><c r="A4" t="inlineStr"><is><t>C</t></is></c></row>'
    )
    return make_xlsx([("Rows", sheet_xml(rows))])


@pytest.fixture
def multi_sheet_xlsx(make_xlsx: Callable[..., Path]) -> Path:
    """Three sheets using shared strings, numbers and a date style."""
    first = sheet_xml(
        '<row r="1"><c r="A1" t="s"><v>0</v></c><c r="B1" t="s"><v>1</v></c></row>'
        '<row r="2"><c r="A2" t="s"><v>2</v></c><c r="B2"><v>42</v></c></row>'
        '<row r="3"><c r="A3" t="s"><v>3</v></c><c r="B3"><v>3.5</v></c></row>'
    )
    second = sheet_xml(
        '<row r="1"><c r="A1" s="1"><v>45306</v></c><c r="B1"><v>45306</v></c></row>'
    )
    third = sheet_xml('<row r="1"><c r="A1" t="b"><v>1</v></c></row>')
    return make_xlsx(
        [("People", first), ("Dates", second), ("Flags", third)],
        shared_strings=["<t>Name</t>", "<t>Score</t>", "<t>Alice</t>", "<t>Bob</t>"],
        styles=DATE_STYLES,
    )


@pytest.fixture
def openpyxl_xlsx(tmp_path: Path) -> Path:
    """Workbook written by openpyxl with mixed value types."""
    wb = Workbook()
    ws1 = wb.active
    ws1.title = "Data"
    ws1["A1"] = "Name"
    ws1["B1"] = "Amount"
    ws1["C1"] = "Active"
    ws1["D1"] = "Joined"
    ws1["A2"] = "Alice"
    ws1["B2"] = 123.45
    ws1["C2"] = True
    ws1["D2"] = datetime(2024, 1, 15)
    ws1["A3"] = "Bob"
    ws1["B3"] = 10
    ws1["C3"] = False
    ws1["D3"] = datetime(2023, 6, 30, 12, 30)

    ws2 = wb.create_sheet("Summary")
    ws2["A1"] = "Total"
    ws2["B1"] = 133.45

    path = tmp_path / "openpyxl.xlsx"
    wb.save(path)
    return path
