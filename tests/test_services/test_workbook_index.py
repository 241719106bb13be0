"""Tests for the workbook index."""

from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path

import pytest

from tests.fixtures import MAIN_NS, PKG_REL_NS, REL_NS, sheet_xml
from xlsx_extract.services.archive import XLSXArchive
from xlsx_extract.services.workbook_index import WorkbookIndex, parse_relationships
from xlsx_extract.services.xml_events import get_event_source
from xlsx_extract.utils.exceptions import MalformedWorkbookError, MissingPartError

WORKBOOK = (
    f'<workbook xmlns="{MAIN_NS}" xmlns:r="{REL_NS}"><workbookPr date1904="true"/>'
    "<sheets>"
    '<sheet name="Zeta" sheetId="7" r:id="rId3"/>'
    '<sheet name="Alpha" sheetId="2" r:id="rId1" state="hidden"/>'
    "</sheets></workbook>"
)
RELS = (
    f'<Relationships xmlns="{PKG_REL_NS}">'
    f'<Relationship Id="rId1" Type="{REL_NS}/worksheet" Target="worksheets/sheet1.xml"/>'
    f'<Relationship Id="rId3" Type="{REL_NS}/worksheet" Target="/xl/worksheets/sheet9.xml"/>'
    f'<Relationship Id="rId4" Type="{REL_NS}/sharedStrings" Target="sharedStrings.xml"/>'
    f'<Relationship Id="rId5" Type="{REL_NS}/styles" Target="styles.xml"/>'
    f'<Relationship Id="rId6" Type="{REL_NS}/hyperlink" Target="http://example.com" TargetMode="External"/>'
    "</Relationships>"
)


def _build(workbook: str = WORKBOOK, rels: str | None = RELS, backend: str = "sax") -> WorkbookIndex:
    source = get_event_source(backend)
    rels_stream = io.BytesIO(rels.encode()) if rels is not None else None
    return WorkbookIndex.build(io.BytesIO(workbook.encode()), rels_stream, source)


@pytest.mark.parametrize("backend", ["sax", "expat"])
class TestBuild:
    def test_order_and_numbers(self, backend: str) -> None:
        """Sheet numbers follow workbook order, not sheetId."""
        index = _build(backend=backend)
        assert index.names == ["Zeta", "Alpha"]
        assert [sheet.number for sheet in index] == [1, 2]
        assert index[0].sheet_id == "7"

    def test_targets_resolved(self, backend: str) -> None:
        index = _build(backend=backend)
        assert index[0].part_path == "xl/worksheets/sheet9.xml"
        assert index[1].part_path == "xl/worksheets/sheet1.xml"
        assert index.shared_strings_part == "xl/sharedStrings.xml"
        assert index.styles_part == "xl/styles.xml"

    def test_flags(self, backend: str) -> None:
        index = _build(backend=backend)
        assert index.date1904 is True
        assert index[1].state == "hidden"


class TestLookup:
    def test_by_number(self) -> None:
        index = _build()
        assert index.by_number(2).name == "Alpha"
        assert index.by_number(0) is None
        assert index.by_number(3) is None

    def test_by_name(self) -> None:
        index = _build()
        assert index.by_name("Zeta").relationship_id == "rId3"
        assert index.by_name("zeta") is None

    def test_by_relationship_id(self) -> None:
        index = _build()
        assert index.by_relationship_id("rId1").name == "Alpha"
        assert index.by_relationship_id("rId9") is None


class TestMalformed:
    def test_unknown_relationship(self) -> None:
        workbook = WORKBOOK.replace('r:id="rId1"', 'r:id="rId42"')
        with pytest.raises(MalformedWorkbookError) as exc_info:
            _build(workbook)
        assert exc_info.value.sheet_name == "Alpha"

    def test_missing_relationship_id(self) -> None:
        workbook = WORKBOOK.replace(' r:id="rId1"', "")
        with pytest.raises(MalformedWorkbookError, match="no relationship id"):
            _build(workbook)

    def test_missing_rels_part(self) -> None:
        with pytest.raises(MalformedWorkbookError):
            _build(rels=None)

    def test_no_sheets_element(self) -> None:
        with pytest.raises(MalformedWorkbookError, match="no sheet list"):
            _build(f'<workbook xmlns="{MAIN_NS}"><workbookPr/></workbook>')

    def test_empty_sheet_list(self) -> None:
        index = _build(f'<workbook xmlns="{MAIN_NS}"><sheets/></workbook>')
        assert len(index) == 0


class TestRelationships:
    def test_external_targets_flagged(self) -> None:
        rels = parse_relationships(io.BytesIO(RELS.encode()), get_event_source("expat"))
        assert rels["rId6"].external is True
        assert rels["rId4"].kind == "sharedStrings"

    def test_none_stream(self) -> None:
        assert parse_relationships(None, get_event_source("sax")) == {}


class TestLoad:
    def test_load_from_archive(self, make_xlsx: Callable[..., Path]) -> None:
        path = make_xlsx(
            [("One", sheet_xml("")), ("Two", sheet_xml(""))],
            shared_strings=["<t>x</t>"],
            date1904=True,
        )
        with XLSXArchive(path) as archive:
            index = WorkbookIndex.load(archive, get_event_source("sax"))

        assert index.names == ["One", "Two"]
        assert index[1].relationship_id == "rId2"
        assert index[1].part_path == "xl/worksheets/sheet2.xml"
        assert index.shared_strings_part == "xl/sharedStrings.xml"
        assert index.styles_part is None
        assert index.date1904 is True

    def test_load_without_package_rels(self, make_xlsx: Callable[..., Path]) -> None:
        """The conventional workbook location is used without _rels/.rels."""
        path = make_xlsx([("Only", sheet_xml(""))], skip_parts=["_rels/.rels"])
        with XLSXArchive(path) as archive:
            index = WorkbookIndex.load(archive, get_event_source("expat"))
        assert index.names == ["Only"]

    def test_missing_workbook_part(self, make_xlsx: Callable[..., Path]) -> None:
        path = make_xlsx([("Only", sheet_xml(""))], skip_parts=["xl/workbook.xml"])
        with XLSXArchive(path) as archive:
            with pytest.raises(MissingPartError):
                WorkbookIndex.load(archive, get_event_source("sax"))

    def test_openpyxl_workbook(self, openpyxl_xlsx: Path) -> None:
        with XLSXArchive(openpyxl_xlsx) as archive:
            index = WorkbookIndex.load(archive, get_event_source("sax"))
            # the string table is optional in openpyxl output
            has_strings = archive.has_part("xl/sharedStrings.xml")
        assert index.names == ["Data", "Summary"]
        assert [sheet.part_path for sheet in index] == [
            "xl/worksheets/sheet1.xml",
            "xl/worksheets/sheet2.xml",
        ]
        assert index.shared_strings_part == ("xl/sharedStrings.xml" if has_strings else None)
