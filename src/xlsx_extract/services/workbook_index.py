"""Ordered index of the sheets declared by a workbook part."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import BinaryIO

from xlsx_extract.services.archive import (
    DEFAULT_WORKBOOK_PART,
    ROOT_RELS_PART,
    XLSXArchive,
    rels_part_for,
    resolve_target,
)
from xlsx_extract.services.xml_events import StartElement, XMLEventSource
from xlsx_extract.utils.exceptions import MalformedWorkbookError, MissingPartError
from xlsx_extract.utils.logging import get_logger
from xlsx_extract.xlsx_document import SheetDescriptor

logger = get_logger(__name__)

OFFICE_DOCUMENT_REL = "officeDocument"
SHARED_STRINGS_REL = "sharedStrings"
STYLES_REL = "styles"
WORKSHEET_REL = "worksheet"


@dataclass(frozen=True)
class Relationship:
    """One `<Relationship>` entry of a relationships part."""

    id: str
    type: str
    target: str
    external: bool = False

    @property
    def kind(self) -> str:
        """Last path segment of the relationship type URI."""
        return self.type.rstrip("/").rpartition("/")[2]


def parse_relationships(
    stream: BinaryIO | None, event_source: XMLEventSource, part_name: str | None = None
) -> dict[str, Relationship]:
    """Parse a relationships part into a mapping of id to relationship."""
    relationships: dict[str, Relationship] = {}
    if stream is None:
        return relationships
    for event in event_source.iter_events(stream, part_name):
        if isinstance(event, StartElement) and event.name == "Relationship":
            rel_id = event.attrs.get("Id")
            target = event.attrs.get("Target")
            if not rel_id or target is None:
                continue
            relationships[rel_id] = Relationship(
                id=rel_id,
                type=event.attrs.get("Type", ""),
                target=target,
                external=event.attrs.get("TargetMode", "").lower() == "external",
            )
    return relationships


class WorkbookIndex(Sequence[SheetDescriptor]):
    """Sheets of a workbook in declaration order, with lookup helpers.

    The sheet number is the 1-based position in the workbook's sheet list,
    independent of the internal `sheetId` attribute.
    """

    def __init__(
        self,
        sheets: Sequence[SheetDescriptor],
        date1904: bool = False,
        workbook_part: str = DEFAULT_WORKBOOK_PART,
        shared_strings_part: str | None = None,
        styles_part: str | None = None,
    ) -> None:
        self._sheets = tuple(sheets)
        self.date1904 = date1904
        self.workbook_part = workbook_part
        self.shared_strings_part = shared_strings_part
        self.styles_part = styles_part

    @classmethod
    def build(
        cls,
        workbook_stream: BinaryIO,
        rels_stream: BinaryIO | None,
        event_source: XMLEventSource,
        workbook_part: str = DEFAULT_WORKBOOK_PART,
    ) -> WorkbookIndex:
        """Parse a workbook part and its relationships into an index.

        Args:
            workbook_stream: Stream of the workbook part.
            rels_stream: Stream of the workbook relationships part.
            event_source: XML backend to tokenize with.
            workbook_part: Part name of the workbook, used to resolve targets.

        Raises:
            MalformedWorkbookError: If the workbook declares no sheet list, or
                a sheet entry cannot be resolved to a worksheet part.
        """
        relationships = parse_relationships(
            rels_stream, event_source, rels_part_for(workbook_part)
        )

        entries: list[dict[str, str]] = []
        date1904 = False
        saw_sheet_list = False
        for event in event_source.iter_events(workbook_stream, workbook_part):
            if not isinstance(event, StartElement):
                continue
            if event.name == "sheets":
                saw_sheet_list = True
            elif event.name == "sheet":
                entries.append(event.attrs)
            elif event.name == "workbookPr":
                date1904 = event.attrs.get("date1904", "").lower() in ("1", "true")

        if not saw_sheet_list:
            raise MalformedWorkbookError(
                "Workbook part has no sheet list", details={"part_name": workbook_part}
            )

        sheets = [
            cls._describe(number, attrs, relationships, workbook_part)
            for number, attrs in enumerate(entries, start=1)
        ]

        def related_part(kind: str) -> str | None:
            for rel in relationships.values():
                if rel.kind == kind and not rel.external:
                    return resolve_target(workbook_part, rel.target)
            return None

        index = cls(
            sheets,
            date1904=date1904,
            workbook_part=workbook_part,
            shared_strings_part=related_part(SHARED_STRINGS_REL),
            styles_part=related_part(STYLES_REL),
        )
        logger.debug(
            "Indexed workbook",
            sheets=len(sheets),
            names=[sheet.name for sheet in sheets],
            date1904=date1904,
        )
        return index

    @classmethod
    def load(cls, archive: XLSXArchive, event_source: XMLEventSource) -> WorkbookIndex:
        """Locate the workbook part inside `archive` and index it.

        The workbook part is found through the package relationships and
        falls back to the conventional `xl/workbook.xml`.

        Raises:
            MissingPartError: If the workbook part does not exist.
            MalformedWorkbookError: See `build`.
        """
        workbook_part = DEFAULT_WORKBOOK_PART
        root_rels = archive.open_optional_part(ROOT_RELS_PART)
        if root_rels is not None:
            with root_rels:
                package_rels = parse_relationships(root_rels, event_source, ROOT_RELS_PART)
            for rel in package_rels.values():
                if rel.kind == OFFICE_DOCUMENT_REL and not rel.external:
                    candidate = resolve_target("", rel.target)
                    if archive.has_part(candidate):
                        workbook_part = candidate
                    break

        if not archive.has_part(workbook_part):
            raise MissingPartError(workbook_part, archive_path=archive.source_name)

        rels_stream = archive.open_optional_part(rels_part_for(workbook_part))
        try:
            with archive.open_part(workbook_part) as workbook_stream:
                return cls.build(workbook_stream, rels_stream, event_source, workbook_part)
        finally:
            if rels_stream is not None:
                rels_stream.close()

    @staticmethod
    def _describe(
        number: int,
        attrs: dict[str, str],
        relationships: dict[str, Relationship],
        workbook_part: str,
    ) -> SheetDescriptor:
        name = attrs.get("name")
        rel_id = attrs.get("id")
        if not name:
            raise MalformedWorkbookError(
                f"Sheet entry {number} has no name", details={"sheet_number": number}
            )
        if not rel_id:
            raise MalformedWorkbookError(
                f"Sheet '{name}' has no relationship id", sheet_name=name
            )
        rel = relationships.get(rel_id)
        if rel is None or rel.external:
            raise MalformedWorkbookError(
                f"Sheet '{name}' references unknown relationship {rel_id}",
                sheet_name=name,
                details={"relationship_id": rel_id},
            )
        return SheetDescriptor(
            number=number,
            name=name,
            relationship_id=rel_id,
            sheet_id=attrs.get("sheetId"),
            part_path=resolve_target(workbook_part, rel.target),
            state=attrs.get("state", "visible"),
        )

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def by_number(self, number: int) -> SheetDescriptor | None:
        if 1 <= number <= len(self._sheets):
            return self._sheets[number - 1]
        return None

    def by_name(self, name: str) -> SheetDescriptor | None:
        for sheet in self._sheets:
            if sheet.name == name:
                return sheet
        return None

    def by_relationship_id(self, relationship_id: str) -> SheetDescriptor | None:
        for sheet in self._sheets:
            if sheet.relationship_id == relationship_id:
                return sheet
        return None

    @property
    def names(self) -> list[str]:
        return [sheet.name for sheet in self._sheets]

    def __getitem__(self, index):  # type: ignore[no-untyped-def]
        return self._sheets[index]

    def __len__(self) -> int:
        return len(self._sheets)

    def __iter__(self) -> Iterator[SheetDescriptor]:
        return iter(self._sheets)
