"""Workbook-wide shared string table."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import BinaryIO

from xlsx_extract.services.xml_events import (
    EndElement,
    StartElement,
    Text,
    XMLEventSource,
)
from xlsx_extract.utils.exceptions import SharedStringIndexError
from xlsx_extract.utils.logging import get_logger

logger = get_logger(__name__)


class SharedStringTable(Sequence[str]):
    """Immutable, index-addressable sequence of resolved shared strings."""

    def __init__(self, strings: Sequence[str] = ()) -> None:
        self._strings: tuple[str, ...] = tuple(strings)

    @classmethod
    def build(
        cls,
        stream: BinaryIO | None,
        event_source: XMLEventSource,
        part_name: str | None = None,
    ) -> SharedStringTable:
        """Parse a sharedStrings part.

        Each `<si>` item contributes one entry: the text of its `<t>` element,
        or the concatenation of its rich-text runs (`<r><t>`) in document
        order. Phonetic runs (`<rPh>`) are not part of the value.

        Args:
            stream: The part stream, or None when the workbook has no
                shared strings (an empty table is returned).
            event_source: XML backend to tokenize with.
            part_name: Part name used in error details.

        Returns:
            The shared string table.
        """
        if stream is None:
            return cls()
        strings = list(cls._iter_items(event_source.iter_events(stream, part_name)))
        logger.debug("Loaded shared strings", count=len(strings))
        return cls(strings)

    @staticmethod
    def _iter_items(events: Iterator[StartElement | Text | EndElement]) -> Iterator[str]:
        in_item = False
        text_depth = 0
        phonetic_depth = 0
        parts: list[str] = []

        for event in events:
            if isinstance(event, StartElement):
                if event.name == "si":
                    in_item = True
                    parts = []
                elif in_item and event.name == "rPh":
                    phonetic_depth += 1
                elif in_item and event.name == "t":
                    text_depth += 1
            elif isinstance(event, Text):
                if text_depth and not phonetic_depth:
                    parts.append(event.data)
            elif event.name == "si":
                in_item = False
                yield "".join(parts)
            elif in_item and event.name == "rPh":
                phonetic_depth -= 1
            elif in_item and event.name == "t":
                text_depth -= 1

    def resolve(self, index: int, address: str | None = None) -> str:
        """Return the string at `index`.

        Raises:
            SharedStringIndexError: If the index is outside the table.
        """
        if not 0 <= index < len(self._strings):
            raise SharedStringIndexError(index, len(self._strings), address=address)
        return self._strings[index]

    def __getitem__(self, index):  # type: ignore[no-untyped-def]
        return self._strings[index]

    def __len__(self) -> int:
        return len(self._strings)

    def __repr__(self) -> str:
        return f"SharedStringTable(size={len(self._strings)})"
