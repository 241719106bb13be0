"""Detection of date/time cell styles from the styles part."""

from __future__ import annotations

from collections.abc import Iterable
from typing import BinaryIO

from openpyxl.styles.numbers import BUILTIN_FORMATS, is_date_format

from xlsx_extract.services.xml_events import EndElement, StartElement, XMLEventSource
from xlsx_extract.utils.logging import get_logger

logger = get_logger(__name__)

# Built-in numFmtId values that denote dates or times. 27-36 and 50-58 are
# the locale-dependent (CJK) date formats, which have no fixed format code.
BUILTIN_DATE_FORMAT_IDS: frozenset[int] = frozenset(
    [*range(14, 23), *range(27, 37), *range(45, 48), *range(50, 59)]
)


def _to_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class DateFormatSet:
    """Immutable set of style indexes whose number format is a date/time.

    A style index is the position of an `<xf>` record inside `<cellXfs>`,
    which is what a cell's `s` attribute refers to.
    """

    def __init__(
        self,
        date_styles: Iterable[int] = (),
        format_codes: dict[int, str] | None = None,
        style_format_ids: Iterable[int] = (),
    ) -> None:
        self._date_styles = frozenset(date_styles)
        self._format_codes = dict(format_codes or {})
        self._style_format_ids = tuple(style_format_ids)

    @classmethod
    def build(
        cls,
        stream: BinaryIO | None,
        event_source: XMLEventSource,
        part_name: str | None = None,
    ) -> DateFormatSet:
        """Parse a styles part into the set of date styles.

        Args:
            stream: The part stream, or None when the workbook has no styles
                part (an empty set is returned).
            event_source: XML backend to tokenize with.
            part_name: Part name used in error details.
        """
        if stream is None:
            return cls()

        custom_codes: dict[int, str] = {}
        style_format_ids: list[int] = []
        section: str | None = None

        for event in event_source.iter_events(stream, part_name):
            if isinstance(event, StartElement):
                if event.name in ("numFmts", "cellXfs", "cellStyleXfs"):
                    section = event.name
                elif event.name == "numFmt" and section == "numFmts":
                    fmt_id = _to_int(event.attrs.get("numFmtId"))
                    code = event.attrs.get("formatCode")
                    if fmt_id is not None and code is not None:
                        custom_codes[fmt_id] = code
                elif event.name == "xf" and section == "cellXfs":
                    style_format_ids.append(_to_int(event.attrs.get("numFmtId")) or 0)
            elif isinstance(event, EndElement) and event.name == section:
                section = None

        date_styles = [
            index
            for index, fmt_id in enumerate(style_format_ids)
            if cls.is_date_format_id(fmt_id, custom_codes)
        ]
        logger.debug(
            "Loaded number formats",
            styles=len(style_format_ids),
            custom_formats=len(custom_codes),
            date_styles=len(date_styles),
        )
        return cls(date_styles, custom_codes, style_format_ids)

    @staticmethod
    def is_date_format_id(fmt_id: int, custom_codes: dict[int, str]) -> bool:
        """Classify a numFmtId using custom codes first, then the built-in table."""
        code = custom_codes.get(fmt_id)
        if code is not None:
            return is_date_format(code)
        return fmt_id in BUILTIN_DATE_FORMAT_IDS

    def is_date(self, style_index: int | None) -> bool:
        return style_index is not None and style_index in self._date_styles

    def format_code(self, style_index: int | None) -> str | None:
        """Return the number format code applied by `style_index`, if known."""
        if style_index is None or not 0 <= style_index < len(self._style_format_ids):
            return None
        fmt_id = self._style_format_ids[style_index]
        return self._format_codes.get(fmt_id) or BUILTIN_FORMATS.get(fmt_id)

    def __contains__(self, style_index: object) -> bool:
        return style_index in self._date_styles

    def __len__(self) -> int:
        return len(self._date_styles)

    def __repr__(self) -> str:
        return f"DateFormatSet(date_styles={sorted(self._date_styles)})"
