"""Streaming extraction pipeline for XLSX workbooks.

Composes the archive, the workbook-wide lookup tables, sheet selection, the
worksheet parser and the row policies into one pull-based event stream:

    SheetEvent, RowEvent*, SheetEndEvent, SheetEvent, ..., EndEvent | ErrorEvent

Structural problems (missing or corrupt archive, malformed workbook, unknown
sheet, missing worksheet part, invalid options) are reported before the first
event. Streaming problems end the stream mid-sheet; rows already delivered
stay delivered and the interrupted sheet gets no SheetEndEvent.

Usage:
    extractor = XLSXExtractor()
    for event in extractor.iter_events("report.xlsx", {"sheet_all": True}):
        if isinstance(event, RowEvent):
            print(event.sheet.name, event.row.values())
"""

from __future__ import annotations

import itertools
import time
import uuid
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

import pandas as pd
from pydantic import ValidationError

from xlsx_extract.config import Settings
from xlsx_extract.config import settings as default_settings
from xlsx_extract.models import ExtractionOptions, OutputFormat, SheetSelector
from xlsx_extract.services.archive import XLSXArchive
from xlsx_extract.services.number_formats import DateFormatSet
from xlsx_extract.services.shared_strings import SharedStringTable
from xlsx_extract.services.workbook_index import WorkbookIndex
from xlsx_extract.services.worksheet_parser import WorksheetParser
from xlsx_extract.services.xml_events import XMLEventSource, get_event_source
from xlsx_extract.utils.exceptions import (
    ErrorCode,
    InvalidOptionsError,
    MissingPartError,
    SheetNotFoundError,
    XLSXError,
)
from xlsx_extract.utils.logging import get_logger
from xlsx_extract.xlsx_document import (
    EndEvent,
    ErrorEvent,
    Event,
    ExtractedSheet,
    ExtractedWorkbook,
    Row,
    RowEvent,
    SheetDescriptor,
    SheetEndEvent,
    SheetEvent,
)

logger = get_logger(__name__)

Source = str | Path | BinaryIO
OptionsInput = ExtractionOptions | Mapping[str, Any] | None


@dataclass(frozen=True)
class WorkbookContext:
    """Lookup tables shared read-only by every sheet of one extraction."""

    index: WorkbookIndex
    shared_strings: SharedStringTable
    date_formats: DateFormatSet

    @property
    def date1904(self) -> bool:
        return self.index.date1904


def coerce_options(options: OptionsInput) -> ExtractionOptions:
    """Validate user-supplied options.

    Raises:
        InvalidOptionsError: If the options fail validation.
    """
    if options is None:
        return ExtractionOptions()
    if isinstance(options, ExtractionOptions):
        return options
    try:
        return ExtractionOptions.model_validate(dict(options))
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(loc) for loc in err['loc']) or 'options'}: {err['msg']}"
            for err in e.errors()
        ]
        raise InvalidOptionsError("Invalid extraction options", errors=errors) from e


def _describe_source(source: Source) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    return getattr(source, "name", None) or "<stream>"


class XLSXExtractor:
    """Extract rows from XLSX workbooks as a stream of events."""

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the extractor.

        Args:
            settings: Settings providing read chunk size; defaults to the
                module-level settings.
        """
        self.settings = settings or default_settings

    # ------------------------------------------------------------------ #
    # Event stream
    # ------------------------------------------------------------------ #

    def iter_events(self, source: Source, options: OptionsInput = None) -> Iterator[Event]:
        """Stream the selected sheets of a workbook as events.

        Each sheet is framed by a `SheetEvent` and a `SheetEndEvent`. Exactly
        one terminal event ends the stream: an `EndEvent` on success, or an
        `ErrorEvent` carrying the `XLSXError`. Closing the generator early
        releases the archive.

        Args:
            source: Path to the workbook or a seekable binary stream.
            options: `ExtractionOptions` or a mapping of option values.

        Yields:
            SheetEvent, RowEvent, SheetEndEvent, EndEvent or ErrorEvent.
        """
        extraction_id = uuid.uuid4().hex[:12]
        source_name = _describe_source(source)
        start_time = time.time()
        sheets_emitted = 0
        rows_emitted = 0

        try:
            opts = coerce_options(options)
            with XLSXArchive(source) as archive:
                event_source = get_event_source(
                    opts.parser, chunk_size=self.settings.read_chunk_size
                )
                context = self._load_context(archive, event_source)
                selected = self.select_sheets(context.index, opts)
                for sheet in selected:
                    if not archive.has_part(sheet.part_path):
                        raise MissingPartError(
                            sheet.part_path, archive_path=archive.source_name
                        )

                logger.info(
                    "Starting extraction",
                    extraction_id=extraction_id,
                    source=source_name,
                    sheets=[sheet.name for sheet in selected],
                    parser=event_source.name,
                )

                parser = WorksheetParser(
                    shared_strings=context.shared_strings,
                    date_formats=context.date_formats,
                    options=opts,
                    event_source=event_source,
                    date1904=context.date1904,
                )

                for sheet in selected:
                    yield SheetEvent(sheet)
                    sheets_emitted += 1
                    sheet_rows = 0
                    with archive.open_part(sheet.part_path) as stream:
                        rows = self.apply_row_policies(
                            parser.iter_rows(stream, sheet.part_path), opts
                        )
                        for row in rows:
                            if self.settings.debug:
                                logger.debug(
                                    "Row emitted",
                                    extraction_id=extraction_id,
                                    sheet=sheet.name,
                                    row=row.index,
                                    cells=len(row),
                                )
                            yield RowEvent(sheet, row)
                            sheet_rows += 1
                            rows_emitted += 1
                    logger.debug(
                        "Sheet streamed",
                        extraction_id=extraction_id,
                        sheet=sheet.name,
                        rows=sheet_rows,
                    )
                    yield SheetEndEvent(sheet, rows=sheet_rows)
        except XLSXError as e:
            logger.log_extraction_result(
                source=source_name,
                success=False,
                duration_seconds=time.time() - start_time,
                sheets=sheets_emitted,
                rows=rows_emitted,
                error_code=e.error_code.value,
                extraction_id=extraction_id,
                error=e.message,
            )
            yield ErrorEvent(e)
            return
        except Exception as e:
            logger.exception(
                "Unexpected extraction error",
                extraction_id=extraction_id,
                source=source_name,
            )
            error = XLSXError(
                f"Unexpected error: {e}",
                error_code=ErrorCode.INTERNAL_ERROR,
                details={"exception_type": type(e).__name__},
            )
            yield ErrorEvent(error)
            return

        logger.log_extraction_result(
            source=source_name,
            success=True,
            duration_seconds=time.time() - start_time,
            sheets=sheets_emitted,
            rows=rows_emitted,
            extraction_id=extraction_id,
        )
        yield EndEvent(sheets=sheets_emitted, rows=rows_emitted)

    extract = iter_events

    def iter_rows(
        self, source: Source, options: OptionsInput = None
    ) -> Iterator[tuple[SheetDescriptor, Any]]:
        """Yield `(sheet, payload)` pairs, shaped by `options.format`.

        Payloads are `Row` objects (obj), value lists (array), JSON text of
        the value list (json) or one delimited line (tsv).

        Raises:
            XLSXError: The error that ended the stream.
        """
        opts = coerce_options(options)
        for event in self.iter_events(source, opts):
            if isinstance(event, RowEvent):
                yield event.sheet, self.shape_row(event.row, opts)
            elif isinstance(event, ErrorEvent):
                raise event.error

    def read(self, source: Source, options: OptionsInput = None) -> ExtractedWorkbook:
        """Collect every selected sheet and its rows in memory.

        Raises:
            XLSXError: The error that ended the stream.
        """
        workbook = ExtractedWorkbook(metadata={"source": _describe_source(source)})
        for event in self.iter_events(source, options):
            if isinstance(event, SheetEvent):
                workbook.sheets.append(ExtractedSheet(event.sheet))
            elif isinstance(event, RowEvent):
                workbook.sheets[-1].rows.append(event.row)
            elif isinstance(event, EndEvent):
                workbook.metadata["sheet_count"] = event.sheets
                workbook.metadata["row_count"] = event.rows
            elif isinstance(event, ErrorEvent):
                raise event.error
        return workbook

    def list_sheets(self, source: Source) -> list[SheetDescriptor]:
        """List the sheets of a workbook in workbook order."""
        with XLSXArchive(source) as archive:
            index = WorkbookIndex.load(archive, get_event_source())
        return list(index)

    def extract_as_dataframe(
        self,
        source: Source,
        options: OptionsInput = None,
        header: bool = True,
    ) -> pd.DataFrame:
        """Extract one worksheet as a pandas DataFrame.

        Rows are placed by column reference, so gaps become missing values.

        Args:
            source: Path to the workbook or a binary stream.
            options: Options selecting a single sheet (sheet_all is rejected).
            header: Use the first emitted row as column labels.

        Raises:
            InvalidOptionsError: If the options select every sheet.
            XLSXError: Any extraction error.
        """
        opts = coerce_options(options)
        if opts.sheet_all:
            raise InvalidOptionsError(
                "A DataFrame holds a single sheet", errors=["sheet_all: not supported"]
            )

        row_opts = opts.model_copy(update={"format": OutputFormat.OBJ})
        data = [row.dense_values() for _, row in self.iter_rows(source, row_opts)]
        width = max((len(values) for values in data), default=0)
        data = [values + [None] * (width - len(values)) for values in data]

        if header and data:
            columns = [
                str(value) if value is not None else f"column_{position}"
                for position, value in enumerate(data[0], start=1)
            ]
            return pd.DataFrame(data[1:], columns=columns)
        return pd.DataFrame(data)

    # ------------------------------------------------------------------ #
    # Pipeline stages
    # ------------------------------------------------------------------ #

    @staticmethod
    def _load_context(archive: XLSXArchive, event_source: XMLEventSource) -> WorkbookContext:
        """Index the workbook and build the lookup tables once."""
        index = WorkbookIndex.load(archive, event_source)

        shared_strings = SharedStringTable()
        if index.shared_strings_part:
            stream = archive.open_optional_part(index.shared_strings_part)
            if stream is not None:
                with stream:
                    shared_strings = SharedStringTable.build(
                        stream, event_source, index.shared_strings_part
                    )

        date_formats = DateFormatSet()
        if index.styles_part:
            stream = archive.open_optional_part(index.styles_part)
            if stream is not None:
                with stream:
                    date_formats = DateFormatSet.build(
                        stream, event_source, index.styles_part
                    )

        logger.debug(
            "Loaded workbook tables",
            sheets=len(index),
            shared_strings=len(shared_strings),
            date_styles=len(date_formats),
            date1904=index.date1904,
        )
        return WorkbookContext(index, shared_strings, date_formats)

    @staticmethod
    def select_sheets(index: WorkbookIndex, options: ExtractionOptions) -> list[SheetDescriptor]:
        """Resolve the active selector against the workbook index.

        Raises:
            SheetNotFoundError: If no sheet matches.
        """
        selector, value = options.selector
        if selector is SheetSelector.ALL:
            return list(index)

        if selector is SheetSelector.NAME:
            match = index.by_name(value)
        elif selector is SheetSelector.RELATIONSHIP_ID:
            match = index.by_relationship_id(value)
        else:
            match = index.by_number(int(value))

        if match is None:
            raise SheetNotFoundError(selector.value, value, available=index.names)
        return [match]

    @staticmethod
    def apply_row_policies(rows: Iterable[Row], options: ExtractionOptions) -> Iterator[Row]:
        """Apply empty-row filtering, then skip `ignore_header` rows."""
        if not options.include_empty_rows:
            rows = (row for row in rows if not row.is_empty)
        if options.ignore_header:
            rows = itertools.islice(rows, options.ignore_header, None)
        return iter(rows)

    @staticmethod
    def shape_row(row: Row, options: ExtractionOptions) -> Any:
        """Shape a row into the payload named by `options.format`."""
        if options.format is OutputFormat.ARRAY:
            return row.values()
        if options.format is OutputFormat.JSON:
            return row.to_json()
        if options.format is OutputFormat.TSV:
            return row.to_tsv(options.tsv_delimiter, options.tsv_float_comma)
        return row
