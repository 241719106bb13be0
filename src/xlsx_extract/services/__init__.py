"""Services for streaming xlsx extraction."""

from xlsx_extract.services.archive import XLSXArchive
from xlsx_extract.services.extractor import XLSXExtractor
from xlsx_extract.services.number_formats import DateFormatSet
from xlsx_extract.services.shared_strings import SharedStringTable
from xlsx_extract.services.workbook_index import WorkbookIndex
from xlsx_extract.services.worksheet_parser import WorksheetParser
from xlsx_extract.services.xml_events import get_event_source

__all__ = [
    "DateFormatSet",
    "SharedStringTable",
    "WorkbookIndex",
    "WorksheetParser",
    "XLSXArchive",
    "XLSXExtractor",
    "get_event_source",
]
