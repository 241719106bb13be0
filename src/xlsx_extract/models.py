"""Pydantic models for extraction options."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from xlsx_extract.config import settings


class OutputFormat(str, Enum):
    """Shape of the row payload handed to structured consumers."""

    OBJ = "obj"
    ARRAY = "array"
    JSON = "json"
    TSV = "tsv"


class XMLParserBackend(str, Enum):
    """Available XML event backends."""

    SAX = "sax"
    EXPAT = "expat"


class SheetSelector(str, Enum):
    """Selector families; exactly one determines the active sheet set."""

    ALL = "sheet_all"
    NUMBER = "sheet_nr"
    NAME = "sheet_name"
    RELATIONSHIP_ID = "sheet_id"


class ConvertValues(BaseModel):
    """Per-type switches for value conversion.

    A disabled conversion keeps the literal cell text as the value.
    """

    model_config = ConfigDict(frozen=True)

    ints: bool = True
    floats: bool = True
    dates: bool = True
    bools: bool = True


class ExtractionOptions(BaseModel):
    """Options controlling sheet selection, row filtering and output shape."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sheet_all: bool = False
    sheet_nr: int | None = Field(default=None, ge=1, description="1-based sheet ordinal")
    sheet_name: str | None = Field(default=None, description="Sheet display name")
    sheet_id: str | None = Field(
        default=None, description="Relationship id of the sheet (e.g. rId1)"
    )

    ignore_header: int = Field(
        default=0, ge=0, description="Rows dropped from the start of each sheet"
    )
    include_empty_rows: bool = Field(
        default=False, description="Keep rows that contain no cells"
    )

    format: OutputFormat = OutputFormat.OBJ
    parser: XMLParserBackend = Field(
        default_factory=lambda: XMLParserBackend(settings.xml_parser)
    )

    tsv_delimiter: str = Field(default_factory=lambda: settings.tsv_delimiter)
    tsv_endofline: str = Field(default_factory=lambda: settings.tsv_endofline)
    tsv_float_comma: bool = False

    date1904: bool = Field(
        default=False, description="Interpret date serials in the 1904 date system"
    )
    convert_values: ConvertValues = Field(default_factory=ConvertValues)
    round_floats: bool = Field(
        default=True, description="Round floats to 15 significant digits"
    )

    @field_validator("tsv_delimiter", "tsv_endofline")
    @classmethod
    def validate_separator(cls, v: str) -> str:
        if not v:
            raise ValueError("TSV delimiter and line terminator must be non-empty")
        return v

    @field_validator("sheet_name", "sheet_id")
    @classmethod
    def validate_selector_text(cls, v: str | None) -> str | None:
        if v is not None and not v:
            raise ValueError("Sheet name and sheet id must be non-empty")
        return v

    @model_validator(mode="after")
    def validate_single_selector(self) -> "ExtractionOptions":
        """Validate at most one selector family is requested."""
        requested = self.requested_selectors()
        if len(requested) > 1:
            names = ", ".join(selector.value for selector in requested)
            raise ValueError(f"Sheet selectors are mutually exclusive, got: {names}")
        return self

    def requested_selectors(self) -> list[SheetSelector]:
        """List the selector families that were explicitly set."""
        requested = []
        if self.sheet_all:
            requested.append(SheetSelector.ALL)
        if self.sheet_nr is not None:
            requested.append(SheetSelector.NUMBER)
        if self.sheet_name is not None:
            requested.append(SheetSelector.NAME)
        if self.sheet_id is not None:
            requested.append(SheetSelector.RELATIONSHIP_ID)
        return requested

    @property
    def selector(self) -> tuple[SheetSelector, Any]:
        """Return the active selector family and its value.

        With no selector given the first sheet is selected.
        """
        if self.sheet_all:
            return SheetSelector.ALL, True
        if self.sheet_name is not None:
            return SheetSelector.NAME, self.sheet_name
        if self.sheet_id is not None:
            return SheetSelector.RELATIONSHIP_ID, self.sheet_id
        return SheetSelector.NUMBER, self.sheet_nr if self.sheet_nr is not None else 1
