"""Tests for the pluggable XML event backends."""

from __future__ import annotations

import io

import pytest

from xlsx_extract.models import XMLParserBackend
from xlsx_extract.services.xml_events import (
    EndElement,
    ExpatEventSource,
    SaxEventSource,
    StartElement,
    Text,
    get_event_source,
    local_attrs,
    local_name,
)
from xlsx_extract.utils.exceptions import MalformedXMLError, TruncatedStreamError

DOC = (
    b'<?xml version="1.0" encoding="UTF-8"?>'
    b'<x:root xmlns:x="urn:x" xmlns:r="urn:r"><x:item r:id="rId1" n="1">'
    b"caf\xc3\xa9</x:item><x:empty/></x:root>"
)


def _collect(source, data: bytes) -> list:
    events = list(source.iter_events(io.BytesIO(data), "part.xml"))
    # adjacent text events may be split differently per backend
    merged: list = []
    for event in events:
        if isinstance(event, Text) and merged and isinstance(merged[-1], Text):
            merged[-1] = Text(merged[-1].data + event.data)
        else:
            merged.append(event)
    return merged


@pytest.fixture(params=[XMLParserBackend.SAX, XMLParserBackend.EXPAT])
def event_source(request):
    # tiny chunks exercise the incremental feed
    return get_event_source(request.param, chunk_size=7)


class TestNames:
    def test_local_name(self) -> None:
        assert local_name("x:row") == "row"
        assert local_name("row") == "row"

    def test_local_attrs_drop_namespace_declarations(self) -> None:
        attrs = {"xmlns": "urn:a", "xmlns:r": "urn:r", "r:id": "rId1", "name": "S"}
        assert local_attrs(attrs) == {"id": "rId1", "name": "S"}


class TestEventSources:
    def test_factory(self) -> None:
        assert isinstance(get_event_source("sax"), SaxEventSource)
        assert isinstance(get_event_source(XMLParserBackend.EXPAT), ExpatEventSource)

    def test_chunk_size_default_from_settings(self) -> None:
        assert get_event_source("expat").chunk_size >= 1024

    def test_event_sequence(self, event_source) -> None:
        assert _collect(event_source, DOC) == [
            StartElement("root", {}),
            StartElement("item", {"id": "rId1", "n": "1"}),
            Text("café"),
            EndElement("item"),
            StartElement("empty", {}),
            EndElement("empty"),
            EndElement("root"),
        ]

    def test_backends_agree(self) -> None:
        sax = _collect(get_event_source("sax", chunk_size=3), DOC)
        expat = _collect(get_event_source("expat", chunk_size=5), DOC)
        assert sax == expat

    def test_malformed_markup(self, event_source) -> None:
        with pytest.raises(MalformedXMLError) as exc_info:
            list(event_source.iter_events(io.BytesIO(b"<a><b></a>"), "bad.xml"))
        assert exc_info.value.part_name == "bad.xml"

    def test_truncated_document(self, event_source) -> None:
        with pytest.raises(TruncatedStreamError):
            list(event_source.iter_events(io.BytesIO(b"<a><b>text"), "cut.xml"))

    def test_empty_document(self, event_source) -> None:
        with pytest.raises(TruncatedStreamError, match="Empty"):
            list(event_source.iter_events(io.BytesIO(b""), "empty.xml"))

    def test_events_before_error_are_delivered(self) -> None:
        """Events tokenized before bad markup reach the consumer first."""
        source = get_event_source("expat", chunk_size=1024)
        received = []
        with pytest.raises(MalformedXMLError):
            for event in source.iter_events(io.BytesIO(b"<a><b/><c></a>")):
                received.append(event)
        assert StartElement("b", {}) in received
