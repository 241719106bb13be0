"""Pluggable XML event sources.

Each backend turns a binary XML stream into a forward-only sequence of
`StartElement`, `Text` and `EndElement` events in document order. Element
and attribute names are reported without their namespace prefix. The stream
is read in chunks and fed to an incremental tokenizer, so only the events of
one chunk are buffered at a time.

Two interchangeable implementations are provided:
- `SaxEventSource`: the `xml.sax` incremental reader
- `ExpatEventSource`: `xml.parsers.expat` driven directly
"""

from __future__ import annotations

import xml.sax
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, BinaryIO
from xml.parsers import expat
from xml.sax.handler import ContentHandler

from xlsx_extract.config import settings
from xlsx_extract.models import XMLParserBackend
from xlsx_extract.utils.exceptions import MalformedXMLError, TruncatedStreamError


@dataclass(frozen=True)
class StartElement:
    name: str
    attrs: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Text:
    data: str


@dataclass(frozen=True)
class EndElement:
    name: str


XMLEvent = StartElement | Text | EndElement

# tokenizer messages meaning the input stopped inside the document
_TRUNCATION_MESSAGES = frozenset(
    [
        expat.errors.XML_ERROR_NO_ELEMENTS,
        expat.errors.XML_ERROR_UNCLOSED_TOKEN,
        expat.errors.XML_ERROR_PARTIAL_CHAR,
    ]
)


def _error_message(error: Exception) -> str:
    if isinstance(error, xml.sax.SAXParseException):
        return error.getMessage()
    if isinstance(error, expat.ExpatError):
        return expat.ErrorString(error.code)
    return str(error)


def local_name(name: str) -> str:
    """Strip a namespace prefix (`x:row` -> `row`)."""
    return name.rpartition(":")[2]


def local_attrs(attrs: Any) -> dict[str, str]:
    """Build an attribute dict keyed by local name, dropping xmlns declarations."""
    result: dict[str, str] = {}
    for key, value in attrs.items():
        if key == "xmlns" or key.startswith("xmlns:"):
            continue
        result[local_name(key)] = value
    return result


class XMLEventSource(ABC):
    """Capability interface shared by all XML backends."""

    name: str = ""

    def __init__(self, chunk_size: int | None = None) -> None:
        """Initialize the event source.

        Args:
            chunk_size: Bytes read per feed; defaults to settings.read_chunk_size.
        """
        self.chunk_size = chunk_size or settings.read_chunk_size

    @abstractmethod
    def _create_parser(self, pending: deque[XMLEvent]) -> Any:
        """Create a tokenizer that appends its events to `pending`."""

    @abstractmethod
    def _feed(self, parser: Any, data: bytes) -> None:
        """Feed one chunk of markup to the tokenizer."""

    @abstractmethod
    def _close(self, parser: Any) -> None:
        """Signal end of input to the tokenizer."""

    @abstractmethod
    def _position(self, parser: Any, error: Exception) -> tuple[int | None, int | None]:
        """Return the (line, column) of a tokenizer error."""

    @property
    @abstractmethod
    def _errors(self) -> tuple[type[Exception], ...]:
        """Exception types the tokenizer raises for bad markup."""

    def iter_events(self, stream: BinaryIO, part_name: str | None = None) -> Iterator[XMLEvent]:
        """Yield the XML events of `stream` in document order.

        Args:
            stream: Binary stream positioned at the start of the document.
            part_name: Archive part name used in error details.

        Raises:
            MalformedXMLError: If the markup is not well formed.
            TruncatedStreamError: If the input ends inside the document.
        """
        part_name = part_name or getattr(stream, "name", None)
        pending: deque[XMLEvent] = deque()
        parser = self._create_parser(pending)
        received = False

        while True:
            chunk = stream.read(self.chunk_size)
            if not chunk:
                break
            received = True
            try:
                self._feed(parser, chunk)
            except self._errors as e:
                # deliver what was tokenized before the bad markup
                yield from self._drain(pending)
                line, column = self._position(parser, e)
                raise MalformedXMLError(
                    f"Malformed XML: {e}", part_name=part_name, line=line, column=column
                ) from e
            yield from self._drain(pending)

        if not received:
            raise TruncatedStreamError("Empty XML document", part_name=part_name)
        try:
            self._close(parser)
        except self._errors as e:
            yield from self._drain(pending)
            if _error_message(e) not in _TRUNCATION_MESSAGES:
                line, column = self._position(parser, e)
                raise MalformedXMLError(
                    f"Malformed XML: {e}", part_name=part_name, line=line, column=column
                ) from e
            raise TruncatedStreamError(
                f"XML document ended prematurely: {e}", part_name=part_name
            ) from e
        yield from self._drain(pending)

    @staticmethod
    def _drain(pending: deque[XMLEvent]) -> Iterator[XMLEvent]:
        while pending:
            yield pending.popleft()


# =============================================================================
# xml.sax backend
# =============================================================================


class _EventHandler(ContentHandler):
    def __init__(self, pending: deque[XMLEvent]) -> None:
        super().__init__()
        self._pending = pending

    def startElement(self, name: str, attrs: Any) -> None:  # noqa: N802
        self._pending.append(StartElement(local_name(name), local_attrs(attrs)))

    def endElement(self, name: str) -> None:  # noqa: N802
        self._pending.append(EndElement(local_name(name)))

    def characters(self, content: str) -> None:
        self._pending.append(Text(content))


class SaxEventSource(XMLEventSource):
    """Event source backed by the `xml.sax` incremental reader."""

    name = XMLParserBackend.SAX.value

    def _create_parser(self, pending: deque[XMLEvent]) -> Any:
        parser = xml.sax.make_parser()
        parser.setFeature(xml.sax.handler.feature_namespaces, False)
        parser.setFeature(xml.sax.handler.feature_external_ges, False)
        parser.setContentHandler(_EventHandler(pending))
        return parser

    def _feed(self, parser: Any, data: bytes) -> None:
        parser.feed(data)

    def _close(self, parser: Any) -> None:
        parser.close()

    def _position(self, parser: Any, error: Exception) -> tuple[int | None, int | None]:
        if isinstance(error, xml.sax.SAXParseException):
            return error.getLineNumber(), error.getColumnNumber()
        return None, None

    @property
    def _errors(self) -> tuple[type[Exception], ...]:
        return (xml.sax.SAXException,)


# =============================================================================
# expat backend
# =============================================================================


class ExpatEventSource(XMLEventSource):
    """Event source driving `xml.parsers.expat` directly."""

    name = XMLParserBackend.EXPAT.value

    def _create_parser(self, pending: deque[XMLEvent]) -> Any:
        parser = expat.ParserCreate()
        parser.buffer_text = True
        # expat >= 2.6 may hold back complete tokens between feeds
        if hasattr(parser, "SetReparseDeferralEnabled"):
            parser.SetReparseDeferralEnabled(False)

        def start_element(name: str, attrs: dict[str, str]) -> None:
            pending.append(StartElement(local_name(name), local_attrs(attrs)))

        def end_element(name: str) -> None:
            pending.append(EndElement(local_name(name)))

        def character_data(data: str) -> None:
            pending.append(Text(data))

        parser.StartElementHandler = start_element
        parser.EndElementHandler = end_element
        parser.CharacterDataHandler = character_data
        return parser

    def _feed(self, parser: Any, data: bytes) -> None:
        parser.Parse(data, False)

    def _close(self, parser: Any) -> None:
        parser.Parse(b"", True)

    def _position(self, parser: Any, error: Exception) -> tuple[int | None, int | None]:
        if isinstance(error, expat.ExpatError):
            return error.lineno, error.offset
        return None, None

    @property
    def _errors(self) -> tuple[type[Exception], ...]:
        return (expat.ExpatError,)


_BACKENDS: dict[XMLParserBackend, type[XMLEventSource]] = {
    XMLParserBackend.SAX: SaxEventSource,
    XMLParserBackend.EXPAT: ExpatEventSource,
}


def get_event_source(
    backend: XMLParserBackend | str | None = None, chunk_size: int | None = None
) -> XMLEventSource:
    """Create the event source for `backend` (default from settings)."""
    key = XMLParserBackend(backend or settings.xml_parser)
    return _BACKENDS[key](chunk_size=chunk_size)
