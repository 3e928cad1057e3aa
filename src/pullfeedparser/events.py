"""Forward-only XML event stream built on lxml's push parser.

The feed parser never sees a tree: lxml calls back into ``_EventCollector``
while chunks are fed, and the collected events are handed out one at a time
by ``iter_events``. Names are reported the way they are written in the
document (``rdf:RDF``, ``atom:link``, ``feed``), not in Clark notation.
"""

from __future__ import annotations

import logging
import re
from typing import IO, Iterator, Literal, NamedTuple, Optional, Union

from lxml import etree

from .exceptions import AttributeDecodeError, XMLDecodeError

logger = logging.getLogger(__name__)

EventKind = Literal["start", "end", "text", "eof"]

START: EventKind = "start"
END: EventKind = "end"
TEXT: EventKind = "text"
EOF: EventKind = "eof"

DEFAULT_CHUNK_SIZE = 64 * 1024

_XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"
_XML_WHITESPACE = b" \t\r\n"

_RE_XML_DECL_ENCODING = re.compile(
    r'(<\?xml[^>]*encoding=["\'])([^"\']+)(["\'][^>]*\?>)', re.IGNORECASE
)

FeedSource = Union[str, bytes, IO[bytes]]


class Attribute(NamedTuple):
    raw_key: str
    key: Optional[str]
    value: str

    def decoded_key(self) -> str:
        if self.key is None:
            raise AttributeDecodeError(
                f"No prefix bound for namespace of attribute {self.raw_key!r}"
            )
        return self.key

    def decoded_value(self) -> str:
        return self.value


class XMLEvent(NamedTuple):
    kind: EventKind
    name: str = ""
    attributes: tuple[Attribute, ...] = ()
    text: str = ""


class _EventCollector:
    """lxml parser target that records callbacks as XMLEvents."""

    def __init__(self) -> None:
        self._events: list[XMLEvent] = []
        self._text: list[str] = []
        self._bindings: list[tuple[str, str]] = [("xml", _XML_NAMESPACE)]

    def drain(self) -> list[XMLEvent]:
        events, self._events = self._events, []
        return events

    def start_ns(self, prefix: Optional[str], uri: str) -> None:
        self._bindings.append((prefix or "", uri))

    def end_ns(self, prefix: Optional[str]) -> None:
        prefix = prefix or ""
        for index in range(len(self._bindings) - 1, 0, -1):
            if self._bindings[index][0] == prefix:
                del self._bindings[index]
                return

    def start(self, tag: str, attrib: dict[str, str]) -> None:
        self._flush_text()
        attributes = tuple(
            Attribute(raw_key, self._qualify(raw_key, attribute=True), value)
            for raw_key, value in attrib.items()
        )
        name = self._qualify(tag) or tag.rsplit("}", 1)[-1]
        self._events.append(XMLEvent(START, name, attributes))

    def end(self, tag: str) -> None:
        self._flush_text()
        name = self._qualify(tag) or tag.rsplit("}", 1)[-1]
        self._events.append(XMLEvent(END, name))

    def data(self, text: str) -> None:
        self._text.append(text)

    def comment(self, text: str) -> None:
        self._flush_text()

    def pi(self, target: str, data: Optional[str] = None) -> None:
        self._flush_text()

    def close(self) -> None:
        self._flush_text()

    def _flush_text(self) -> None:
        if not self._text:
            return
        text = "".join(self._text).strip()
        self._text.clear()
        if text:
            self._events.append(XMLEvent(TEXT, text=text))

    def _uri_for(self, prefix: str) -> Optional[str]:
        for bound_prefix, uri in reversed(self._bindings):
            if bound_prefix == prefix:
                return uri
        return None

    def _qualify(self, name: str, *, attribute: bool = False) -> Optional[str]:
        if not name.startswith("{"):
            return name
        uri, local = name[1:].split("}", 1)
        if not attribute and self._uri_for("") == uri:
            return local
        for prefix, bound_uri in reversed(self._bindings):
            # Unprefixed attributes never take the default namespace
            if attribute and not prefix:
                continue
            if bound_uri == uri and self._uri_for(prefix) == uri:
                return f"{prefix}:{local}" if prefix else local
        return None


def _ensure_utf8_xml_declaration(content: str) -> str:
    """Make the XML declaration agree with the UTF-8 bytes we feed lxml."""
    if not content.lstrip().startswith("<?xml"):
        return content
    return _RE_XML_DECL_ENCODING.sub(r"\1utf-8\3", content, count=1)


def _iter_chunks(source: FeedSource, chunk_size: int) -> Iterator[bytes]:
    if isinstance(source, str):
        source = _ensure_utf8_xml_declaration(source).encode("utf-8")
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        for offset in range(0, len(data), chunk_size):
            yield data[offset : offset + chunk_size]
        return

    first = True
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            return
        if isinstance(chunk, str):
            if first:
                chunk = _ensure_utf8_xml_declaration(chunk)
            chunk = chunk.encode("utf-8")
        first = False
        yield chunk


def iter_events(
    source: FeedSource, *, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Iterator[XMLEvent]:
    """Yield the document's events in order, ending with a single EOF event.

    Raises:
        XMLDecodeError: when lxml rejects the markup. Events that precede the
            failure are yielded first, so a consumer that stops early never
            sees errors in content it did not read.
    """
    collector = _EventCollector()
    parser = etree.XMLParser(
        target=collector,
        resolve_entities=False,
        no_network=True,
        huge_tree=False,
    )
    started = False
    for chunk in _iter_chunks(source, chunk_size):
        if not started:
            # lxml refuses an XML declaration preceded by whitespace
            chunk = chunk.lstrip(_XML_WHITESPACE)
            if not chunk:
                continue
            started = True
        error: Optional[etree.XMLSyntaxError] = None
        try:
            parser.feed(chunk)
        except etree.XMLSyntaxError as e:
            error = e
        yield from collector.drain()
        if error is not None:
            raise XMLDecodeError(f"Failed to parse XML content: {error}") from error

    if started:
        try:
            parser.close()
        except etree.XMLSyntaxError as e:
            yield from collector.drain()
            raise XMLDecodeError(f"Failed to parse XML content: {e}") from e
        yield from collector.drain()
    else:
        logger.debug("Feed source contained no markup")
    yield XMLEvent(EOF)
