from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterable, Iterator, Optional

from .events import (
    DEFAULT_CHUNK_SIZE,
    END,
    EOF,
    START,
    TEXT,
    Attribute,
    FeedSource,
    XMLEvent,
    iter_events,
)
from .exceptions import AttributeDecodeError, FeedBodyNotFoundError, FeedDepthError

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 128

_FEED_BODY_TAGS = frozenset({"channel", "feed", "rdf:RDF"})
_ITEM_TAGS = frozenset({"item", "entry"})
_ID_TAGS = frozenset({"id", "guid"})
_EOF_EVENT = XMLEvent(EOF)


@dataclass
class Item:
    """One entry of a feed. Every field is independently optional."""

    title: Optional[str] = None
    link: Optional[str] = None
    id: Optional[str] = None


@dataclass
class Feed:
    """A parsed syndication document: title, home page link and items."""

    title: str = ""
    link: str = ""
    items: list[Item] = field(default_factory=list)


class _EventStream:
    """Pull cursor over the event iterator; keeps returning EOF once exhausted."""

    def __init__(self, events: Iterator[XMLEvent], max_depth: int) -> None:
        self._events = events
        self.max_depth = max_depth

    def next(self) -> XMLEvent:
        return next(self._events, _EOF_EVENT)

    def enter(self, depth: int) -> None:
        if depth > self.max_depth:
            raise FeedDepthError(self.max_depth)


def _skip_element(stream: _EventStream, depth: int) -> None:
    stream.enter(depth)
    while True:
        event = stream.next()
        if event.kind == START:
            _skip_element(stream, depth + 1)
        elif event.kind == END or event.kind == EOF:
            return


def _read_optional_text(stream: _EventStream, depth: int) -> Optional[str]:
    """Return the last text run directly inside the current element.

    Nested elements are skipped and do not contribute. None means the element
    closed (or the input ended) without any text.
    """
    stream.enter(depth)
    content: Optional[str] = None
    while True:
        event = stream.next()
        if event.kind == START:
            _skip_element(stream, depth + 1)
        elif event.kind == TEXT:
            content = event.text
        elif event.kind == END or event.kind == EOF:
            return content


def _parse_atom_link(attributes: Iterable[Attribute]) -> Optional[str]:
    href: Optional[str] = None
    is_alternate = True
    for attribute in attributes:
        try:
            key = attribute.decoded_key()
            if key == "href":
                href = attribute.decoded_value()
            elif key == "rel":
                is_alternate = attribute.decoded_value() == "alternate"
        except AttributeDecodeError as e:
            logger.debug("Ignoring undecodable link attribute: %s", e)
            continue
    return href if is_alternate else None


def _read_link(stream: _EventStream, start: XMLEvent, depth: int) -> Optional[str]:
    # RSS puts the URL in the element text, Atom in href on an empty element
    link = _read_optional_text(stream, depth)
    if link is not None:
        return link
    return _parse_atom_link(start.attributes)


def _parse_item(stream: _EventStream, depth: int) -> Item:
    stream.enter(depth)
    item = Item()
    while True:
        event = stream.next()
        if event.kind == START:
            if event.name == "title":
                item.title = _read_optional_text(stream, depth + 1)
            elif event.name == "link":
                link = _read_link(stream, event, depth + 1)
                if link is not None:
                    item.link = link
            elif event.name in _ID_TAGS:
                item.id = _read_optional_text(stream, depth + 1)
            else:
                _skip_element(stream, depth + 1)
        elif event.kind == END or event.kind == EOF:
            return item


def _parse_channel(stream: _EventStream, depth: int) -> Feed:
    stream.enter(depth)
    feed = Feed()
    while True:
        event = stream.next()
        if event.kind == START:
            if event.name == "channel":
                # RSS 1.0 nests the metadata in channel but lists items as its
                # siblings, so anything parsed as an item in here is dropped.
                channel = _parse_channel(stream, depth + 1)
                feed.title = channel.title
                feed.link = channel.link
            elif event.name == "title":
                title = _read_optional_text(stream, depth + 1)
                if title is not None:
                    feed.title = title
            elif event.name == "link":
                link = _read_link(stream, event, depth + 1)
                if link is not None:
                    feed.link = link
            elif event.name in _ITEM_TAGS:
                feed.items.append(_parse_item(stream, depth + 1))
            else:
                _skip_element(stream, depth + 1)
        elif event.kind == END or event.kind == EOF:
            return feed


def _parse_root(stream: _EventStream) -> Feed:
    while True:
        event = stream.next()
        if event.kind == START:
            if event.name == "rss":
                continue
            if event.name in _FEED_BODY_TAGS:
                logger.debug("Found <%s> feed body", event.name)
                return _parse_channel(stream, 1)
            logger.debug("Skipping non-feed element <%s>", event.name)
            _skip_element(stream, 1)
        elif event.kind == EOF:
            raise FeedBodyNotFoundError()


@lru_cache(maxsize=None)
def _host_pattern() -> re.Pattern[str]:
    return re.compile(r"^((?:https?://)?[^/]+)")


def extract_origin(url: str) -> Optional[str]:
    """Return the optional scheme plus host that starts ``url``, if any.

    >>> extract_origin("http://example.com/path")
    'http://example.com'
    >>> extract_origin("/path") is None
    True
    """
    match = _host_pattern().match(url)
    return match.group(0) if match else None


def _absolutize(link: str, origin: str) -> str:
    if link.startswith("//"):
        return "http:" + link
    if link.startswith("/"):
        return origin + link
    return link


def normalize_urls(feed: Feed, source_url: str) -> Feed:
    """Rewrite root-relative and protocol-relative links against ``source_url``.

    Links without a leading slash are left alone; they are not resolved
    against the path of ``source_url``. An empty or ``"/"`` feed link becomes
    the origin itself. The feed is modified in place and returned.
    """
    origin = extract_origin(source_url) or source_url
    if feed.link in ("", "/"):
        feed.link = origin
    else:
        feed.link = _absolutize(feed.link, origin)
    for item in feed.items:
        if item.link is not None:
            item.link = _absolutize(item.link, origin)
    return feed


def parse(
    source: FeedSource,
    *,
    source_url: Optional[str] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Feed:
    """Parse an RSS 2.0, RSS 1.0 (RDF) or Atom document.

    Args:
        source: XML as bytes, str, or a binary file-like object
        source_url: URL the document was fetched from; when given, relative
            links are rewritten against it
        max_depth: Deepest element nesting accepted before giving up
        chunk_size: Number of bytes handed to the tokenizer at a time

    Returns:
        Feed with title, link and items in document order

    Raises:
        XMLDecodeError: If the markup is malformed
        FeedBodyNotFoundError: If no channel, feed or rdf:RDF element is found
        FeedDepthError: If elements nest deeper than ``max_depth``
    """
    stream = _EventStream(iter_events(source, chunk_size=chunk_size), max_depth)
    feed = _parse_root(stream)
    if source_url is not None:
        normalize_urls(feed, source_url)
    return feed
