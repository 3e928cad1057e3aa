from __future__ import annotations

from typing import Optional


class FeedError(ValueError):
    """Base class for everything that stops a document from becoming a Feed."""


class XMLDecodeError(FeedError):
    """The tokenizer rejected the byte stream as malformed XML."""


class FeedBodyNotFoundError(FeedError):
    """The document ended before a channel, feed or rdf:RDF element was found."""

    def __init__(self, message: str = "No parseable feed body found") -> None:
        super().__init__(message)


class FeedDepthError(FeedError):
    def __init__(self, max_depth: int) -> None:
        super().__init__(f"Element nesting exceeds maximum depth of {max_depth}")
        self.max_depth = max_depth


class AttributeDecodeError(FeedError):
    """A single attribute could not be decoded; callers skip the attribute."""


class FetchError(Exception):
    """Base class for failures at the HTTP boundary."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class HTTPStatusError(FetchError):
    def __init__(self, status_code: int, url: Optional[str] = None) -> None:
        super().__init__(f"HTTP status {status_code} for {url}", url)
        self.status_code = status_code


class TransportError(FetchError):
    """DNS, TLS, connect, timeout or redirect failure before a status arrived."""
