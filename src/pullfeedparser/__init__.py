__version__ = "0.1.0"

from .exceptions import (
    AttributeDecodeError,
    FeedBodyNotFoundError,
    FeedDepthError,
    FeedError,
    FetchError,
    HTTPStatusError,
    TransportError,
    XMLDecodeError,
)
from .main import Feed, Item, extract_origin, normalize_urls, parse
from .fetch import FeedResult, FetchConfig, fetch, fetch_feed, fetch_feeds

__all__ = [
    "AttributeDecodeError",
    "Feed",
    "FeedBodyNotFoundError",
    "FeedDepthError",
    "FeedError",
    "FeedResult",
    "FetchConfig",
    "FetchError",
    "HTTPStatusError",
    "Item",
    "TransportError",
    "XMLDecodeError",
    "extract_origin",
    "fetch",
    "fetch_feed",
    "fetch_feeds",
    "normalize_urls",
    "parse",
]
