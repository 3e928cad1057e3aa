"""Async HTTP boundary.

Bodies are read to completion before the parser sees them; the parser never
works on a partial buffer.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, Field

from . import __version__
from .exceptions import FeedError, FetchError, HTTPStatusError, TransportError
from .main import Feed, parse

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"pullfeedparser/{__version__}"


class FetchConfig(BaseModel):
    """HTTP settings shared by every request of a fetch call."""

    model_config = ConfigDict(extra="forbid")

    timeout: float = Field(10.0, gt=0, description="Seconds per request")
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1)
    max_redirects: int = Field(
        10, ge=0, description="Redirect limit of clients built by this module"
    )
    max_concurrent: int = Field(5, ge=1, description="Requests in flight at once")


@dataclass
class FeedResult:
    """Outcome of one URL in ``fetch_feeds``: a feed or the failure that prevented it."""

    url: str
    feed: Optional[Feed] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _build_client(config: FetchConfig) -> httpx.AsyncClient:
    # httpx advertises gzip/deflate, plus br when brotli is installed
    return httpx.AsyncClient(
        timeout=config.timeout,
        follow_redirects=True,
        max_redirects=config.max_redirects,
        headers={"User-Agent": config.user_agent},
    )


async def _get(client: httpx.AsyncClient, url: str, config: FetchConfig) -> bytes:
    logger.debug("Fetching %s", url)
    try:
        response = await client.get(
            url,
            headers={"User-Agent": config.user_agent},
            timeout=config.timeout,
            follow_redirects=True,
        )
    except (httpx.RequestError, httpx.InvalidURL) as e:
        raise TransportError(f"Failed to fetch {url}: {e!r}", url) from e

    if not response.is_success:
        raise HTTPStatusError(response.status_code, url)

    content = response.content
    logger.debug(
        "Fetched %s: HTTP %d, %d bytes", url, response.status_code, len(content)
    )
    return content


async def fetch(
    url: str,
    config: Optional[FetchConfig] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> bytes:
    """GET ``url`` once, following redirects, and return the full body.

    When ``client`` is given, the user agent and timeout still come from
    ``config``, but the redirect limit is the client's own
    (``config.max_redirects`` only applies to clients built here).

    Raises:
        HTTPStatusError: If the final response is not 2xx
        TransportError: If no response arrived (invalid URL, DNS, TLS,
            connect, timeout, too many redirects)
    """
    config = config or FetchConfig()
    if client is not None:
        return await _get(client, url, config)
    async with _build_client(config) as client:
        return await _get(client, url, config)


async def fetch_feed(
    url: str,
    config: Optional[FetchConfig] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> Feed:
    """Fetch, parse and link-normalize the feed at ``url``."""
    content = await fetch(url, config, client=client)
    return parse(content, source_url=url)


async def fetch_feeds(
    urls: Sequence[str],
    config: Optional[FetchConfig] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> list[FeedResult]:
    """Fetch many feeds concurrently.

    Returns one FeedResult per entry of ``urls``, in the same order. A URL that
    appears more than once is requested once and its result repeated. Failures
    are captured per feed and never cancel the other requests.
    """
    config = config or FetchConfig()
    semaphore = asyncio.Semaphore(config.max_concurrent)
    unique_urls = list(dict.fromkeys(urls))

    async def fetch_with_semaphore(
        client: httpx.AsyncClient, url: str
    ) -> FeedResult:
        async with semaphore:
            try:
                feed = await fetch_feed(url, config, client=client)
            except (FetchError, FeedError) as e:
                logger.warning("Failed to fetch feed %s: %s", url, e)
                return FeedResult(url=url, error=e)
        return FeedResult(url=url, feed=feed)

    async def fetch_all(client: httpx.AsyncClient) -> list[FeedResult]:
        tasks = [fetch_with_semaphore(client, url) for url in unique_urls]
        return await asyncio.gather(*tasks)

    if client is not None:
        results = await fetch_all(client)
    else:
        async with _build_client(config) as client:
            results = await fetch_all(client)

    by_url = dict(zip(unique_urls, results))
    return [by_url[url] for url in urls]
