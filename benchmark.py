import asyncio
import logging
import time

import httpx

from pullfeedparser import FeedError, FetchConfig, FetchError, fetch, parse

# Test feeds: RSS 2.0, Atom and RSS 1.0 (RDF)
feeds = [
    'https://alefesouza.com/feed/',
    'https://amitg.blog/feed/',
    'https://www.alwaystwisted.com/rss.php',
    'https://blog.kagi.com/rss.xml',
    'https://aaronfrancis.com/feed',
    'http://davidbau.com/index.rdf',
    'https://jesperbylund.com/rss',
    'http://www.coffeecoffeeandmorecoffee.com/atom.xml',
    'https://aivarsk.com/atom.xml',
    'https://albertgao.xyz/atom.xml',
    'http://annerallen.com/feed',
]


async def download_all(config):
    semaphore = asyncio.Semaphore(config.max_concurrent)
    async with httpx.AsyncClient(follow_redirects=True) as client:

        async def download(url):
            async with semaphore:
                try:
                    return url, await fetch(url, config, client=client)
                except FetchError as e:
                    print(f"Failed to fetch {url}: {e}")
                    return url, None

        return await asyncio.gather(*(download(url) for url in feeds))


def test_parser():
    print("Timing pullfeedparser...")
    print("-" * 50)

    bodies = asyncio.run(download_all(FetchConfig(timeout=20.0)))

    total_time = 0
    successful_feeds = 0
    for url, content in bodies:
        if content is None:
            continue
        print(f"\nTesting {url}")
        start_time = time.time()
        try:
            feed = parse(content, source_url=url)
        except FeedError as e:
            print(f"pullfeedparser failed: {e}")
            continue
        elapsed = time.time() - start_time
        print(f"pullfeedparser: {len(feed.items)} items in {elapsed:.3f}s")
        total_time += elapsed
        successful_feeds += 1

    print("\nSummary:")
    print("-" * 50)
    print(f"Successfully parsed {successful_feeds} of {len(feeds)} feeds")
    if successful_feeds > 0:
        print(f"Average parse time: {total_time/successful_feeds:.4f}s")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    test_parser()
