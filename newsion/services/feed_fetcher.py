import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import requests

from newsion.models.article import utcnow
from newsion.services.rss_parser import RSSParser

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-cache',
    'Pragma': 'no-cache',
    'User-Agent': 'Mozilla/5.0 (compatible; newsion/1.0; +https://github.com/newsion)',
}


def cache_busted(url: str, timestamp: Optional[int] = None) -> str:
    """Append a ``_t=<ms>`` query parameter so intermediaries skip their cache."""
    timestamp = timestamp if timestamp is not None else int(time.time() * 1000)
    separator = '&' if '?' in url else '?'
    return f"{url}{separator}_t={timestamp}"


def sort_latest(items: List[dict]) -> List[dict]:
    """Sort by pub_date descending. Python's sort is stable so ties keep input order."""
    return sorted(items, key=lambda item: item['pub_date'], reverse=True)


class FeedFetcher:
    """Service for fetching and normalizing RSS feed items."""

    TIMEOUT = 15

    @staticmethod
    def fetch_feed(url: str, timestamp: Optional[int] = None) -> List[dict]:
        """
        Fetch and parse a single feed.

        Returns the normalized items, or [] when the feed cannot be
        fetched or parsed.
        """
        feed_url = cache_busted(url, timestamp)
        logger.debug(f"Fetching feed {feed_url}")

        try:
            response = requests.get(feed_url, headers=NO_CACHE_HEADERS, timeout=FeedFetcher.TIMEOUT)
            response.raise_for_status()
            parsed = RSSParser.parse(response.content, fallback_date=utcnow(), strict=True)
        except Exception as e:
            logger.warning(f"Feed {url} failed, skipping: {e}")
            return []

        return parsed['items']

    @staticmethod
    def fetch_all(urls: List[str], max_workers: int = 4) -> List[dict]:
        """
        Fetch all feeds in parallel.

        Items are concatenated in feed order, then item order within each
        feed. One failing feed never fails the batch.
        """
        if not urls:
            return []

        timestamp = int(time.time() * 1000)
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(urls)))) as executor:
            per_feed = list(executor.map(lambda u: FeedFetcher.fetch_feed(u, timestamp), urls))

        items = [item for feed_items in per_feed for item in feed_items]
        logger.info(f"Fetched {len(items)} items from {len(urls)} feeds")
        return items

    @staticmethod
    def fetch_latest(urls: List[str], limit: Optional[int] = None, max_workers: int = 4) -> List[dict]:
        """Fetch all feeds, sort newest first and keep the first ``limit`` items."""
        items = sort_latest(FeedFetcher.fetch_all(urls, max_workers=max_workers))
        if limit is not None:
            items = items[:limit]
        return items
