"""Public news feed (CryptoCompare), served through the TTL cache."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from .cache import CacheStore
from .errors import FetchError, UpstreamError
from .models import NewsItem
from .payloads import NewsArticle, PayloadError, parse_news

logger = logging.getLogger(__name__)

SUBSYSTEM = "news"
ERROR_MESSAGE = "Public Feed Offline"
DEFAULT_SOURCE = "CRYPTO_INTEL"
SUMMARY_MAX_CHARS = 120


def summarize(body: str, limit: int = SUMMARY_MAX_CHARS) -> str:
    if len(body) <= limit:
        return body
    return body[: limit - 3] + "..."


def _published_at(epoch_seconds: int) -> datetime:
    try:
        return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        logger.debug("news.bad_timestamp %r", epoch_seconds)
        return datetime.fromtimestamp(0, tz=timezone.utc)


def to_news_item(article: NewsArticle) -> NewsItem:
    source = article.source_info.name if article.source_info and article.source_info.name else DEFAULT_SOURCE
    return NewsItem(
        headline=article.title,
        summary=summarize(article.body),
        url=article.url,
        source=source,
        timestamp=_published_at(article.published_on),
    )


@dataclass
class NewsResult:
    items: List[NewsItem] = field(default_factory=list)
    error: Optional[FetchError] = None
    from_cache: bool = False


class NewsFeed:
    def __init__(self, http, cache: CacheStore, url: str, max_items: int = 15):
        self.http = http
        self.cache = cache
        self.url = url
        self.max_items = max_items
        self.items: List[NewsItem] = []

    async def fetch(self, force: bool = False) -> NewsResult:
        """Cached items when fresh; otherwise hit the feed and rewrite the cache.

        ``force`` skips the cache read entirely. On failure the last good items
        are returned alongside the error and the cache is left untouched.
        """
        if not force:
            cached = self.cache.read()
            if cached is not None:
                self.items = cached
                return NewsResult(items=cached, from_cache=True)

        try:
            payload = await self.http.get_json(self.url)
            articles = parse_news(payload)
        except (UpstreamError, PayloadError) as exc:
            logger.warning("news.fetch_failed: %s", exc)
            return NewsResult(items=list(self.items), error=FetchError(SUBSYSTEM, ERROR_MESSAGE, str(exc)))

        items = [to_news_item(article) for article in articles[: self.max_items]]
        self.items = items
        self.cache.write(items)
        logger.info("news.fetched items=%d force=%s", len(items), force)
        return NewsResult(items=items)


__all__ = ["NewsFeed", "NewsResult", "summarize", "to_news_item", "SUBSYSTEM", "ERROR_MESSAGE"]
