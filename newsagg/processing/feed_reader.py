"""
Feed Reader
===========

Downloads RSS/Atom feeds and converts their entries into plain
``FeedEntry`` records for the ingestion pipeline. Entry order is the order
of the feed document.
"""

import asyncio
import calendar
import ssl
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

import aiohttp
import certifi
import feedparser

from ..config.settings import get_settings
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FeedFetchError, FeedParseError


@dataclass
class FeedEntry:
    """One entry of a parsed feed."""

    link: str
    title: str = ""
    description: str = ""
    contents: List[str] = field(default_factory=list)
    enclosures: List[Dict[str, Any]] = field(default_factory=list)
    media_content: List[Dict[str, Any]] = field(default_factory=list)
    media_thumbnails: List[Dict[str, Any]] = field(default_factory=list)
    published_at: Optional[datetime] = None


@dataclass
class FetchResult:
    """Result of downloading and parsing one feed."""

    feed_url: str
    success: bool
    entries: List[FeedEntry] = None
    error: Optional[str] = None
    fetch_time: Optional[datetime] = None
    entry_count: int = 0
    feed_title: Optional[str] = None

    def __post_init__(self):
        if self.entries is None:
            self.entries = []
        self.entry_count = len(self.entries)
        if not self.fetch_time:
            self.fetch_time = datetime.now(timezone.utc)

    def raise_for_failure(self) -> None:
        """Raise the matching FeedError when the fetch failed."""
        if self.success:
            return
        if self.error and self.error.startswith("Feed parse error"):
            raise FeedParseError(self.error, feed_url=self.feed_url)
        raise FeedFetchError(self.error or "Feed fetch failed", feed_url=self.feed_url)


def _struct_to_datetime(value) -> Optional[datetime]:
    """feedparser's UTC struct_time to an aware datetime."""
    if not value:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def entry_from_feedparser(raw: Any) -> FeedEntry:
    """Convert a feedparser entry dict into a FeedEntry."""
    contents = []
    for block in raw.get("content") or []:
        value = block.get("value") if isinstance(block, dict) else None
        if value:
            contents.append(value)

    enclosures = [dict(e) for e in raw.get("enclosures") or []]
    for link in raw.get("links") or []:
        if link.get("rel") == "enclosure" and link.get("href"):
            if not any(e.get("href") == link.get("href") for e in enclosures):
                enclosures.append(dict(link))

    published_at = None
    for key in ("published_parsed", "updated_parsed", "created_parsed"):
        published_at = _struct_to_datetime(raw.get(key))
        if published_at:
            break

    return FeedEntry(
        link=(raw.get("link") or "").strip(),
        title=raw.get("title") or "",
        description=raw.get("summary") or raw.get("description") or "",
        contents=contents,
        enclosures=enclosures,
        media_content=[dict(m) for m in raw.get("media_content") or []],
        media_thumbnails=[dict(m) for m in raw.get("media_thumbnail") or []],
        published_at=published_at,
    )


def parse_feed_document(content: Any, feed_url: str) -> FetchResult:
    """Parse a feed document (bytes or str) into a FetchResult.

    A malformed document still succeeds as long as feedparser recovered
    at least one entry.
    """
    parsed = feedparser.parse(content)

    if parsed.get("bozo") and not parsed.entries:
        exception = parsed.get("bozo_exception")
        error = f"Feed parse error: {exception or 'invalid XML structure'}"
        return FetchResult(feed_url=feed_url, success=False, error=error)

    entries = [entry_from_feedparser(raw) for raw in parsed.entries]
    return FetchResult(
        feed_url=feed_url,
        success=True,
        entries=entries,
        feed_title=parsed.feed.get("title") if parsed.get("feed") else None,
    )


class FeedReader:
    """Feed downloader built on aiohttp and feedparser."""

    def __init__(self, timeout: Optional[int] = None, user_agent: Optional[str] = None):
        settings = get_settings()
        self.timeout = timeout or settings.ingestion.feed_timeout
        self.user_agent = user_agent or settings.extraction.user_agent
        self.logger = get_logger_for_component("feed_reader")
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        connector = aiohttp.TCPConnector(
            ssl=self.ssl_context,
            limit=20,
            limit_per_host=5,
        )
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
        }
        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def fetch_feed(self, feed_url: str, session: aiohttp.ClientSession) -> FetchResult:
        """Download and parse one feed. Never raises for network problems."""
        start_time = datetime.now(timezone.utc)

        try:
            async with session.get(
                feed_url,
                allow_redirects=True,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    error_msg = f"HTTP {response.status}: {response.reason}"
                    self.logger.warning(f"Feed fetch failed for {feed_url}: {error_msg}")
                    return FetchResult(
                        feed_url=feed_url, success=False, error=error_msg, fetch_time=start_time
                    )
                # Raw bytes so feedparser honours the XML encoding declaration
                content = await response.read()

        except asyncio.TimeoutError:
            error_msg = f"Request timeout after {self.timeout}s"
            self.logger.warning(f"Feed fetch timeout for {feed_url}")
            return FetchResult(feed_url=feed_url, success=False, error=error_msg, fetch_time=start_time)
        except aiohttp.ClientError as e:
            error_msg = f"Fetch error: {e}"
            self.logger.warning(f"Feed fetch failed for {feed_url}: {error_msg}")
            return FetchResult(feed_url=feed_url, success=False, error=error_msg, fetch_time=start_time)

        result = parse_feed_document(content, feed_url)
        result.fetch_time = start_time
        if result.success:
            self.logger.info(
                f"Fetched {result.entry_count} entries from {feed_url} "
                f"in {(datetime.now(timezone.utc) - start_time).total_seconds():.2f}s"
            )
        else:
            self.logger.warning(f"Feed parse failed for {feed_url}: {result.error}")
        return result

    async def read(self, feed_url: str, session: aiohttp.ClientSession) -> List[FeedEntry]:
        """Entries of a feed, raising FeedError on failure."""
        result = await self.fetch_feed(feed_url, session)
        result.raise_for_failure()
        return result.entries
