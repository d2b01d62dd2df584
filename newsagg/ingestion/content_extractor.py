"""
Content Extractor
=================

Downloads article pages and turns them into clean body text and a
representative image. Network problems, HTTP errors and unexpected markup
never propagate: the extractor logs them and returns None so the caller can
fall back to the feed-provided description.
"""

import asyncio
import ssl
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiohttp
import certifi
from bs4 import BeautifulSoup

from ..config.settings import get_settings
from ..utils.logging import get_logger_for_component
from .extraction_strategies import StrategyRegistry
from .image_resolver import ImageResolver
from .text_sanitizer import TextSanitizer

TRUNCATION_MARKER = "..."
STRIPPED_TAGS = ["script", "style", "noscript", "iframe", "template"]


class ContentExtractor:
    """Full-text and image extraction for article pages."""

    def __init__(
        self,
        registry: Optional[StrategyRegistry] = None,
        image_resolver: Optional[ImageResolver] = None,
        sanitizer: Optional[TextSanitizer] = None,
        timeout: Optional[int] = None,
        max_content_length: Optional[int] = None,
        user_agent: Optional[str] = None,
    ):
        settings = get_settings().extraction
        self.registry = registry or StrategyRegistry()
        self.image_resolver = image_resolver or ImageResolver()
        self.sanitizer = sanitizer or TextSanitizer()
        self.timeout = timeout or settings.request_timeout
        self.max_content_length = max_content_length or settings.max_content_length
        self.user_agent = user_agent or settings.user_agent
        self.logger = get_logger_for_component("content_extractor")
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        """HTTP session configured for page downloads."""
        connector = aiohttp.TCPConnector(ssl=self.ssl_context, limit_per_host=5)
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "ru,en;q=0.8",
        }
        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def fetch_document(
        self, url: str, session: aiohttp.ClientSession
    ) -> Optional[BeautifulSoup]:
        """Download and parse a page; None on any failure."""
        if not url:
            return None
        try:
            async with session.get(
                url,
                allow_redirects=True,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    self.logger.debug(f"Page fetch for {url} returned HTTP {response.status}")
                    return None
                html = await response.text(errors="replace")

            soup = BeautifulSoup(html, "html.parser")
            for tag in soup.find_all(STRIPPED_TAGS):
                tag.decompose()
            return soup

        except asyncio.TimeoutError:
            self.logger.warning(f"Page fetch timed out after {self.timeout}s: {url}")
        except aiohttp.ClientError as e:
            self.logger.warning(f"Page fetch failed for {url}: {e}")
        except Exception as e:
            self.logger.error(f"Unexpected error fetching {url}: {e}", exc_info=True)
        return None

    def extract_text(self, soup: Optional[BeautifulSoup], url: str) -> Optional[str]:
        """Clean body text of a parsed page, or None."""
        if soup is None:
            return None
        try:
            raw_text, strategy = self.registry.extract(soup, url)
        except Exception as e:
            self.logger.error(f"Extraction strategy failed for {url}: {e}", exc_info=True)
            return None

        text = self.sanitizer.clean_body(raw_text)
        if not text:
            self.logger.debug(f"No article text found at {url}")
            return None

        self.logger.debug(f"Extracted {len(text)} chars from {url} using '{strategy}' strategy")
        return self.truncate(text)

    def extract_image_from_document(
        self, soup: Optional[BeautifulSoup], url: str
    ) -> Optional[str]:
        if soup is None:
            return None
        return self.image_resolver.resolve_from_document(soup, url)

    def truncate(self, text: str) -> str:
        if len(text) > self.max_content_length:
            return text[: self.max_content_length] + TRUNCATION_MARKER
        return text

    async def extract_full_text(
        self, url: str, session: Optional[aiohttp.ClientSession] = None
    ) -> Optional[str]:
        """Download ``url`` and return its article text."""
        if session is None:
            async with self.get_session() as own_session:
                return await self.extract_full_text(url, own_session)
        soup = await self.fetch_document(url, session)
        return self.extract_text(soup, url)

    async def extract_image(
        self, url: str, session: Optional[aiohttp.ClientSession] = None
    ) -> Optional[str]:
        """Download ``url`` and return its main image URL."""
        if session is None:
            async with self.get_session() as own_session:
                return await self.extract_image(url, own_session)
        soup = await self.fetch_document(url, session)
        return self.extract_image_from_document(soup, url)
