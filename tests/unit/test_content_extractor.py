"""
Unit Tests for Content Extraction
=================================

Tests for domain strategies, the generic recipe and the page extractor.
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock, Mock

import aiohttp
from bs4 import BeautifulSoup

from newsagg.ingestion.content_extractor import ContentExtractor, TRUNCATION_MARKER
from newsagg.ingestion.extraction_strategies import (
    DomainStrategy,
    SelectorStep,
    StrategyRegistry,
    normalize_host,
)

PARAGRAPH = (
    "Исследователи представили новый метод обучения языковых моделей, "
    "который сокращает расход памяти почти вдвое."
)

HABR_PAGE = f"""
<html><body>
  <nav>Меню сайта</nav>
  <div class="tm-article-body"><p>{PARAGRAPH}</p><p>{PARAGRAPH}</p></div>
</body></html>
"""

GENERIC_PAGE = f"""
<html><body>
  <header>Шапка</header>
  <article>
    <h1>Заголовок</h1>
    <p>{PARAGRAPH}</p><p>{PARAGRAPH}</p><p>{PARAGRAPH}</p><p>{PARAGRAPH}</p>
  </article>
</body></html>
"""

LOOSE_PARAGRAPHS_PAGE = f"""
<html><body>
  <div><p>{PARAGRAPH}</p></div>
  <div><p>Подписаться на нашу рассылку, чтобы не пропустить новости недели</p></div>
  <div><p>{PARAGRAPH} Первый.</p></div>
  <div><p>{PARAGRAPH} Второй.</p></div>
  <div><p>{PARAGRAPH} Третий.</p></div>
</body></html>
"""

VEDOMOSTI_SHORT_PAGE = f"""
<html><body>
  <div class="article__text">Коротко</div>
  <article><p>{PARAGRAPH}</p><p>{PARAGRAPH}</p><p>{PARAGRAPH}</p><p>{PARAGRAPH}</p></article>
</body></html>
"""


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _mock_session(status=200, html="", exception=None):
    """aiohttp-like session whose get() yields one canned response."""
    response = Mock()
    response.status = status
    response.text = AsyncMock(return_value=html)

    context = MagicMock()
    if exception is not None:
        context.__aenter__ = AsyncMock(side_effect=exception)
    else:
        context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = Mock()
    session.get = Mock(return_value=context)
    return session


class TestStrategyRegistry:
    """Test host lookup and strategy selection."""

    def setup_method(self):
        self.registry = StrategyRegistry()

    @pytest.mark.parametrize("url,expected", [
        ("https://www.Habr.com:443/ru/articles/1/", "habr.com"),
        ("habr.com/ru", "habr.com"),
        ("", ""),
    ])
    def test_normalize_host(self, url, expected):
        assert normalize_host(url) == expected

    def test_lookup_walks_parent_domains(self):
        assert self.registry.lookup("https://m.lenta.ru/news/1").name == "lenta"
        assert self.registry.lookup("https://www.bbc.co.uk/news/1").name == "bbc"
        assert self.registry.lookup("https://unknown.example.org/") is None

    def test_domain_strategy_used(self):
        text, strategy = self.registry.extract(_soup(HABR_PAGE), "https://habr.com/ru/articles/1/")
        assert strategy == "habr"
        assert PARAGRAPH in text
        assert "Меню" not in text

    def test_falls_back_to_generic_when_domain_steps_fail(self):
        text, strategy = self.registry.extract(
            _soup(VEDOMOSTI_SHORT_PAGE), "https://www.vedomosti.ru/economics/news/1"
        )
        assert strategy == "generic"
        assert PARAGRAPH in text

    def test_generic_container(self):
        text, strategy = self.registry.extract(_soup(GENERIC_PAGE), "https://example.org/a")
        assert strategy == "generic"
        assert text.startswith("Заголовок")

    def test_generic_loose_paragraphs_skip_navigation(self):
        text, _ = self.registry.extract(_soup(LOOSE_PARAGRAPHS_PAGE), "https://example.org/a")
        assert "Подписаться" not in text
        assert "Третий." in text

    def test_nothing_found(self):
        text, strategy = self.registry.extract(_soup("<p>мало</p>"), "https://example.org/a")
        assert text is None
        assert strategy == "generic"

    def test_register_custom_strategy(self):
        self.registry.register(DomainStrategy(
            "custom", ("news.example.org",),
            (SelectorStep("first", "div.body"),),
        ))
        soup = _soup('<div class="body">Текст новости</div>')
        assert self.registry.extract(soup, "https://news.example.org/1") == ("Текст новости", "custom")
        assert "news.example.org" in self.registry.hosts


class TestContentExtractor:
    """Test page download and text post-processing."""

    def setup_method(self):
        self.extractor = ContentExtractor(timeout=5, max_content_length=1000)

    @pytest.mark.asyncio
    async def test_extract_full_text(self):
        session = _mock_session(html=HABR_PAGE + "<script>var x = 1;</script>")
        text = await self.extractor.extract_full_text("https://habr.com/ru/articles/1/", session)
        assert PARAGRAPH in text
        assert "var x" not in text

    @pytest.mark.asyncio
    async def test_non_200_returns_none(self):
        session = _mock_session(status=404, html=HABR_PAGE)
        assert await self.extractor.extract_full_text("https://habr.com/ru/1/", session) is None

    @pytest.mark.asyncio
    async def test_network_error_returns_none(self):
        session = _mock_session(exception=aiohttp.ClientConnectionError("refused"))
        assert await self.extractor.fetch_document("https://habr.com/ru/1/", session) is None

    @pytest.mark.asyncio
    async def test_timeout_returns_none(self):
        session = _mock_session(exception=asyncio.TimeoutError())
        assert await self.extractor.extract_image("https://habr.com/ru/1/", session) is None

    @pytest.mark.asyncio
    async def test_empty_url(self):
        session = _mock_session(html=HABR_PAGE)
        assert await self.extractor.fetch_document("", session) is None
        session.get.assert_not_called()

    def test_truncation(self):
        text = "а" * 1500
        truncated = self.extractor.truncate(text)
        assert len(truncated) == 1000 + len(TRUNCATION_MARKER)
        assert truncated.endswith(TRUNCATION_MARKER)
        assert self.extractor.truncate("коротко") == "коротко"

    def test_extract_text_none_soup(self):
        assert self.extractor.extract_text(None, "https://example.org") is None

    def test_extract_image_from_document(self):
        soup = _soup('<meta property="og:image" content="https://cdn.example.org/cover.jpg">')
        assert (
            self.extractor.extract_image_from_document(soup, "https://example.org/a")
            == "https://cdn.example.org/cover.jpg"
        )
