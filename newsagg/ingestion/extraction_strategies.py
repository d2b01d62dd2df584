"""
Extraction Strategies
=====================

Site-specific recipes for pulling article text out of HTML, keyed by
normalized host name. A recipe is an ordered list of selector steps; the
first step producing acceptable text wins. When no step of a site recipe
succeeds, the generic recipe is tried.

Step modes:
- ``first``: text of the first matching element
- ``join``: text of every matching element, joined
- ``paragraphs``: matching paragraphs longer than 20 chars, joined
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup

NAVIGATION_KEYWORDS = (
    "cookie", "privacy policy", "terms of service", "subscribe", "newsletter",
    "follow us", "share", "tweet", "facebook",
    "меню", "навигация", "подписаться", "поделиться", "реклама",
)

GAZETA_NAVIGATION_KEYWORDS = (
    "подписаться", "читать далее", "комментарии", "поделиться",
    "версия для печати", "архив", "рубрики", "теги", "реклама",
    "все новости", "главные новости", "лента новостей",
)

MIN_PARAGRAPH_LENGTH = 20
PARAGRAPH_SEPARATOR = "\n\n"

_WHITESPACE = re.compile(r"\s+")


def element_text(element) -> str:
    """Visible text of an element with whitespace collapsed."""
    return _WHITESPACE.sub(" ", element.get_text(" ", strip=True)).strip()


def is_navigation_text(text: str, keywords: Sequence[str] = NAVIGATION_KEYWORDS) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def normalize_host(url: str) -> str:
    """``https://www.Habr.com:443/ru/x`` -> ``habr.com``."""
    if not url:
        return ""
    candidate = url.strip()
    if "://" not in candidate:
        candidate = "http://" + candidate
    host = (urlparse(candidate).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host


@dataclass(frozen=True)
class SelectorStep:
    """One extraction attempt within a strategy."""

    mode: str
    selector: str
    min_length: int = 0
    separator: str = PARAGRAPH_SEPARATOR
    excluded_keywords: Tuple[str, ...] = ()

    def run(self, soup: BeautifulSoup) -> Optional[str]:
        elements = soup.select(self.selector)
        if not elements:
            return None

        if self.mode == "first":
            text = element_text(elements[0])
            return text or None

        if self.mode == "join":
            parts = [element_text(el) for el in elements]
            text = self.separator.join(part for part in parts if part)
        elif self.mode == "paragraphs":
            parts = []
            for paragraph in elements:
                text = element_text(paragraph)
                if len(text) <= MIN_PARAGRAPH_LENGTH:
                    continue
                if self.excluded_keywords and is_navigation_text(text, self.excluded_keywords):
                    continue
                parts.append(text)
            text = self.separator.join(parts)
        else:
            raise ValueError(f"Unknown selector step mode: {self.mode}")

        if text and len(text) > self.min_length:
            return text
        return None


@dataclass(frozen=True)
class DomainStrategy:
    """Named recipe for one or more hosts."""

    name: str
    hosts: Tuple[str, ...]
    steps: Tuple[SelectorStep, ...]

    def extract(self, soup: BeautifulSoup) -> Optional[str]:
        for step in self.steps:
            text = step.run(soup)
            if text:
                return text
        return None


class GenericStrategy:
    """Fallback recipe for sites without a dedicated strategy."""

    name = "generic"

    CONTAINER_SELECTORS = (
        "article", "[role='article']", ".article-content", ".post-content",
        ".entry-content", ".content", ".article-body", ".post-body",
        ".story-content", "main article", ".main-content", "#content",
        ".text-content",
    )
    MAIN_CONTAINER_SELECTOR = "main, article, .content, #content"
    MIN_TEXT_LENGTH = 300
    MIN_LOOSE_PARAGRAPH_LENGTH = 50
    MAX_LOOSE_PARAGRAPHS = 20

    def extract(self, soup: BeautifulSoup) -> Optional[str]:
        return (
            self._from_containers(soup)
            or self._from_main_paragraphs(soup)
            or self._from_loose_paragraphs(soup)
        )

    def _from_containers(self, soup: BeautifulSoup) -> Optional[str]:
        for selector in self.CONTAINER_SELECTORS:
            element = soup.select_one(selector)
            if element is None:
                continue
            text = element_text(element)
            if len(text) > self.MIN_TEXT_LENGTH:
                return text
        return None

    def _from_main_paragraphs(self, soup: BeautifulSoup) -> Optional[str]:
        container = soup.select_one(self.MAIN_CONTAINER_SELECTOR)
        if container is None:
            return None
        paragraphs = container.find_all("p")
        if len(paragraphs) <= 2:
            return None
        parts = [t for t in (element_text(p) for p in paragraphs) if len(t) > MIN_PARAGRAPH_LENGTH]
        text = PARAGRAPH_SEPARATOR.join(parts)
        return text if len(text) > self.MIN_TEXT_LENGTH else None

    def _from_loose_paragraphs(self, soup: BeautifulSoup) -> Optional[str]:
        paragraphs = soup.find_all("p")
        if len(paragraphs) <= 3:
            return None
        parts: List[str] = []
        for paragraph in paragraphs:
            text = element_text(paragraph)
            if len(text) > self.MIN_LOOSE_PARAGRAPH_LENGTH and not is_navigation_text(text):
                parts.append(text)
                if len(parts) >= self.MAX_LOOSE_PARAGRAPHS:
                    break
        text = PARAGRAPH_SEPARATOR.join(parts)
        return text if len(text) > self.MIN_TEXT_LENGTH else None


def _paragraphs(selector: str, excluded: Tuple[str, ...] = ()) -> SelectorStep:
    return SelectorStep("paragraphs", selector, min_length=200, excluded_keywords=excluded)


def _join(selector: str) -> SelectorStep:
    return SelectorStep("join", selector, min_length=200)


BUILTIN_STRATEGIES = (
    DomainStrategy("habr", ("habr.com",), (
        SelectorStep("first", "div.tm-article-body, div.article-formatted-body, "
                              "div.post__text-html, div.post__body"),
        SelectorStep("first", ".tm-article-snippet__lead-image + div, .post-content__text"),
        _paragraphs("article p, .post p"),
    )),
    DomainStrategy("techcrunch", ("techcrunch.com",), (
        SelectorStep("first", ".article-content, .entry-content, .post-content"),
    )),
    DomainStrategy("vedomosti", ("vedomosti.ru",), (
        _join("div.article__text, div.article__body, div.box-paragraph, div.article-content"),
        _paragraphs(".article p, .content p"),
    )),
    DomainStrategy("gazeta", ("gazeta.ru",), (
        _join("div.article_text, div.b-article-text, div.article-text, div.material-text"),
        _paragraphs(".article p, .material p, .content p", GAZETA_NAVIGATION_KEYWORDS),
    )),
    DomainStrategy("ria", ("ria.ru",), (
        _join("div.article__text, div.article__body, div.article-text, div.layout-article__text"),
        _paragraphs(".article p, .layout-article p"),
    )),
    DomainStrategy("lenta", ("lenta.ru",), (
        _join("div.topic-body__content, div.b-text, div.article-text, div.topic-body"),
        _paragraphs(".topic p, .article p"),
    )),
    DomainStrategy("bbc", ("bbc.com", "bbc.co.uk"), (
        SelectorStep("join", "[data-component='text-block'], .story-body__inner, .article-body",
                     separator=" "),
    )),
    DomainStrategy("reuters", ("reuters.com",), (
        SelectorStep("first", ".ArticleBodyWrapper, .StandardArticleBody_body, .article-body"),
    )),
)


class StrategyRegistry:
    """Maps normalized hosts to extraction strategies."""

    def __init__(self, strategies: Sequence[DomainStrategy] = BUILTIN_STRATEGIES):
        self._by_host: Dict[str, DomainStrategy] = {}
        self.generic = GenericStrategy()
        for strategy in strategies:
            self.register(strategy)

    def register(self, strategy: DomainStrategy) -> None:
        for host in strategy.hosts:
            self._by_host[normalize_host(host)] = strategy

    def lookup(self, url: str) -> Optional[DomainStrategy]:
        """Strategy for the URL's host or any parent domain of it."""
        host = normalize_host(url)
        while host:
            strategy = self._by_host.get(host)
            if strategy:
                return strategy
            if "." not in host:
                break
            host = host.split(".", 1)[1]
        return None

    def extract(self, soup: BeautifulSoup, url: str) -> Tuple[Optional[str], str]:
        """Run the host strategy, then the generic one.

        Returns:
            ``(text, strategy_name)``; text is None when nothing matched
        """
        strategy = self.lookup(url)
        if strategy:
            text = strategy.extract(soup)
            if text:
                return text, strategy.name
        return self.generic.extract(soup), self.generic.name

    @property
    def hosts(self) -> List[str]:
        return sorted(self._by_host)
