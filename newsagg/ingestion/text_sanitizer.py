"""
Text Sanitizer
==============

Normalization of feed-provided text (titles, descriptions) and of article
bodies extracted from HTML pages.

This module provides:
- Tag stripping and decoding of the common HTML entities
- Removal of breadcrumb trails, paywall prompts and "read more" tails
- Whitespace normalization
- Summary cleanup for stored articles

All functions are pure and total: ``None`` or empty input yields ``""``.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup


class TextSanitizer:
    """Text cleanup for Russian and English news feeds."""

    PARSER = "html.parser"

    # Decoded in this order; &amp; last so "&amp;lt;" stays "&lt;"
    ENTITIES = (
        ("&nbsp;", " "),
        ("&lt;", "<"),
        ("&gt;", ">"),
        ("&quot;", '"'),
        ("&#39;", "'"),
        ("&amp;", "&"),
    )

    BREADCRUMB_PATTERNS = (
        re.compile(
            r"Главная\s*/\s*[^/]+\s*/\s*\d+\s*(?:минут|час|день|дня|дней|недел|месяц)[^\n]*?назад\s*"
        ),
        re.compile(r"Главная\s*/\s*[^/]+\s*/\s*"),
    )

    PAYWALL_PATTERNS = (
        re.compile(r"Чтобы дочитать статью.*?зарегистрируйтесь\.?", re.DOTALL),
        re.compile(r"Чтобы продолжить чтение.*?зарегистрируйтесь\.?", re.DOTALL),
        re.compile(r"Для продолжения чтения.*?зарегистрируйтесь\.?", re.DOTALL),
        re.compile(r"сохраните\s+(?:её|ее)?\s*в\s+[«\"]?Отложенных материалах[»\"]?\.?"),
        re.compile(r"Для этого войдите или зарегистрируйтесь\.?"),
    )

    READ_MORE_PATTERN = re.compile(
        r"(?:Читать далее|Read more|Continue reading|Подробнее)[\s.…]*", re.IGNORECASE
    )

    PROMO_PATTERN = re.compile(
        r"(?:реклама|advertisement|sponsored|читать далее|read more|подписаться|subscribe)",
        re.IGNORECASE,
    )

    WHITESPACE_PATTERN = re.compile(r"\s+")
    INLINE_WHITESPACE_PATTERN = re.compile(r"[^\S\n]+")
    BLANK_LINES_PATTERN = re.compile(r"\n\s*\n+")

    def clean(self, raw: Optional[str]) -> str:
        """Clean feed-provided text into a single normalized line."""
        if not raw:
            return ""

        text = self._strip_tags(raw)
        for entity, replacement in self.ENTITIES:
            text = text.replace(entity, replacement)

        text = self._strip_site_chrome(text)
        text = self.READ_MORE_PATTERN.sub("", text)

        return self.WHITESPACE_PATTERN.sub(" ", text).strip()

    def clean_body(self, text: Optional[str]) -> str:
        """Clean an extracted article body, keeping paragraph breaks."""
        if not text:
            return ""

        text = self.PROMO_PATTERN.sub("", text)
        text = self.INLINE_WHITESPACE_PATTERN.sub(" ", text)
        lines = [line.strip() for line in text.split("\n")]
        text = "\n".join(lines)
        text = self.BLANK_LINES_PATTERN.sub("\n\n", text)
        return text.strip()

    def clean_summary(self, text: Optional[str], source_name: Optional[str] = None) -> str:
        """Strip site chrome and a leading source name from a stored summary."""
        if not text:
            return ""

        text = self._strip_site_chrome(text).strip()

        if source_name:
            prefix = re.compile(
                r"^" + re.escape(source_name.strip()) + r"[\s:.,\-–—]*", re.IGNORECASE
            )
            text = prefix.sub("", text, count=1)

        return self.WHITESPACE_PATTERN.sub(" ", text).strip()

    def _strip_tags(self, raw: str) -> str:
        # Ampersands are escaped so only the fixed entity set gets decoded
        soup = BeautifulSoup(raw.replace("&", "&amp;"), self.PARSER)
        return soup.get_text(" ")

    def _strip_site_chrome(self, text: str) -> str:
        for pattern in self.BREADCRUMB_PATTERNS:
            text = pattern.sub("", text)
        for pattern in self.PAYWALL_PATTERNS:
            text = pattern.sub("", text)
        return text


_default_sanitizer = TextSanitizer()


def clean(raw: Optional[str]) -> str:
    """Module-level shortcut for :meth:`TextSanitizer.clean`."""
    return _default_sanitizer.clean(raw)


def clean_body(text: Optional[str]) -> str:
    return _default_sanitizer.clean_body(text)


def clean_summary(text: Optional[str], source_name: Optional[str] = None) -> str:
    return _default_sanitizer.clean_summary(text, source_name)
