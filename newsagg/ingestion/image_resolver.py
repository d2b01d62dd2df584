"""
Image Resolver
==============

Picks a representative image for an article, either from an already
parsed article page or from the media attached to a feed entry.

Every candidate goes through the same filters: it must be an absolute
http(s) URL that looks like an image, it must not look like an icon, logo,
favicon or avatar, and ``<img>`` candidates with explicit dimensions must
be at least 200x150. Nothing in this module raises; failures yield None.
"""

import re
from typing import Iterable, Optional, TYPE_CHECKING
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from ..utils.logging import get_logger_for_component

if TYPE_CHECKING:
    from ..processing.feed_reader import FeedEntry

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg")
REJECTED_MARKERS = ("icon", "logo", "favicon", "avatar")
MIN_URL_LENGTH = 30
MIN_WIDTH = 200
MIN_HEIGHT = 150

CONTENT_IMAGE_SELECTOR = (
    "article img, .article-content img, .post-content img, "
    ".entry-content img, .content img"
)

_DIMENSION_PATTERN = re.compile(r"^\s*(\d+)(?:px)?\s*$", re.IGNORECASE)

logger = get_logger_for_component("image_resolver")


def looks_like_image(url: Optional[str]) -> bool:
    """Heuristic check that a URL points at an image."""
    if not url:
        return False
    lowered = url.lower()
    path = lowered.split("?", 1)[0].split("#", 1)[0]
    if path.endswith(IMAGE_EXTENSIONS):
        return True
    if "image" in lowered:
        return True
    return len(url) >= MIN_URL_LENGTH


def is_rejected(url: str) -> bool:
    """Icons, logos, favicons, avatars and small thumbnails."""
    lowered = url.lower()
    if any(marker in lowered for marker in REJECTED_MARKERS):
        return True
    return "thumb" in lowered and "small" in lowered


def is_large_enough(width: Optional[str], height: Optional[str]) -> bool:
    """Reject only when both dimensions are given and too small."""
    if not width or not height:
        return True
    w_match = _DIMENSION_PATTERN.match(str(width))
    h_match = _DIMENSION_PATTERN.match(str(height))
    if not w_match or not h_match:
        return True
    return int(w_match.group(1)) >= MIN_WIDTH and int(h_match.group(1)) >= MIN_HEIGHT


def absolutize(url: Optional[str], base_url: Optional[str]) -> Optional[str]:
    """Resolve ``url`` against ``base_url``; only http(s) results survive."""
    if not url:
        return None
    url = url.strip()
    if not url or url.startswith("data:"):
        return None
    if base_url:
        url = urljoin(base_url, url)
    if urlparse(url).scheme not in ("http", "https"):
        return None
    return url


def accept(url: Optional[str], base_url: Optional[str]) -> Optional[str]:
    """Absolute URL of an acceptable image candidate, or None."""
    resolved = absolutize(url, base_url)
    if resolved and looks_like_image(resolved) and not is_rejected(resolved):
        return resolved
    return None


class ImageResolver:
    """Selects the best image from a page or a feed entry."""

    def resolve_from_document(self, soup: BeautifulSoup, page_url: str) -> Optional[str]:
        """Image for a parsed article page.

        Priority: OpenGraph, Twitter card, images inside the article
        content, then any image on the page.
        """
        try:
            for meta in (
                soup.find("meta", attrs={"property": "og:image"}),
                soup.find("meta", attrs={"name": "twitter:image"}),
                soup.find("meta", attrs={"property": "twitter:image"}),
            ):
                if meta is not None:
                    found = accept(meta.get("content"), page_url)
                    if found:
                        return found

            found = self._first_img(soup.select(CONTENT_IMAGE_SELECTOR), page_url)
            if found:
                return found

            return self._first_img(soup.find_all("img"), page_url)

        except Exception as e:
            logger.debug(f"Image lookup failed for {page_url}: {e}")
            return None

    def resolve_from_entry(self, entry: "FeedEntry") -> Optional[str]:
        """Image attached to a feed entry.

        Priority: image enclosures, first ``<img>`` in the description or
        content blocks, then Media RSS content and thumbnails.
        """
        base_url = entry.link or None
        try:
            for enclosure in entry.enclosures:
                mime_type = (enclosure.get("type") or "").lower()
                if mime_type.startswith("image/"):
                    found = accept(enclosure.get("href") or enclosure.get("url"), base_url)
                    if found:
                        return found

            for html in [entry.description, *entry.contents]:
                found = self._first_inline_img(html, base_url)
                if found:
                    return found

            for media in entry.media_content:
                mime_type = (media.get("type") or "").lower()
                medium = (media.get("medium") or "").lower()
                if mime_type.startswith("image/") or medium == "image":
                    found = accept(media.get("url"), base_url)
                    if found:
                        return found

            for thumbnail in entry.media_thumbnails:
                found = accept(thumbnail.get("url"), base_url)
                if found:
                    return found

        except Exception as e:
            logger.debug(f"Entry image lookup failed for {base_url}: {e}")

        return None

    def _first_img(self, images: Iterable, page_url: str) -> Optional[str]:
        for img in images:
            src = img.get("src") or img.get("data-src")
            if not is_large_enough(img.get("width"), img.get("height")):
                continue
            found = accept(src, page_url)
            if found:
                return found
        return None

    def _first_inline_img(self, html: Optional[str], base_url: Optional[str]) -> Optional[str]:
        if not html or "<img" not in html.lower():
            return None
        img = BeautifulSoup(html, "html.parser").find("img", src=True)
        if img is None or not is_large_enough(img.get("width"), img.get("height")):
            return None
        return accept(img["src"], base_url)
