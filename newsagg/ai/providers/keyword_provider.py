"""
Keyword Enrichment Provider
===========================

Deterministic provider built on the keyword and sentence rules. It needs no
configuration and is always available.
"""

from .base import EnrichmentProvider, EnrichmentResult
from ..fallback import basic_summary, categorize_by_keywords


class KeywordEnrichmentProvider(EnrichmentProvider):
    """Keyword categorization and sentence-cut summaries."""

    provider_name = "keyword"

    async def categorize(self, title: str, body: str) -> str:
        return categorize_by_keywords(title, body)

    async def summarize(self, body: str) -> str:
        return basic_summary(body)

    def enrich_sync(self, title: str, body: str) -> EnrichmentResult:
        """Synchronous variant used when an async provider blew up."""
        return EnrichmentResult(
            category=categorize_by_keywords(title, body),
            summary=basic_summary(body),
            provider=self.provider_name,
            used_fallback=True,
        )

    def is_configured(self) -> bool:
        return True

    def is_available(self) -> bool:
        return True
