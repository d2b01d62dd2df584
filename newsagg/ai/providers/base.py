"""
Enrichment Provider Interface
=============================

Capability interface for assigning a category and a short summary to an
article. The ingestion pipeline only talks to this interface; whether the
work is done by a language model or by keyword rules is an implementation
detail of the provider.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class EnrichmentResult:
    """Category and summary for one article."""
    category: str
    summary: str
    provider: str
    used_fallback: bool = False


class EnrichmentProvider(ABC):
    """Abstract base class for enrichment implementations."""

    provider_name: str = "base"

    @abstractmethod
    async def categorize(self, title: str, body: str) -> str:
        """Category name for an article. Must always return a name."""

    @abstractmethod
    async def summarize(self, body: str) -> str:
        """Short summary of an article body."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the provider has the configuration it needs."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the provider can serve requests right now."""

    async def enrich(self, title: str, body: str) -> EnrichmentResult:
        """Categorize and summarize in one call."""
        category = await self.categorize(title, body)
        summary = await self.summarize(body)
        return EnrichmentResult(category=category, summary=summary, provider=self.provider_name)

    async def close(self) -> None:
        """Release network resources."""
        return None

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.provider_name})"
