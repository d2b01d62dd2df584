"""
NewsAgg AI Enrichment Module
============================

Article categorization and summarization through an OpenAI-compatible
completion backend, with deterministic keyword rules as the fallback.
"""

from .providers.base import EnrichmentProvider, EnrichmentResult
from .providers.keyword_provider import KeywordEnrichmentProvider
from .providers.completion_provider import CompletionEnrichmentProvider
from .provider_factory import create_enrichment_provider

__all__ = [
    "EnrichmentProvider",
    "EnrichmentResult",
    "KeywordEnrichmentProvider",
    "CompletionEnrichmentProvider",
    "create_enrichment_provider",
]
