"""
Enrichment Providers
====================

Remote (chat completion) and deterministic (keyword) implementations of
the enrichment interface.
"""

from .base import EnrichmentProvider, EnrichmentResult
from .keyword_provider import KeywordEnrichmentProvider
from .completion_provider import CompletionEnrichmentProvider, BackendHealth

__all__ = [
    'EnrichmentProvider',
    'EnrichmentResult',
    'KeywordEnrichmentProvider',
    'CompletionEnrichmentProvider',
    'BackendHealth',
]
