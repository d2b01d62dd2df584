"""
Enrichment provider selection.
"""

from typing import Optional

from .providers.base import EnrichmentProvider
from .providers.completion_provider import CompletionEnrichmentProvider
from .providers.keyword_provider import KeywordEnrichmentProvider
from ..config.settings import NewsAggSettings, get_settings
from ..utils.logging import get_logger_for_component


def create_enrichment_provider(settings: Optional[NewsAggSettings] = None) -> EnrichmentProvider:
    """Remote provider when the AI backend is enabled and configured, else keywords."""
    settings = settings or get_settings()
    logger = get_logger_for_component("ai")

    if settings.ai.enabled and settings.ai.api_url:
        logger.info(
            f"Using AI backend at {settings.ai.api_url} (model {settings.ai.effective_model})"
        )
        return CompletionEnrichmentProvider(settings.ai)

    logger.info("AI backend disabled, using keyword enrichment")
    return KeywordEnrichmentProvider()
