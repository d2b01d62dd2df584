"""
NewsAgg - News Ingestion and Enrichment
=======================================

Pulls articles from RSS sources, extracts their full text and stores them
as drafts with an AI-assigned category and summary.

Main Components:
- Database: SQLite with connection pooling and schema management
- Configuration: Environment variables with Pydantic validation
- Ingestion: RSS reading, page extraction, text cleanup and image lookup
- AI Integration: OpenAI-compatible backend with keyword fallback rules
- Scheduler: Periodic ingestion over all active sources
"""

__version__ = "1.0.0"
__author__ = "NewsAgg Development Team"
__description__ = "RSS ingestion pipeline with full-text extraction and AI categorization"

# Core imports for easy access
from .config.settings import get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import NewsAggError

__all__ = [
    "get_settings",
    "get_db_manager",
    "DatabaseSchema",
    "configure_application_logging",
    "get_logger_for_component",
    "NewsAggError",
]
