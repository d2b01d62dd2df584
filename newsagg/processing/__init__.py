"""
NewsAgg Processing Module
=========================

Feed download, source health tracking and the ingestion orchestrator.
"""

from .feed_reader import FeedReader, FeedEntry, FetchResult
from .source_health import SourceHealthTracker, SourceHealthStatus, SourceState
from .pipeline import IngestionPipeline, SourceRunResult, IngestionRunResult

__all__ = [
    'FeedReader',
    'FeedEntry',
    'FetchResult',
    'SourceHealthTracker',
    'SourceHealthStatus',
    'SourceState',
    'IngestionPipeline',
    'SourceRunResult',
    'IngestionRunResult',
]
