"""
Ingestion Pipeline Orchestrator
===============================

Drives one ingestion run: for every active source the feed is downloaded,
the first entries are deduplicated, extracted, enriched and stored as
articles awaiting moderation, and the source outcome is recorded with the
health tracker.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

import aiohttp

from ..ai.provider_factory import create_enrichment_provider
from ..ai.providers.base import EnrichmentProvider, EnrichmentResult
from ..ai.providers.keyword_provider import KeywordEnrichmentProvider
from ..config.settings import NewsAggSettings, get_settings
from ..database.connection import DatabaseConnection
from ..database.models import Article, ArticleStatus, Source
from ..ingestion.content_extractor import ContentExtractor
from ..ingestion.image_resolver import ImageResolver
from ..ingestion.text_sanitizer import TextSanitizer
from ..storage.article_repository import ArticleRepository
from ..storage.category_repository import CategoryRepository
from ..storage.source_repository import SourceRepository
from ..utils.exceptions import SourceManagementError, ErrorCode
from ..utils.logging import get_logger_for_component, PerformanceLogger

from .feed_reader import FeedEntry, FeedReader
from .source_health import SourceHealthTracker


@dataclass
class SourceRunResult:
    """Outcome of ingesting one source."""
    source_id: Optional[int]
    source_name: str
    entries_in_feed: int = 0
    processed: int = 0
    new: int = 0
    duplicates: int = 0
    skipped_short: int = 0
    errors: int = 0
    success: bool = True
    error: Optional[str] = None
    duration_seconds: float = 0.0


@dataclass
class IngestionRunResult:
    """Totals of one run over many sources."""
    sources: List[SourceRunResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_seconds: float = 0.0

    @property
    def sources_processed(self) -> int:
        return len(self.sources)

    @property
    def sources_failed(self) -> int:
        return sum(1 for result in self.sources if not result.success)

    @property
    def new_articles(self) -> int:
        return sum(result.new for result in self.sources)

    @property
    def duplicates(self) -> int:
        return sum(result.duplicates for result in self.sources)

    @property
    def skipped_short(self) -> int:
        return sum(result.skipped_short for result in self.sources)

    @property
    def errors(self) -> int:
        return sum(result.errors for result in self.sources)


class IngestionPipeline:
    """Feed ingestion orchestrator."""

    def __init__(
        self,
        db_connection: DatabaseConnection,
        settings: Optional[NewsAggSettings] = None,
        feed_reader: Optional[FeedReader] = None,
        extractor: Optional[ContentExtractor] = None,
        image_resolver: Optional[ImageResolver] = None,
        enrichment: Optional[EnrichmentProvider] = None,
        health: Optional[SourceHealthTracker] = None,
    ):
        """Initialize the pipeline.

        Args:
            db_connection: Database connection manager
            settings: Application settings (global settings by default)
            feed_reader: Feed downloader
            extractor: Article page extractor
            image_resolver: Image selection rules
            enrichment: Category/summary provider
            health: Source health tracker
        """
        self.db = db_connection
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("pipeline")

        self.feed_reader = feed_reader or FeedReader()
        self.image_resolver = image_resolver or ImageResolver()
        self.extractor = extractor or ContentExtractor(image_resolver=self.image_resolver)
        self.sanitizer = TextSanitizer()
        self.enrichment = enrichment or create_enrichment_provider(self.settings)
        self.fallback_enrichment = KeywordEnrichmentProvider()
        self.health = health or SourceHealthTracker(
            db_connection, self.settings.health.error_threshold
        )

        self.source_repo = SourceRepository(db_connection)
        self.article_repo = ArticleRepository(db_connection)
        self.category_repo = CategoryRepository(db_connection)

    async def ingest_all(self, sources: Optional[List[Source]] = None) -> IngestionRunResult:
        """Ingest every active source, isolating failures per source."""
        if sources is None:
            sources = self.source_repo.list_sources(active_only=True)
        sources = [source for source in sources if source.active]

        run = IngestionRunResult()
        self.logger.info(f"Starting ingestion run for {len(sources)} active sources")

        with PerformanceLogger(self.logger, "ingestion run", source_count=len(sources)) as perf:
            async with self.extractor.get_session() as session:
                parallel = self.settings.ingestion.parallel_sources
                if parallel > 1:
                    semaphore = asyncio.Semaphore(parallel)

                    async def bounded(source: Source) -> SourceRunResult:
                        async with semaphore:
                            return await self.ingest_one(source, session)

                    run.sources = list(await asyncio.gather(*(bounded(s) for s in sources)))
                else:
                    for source in sources:
                        run.sources.append(await self.ingest_one(source, session))

        run.duration_seconds = perf.duration
        self.logger.info(
            f"Ingestion run finished: {run.new_articles} new, {run.duplicates} duplicates, "
            f"{run.skipped_short} too short, {run.errors} errors, "
            f"{run.sources_failed}/{run.sources_processed} sources failed",
            extra={
                'new_articles': run.new_articles,
                'sources_failed': run.sources_failed,
                'duration_seconds': run.duration_seconds,
            },
        )
        return run

    async def ingest_source_id(self, source_id: int) -> SourceRunResult:
        """Ingest a single source by id."""
        source = self.source_repo.get_source(source_id)
        if source is None:
            raise SourceManagementError(
                f"Source {source_id} not found",
                source_id=source_id,
                error_code=ErrorCode.SOURCE_NOT_FOUND,
            )
        return await self.ingest_one(source)

    async def ingest_one(
        self, source: Source, session: Optional[aiohttp.ClientSession] = None
    ) -> SourceRunResult:
        """Ingest one source. Never raises for feed, entry or storage problems."""
        if session is None:
            async with self.extractor.get_session() as own_session:
                return await self.ingest_one(source, own_session)

        result = SourceRunResult(source_id=source.id, source_name=source.name)
        logger = get_logger_for_component("pipeline", source_name=source.name)

        if not source.active:
            logger.info("Source is disabled, skipping")
            result.success = False
            result.error = "Source is disabled"
            return result

        with PerformanceLogger(logger, f"ingest {source.name}", source_id=source.id) as perf:
            try:
                entries = await self.feed_reader.read(source.feed_url, session)
            except Exception as e:
                result.success = False
                result.error = str(e)
                logger.warning(f"Feed ingestion failed: {e}")
                self._record_health(source, failure=str(e))
            else:
                result.entries_in_feed = len(entries)
                for entry in entries[: self.settings.ingestion.max_articles_per_source]:
                    result.processed += 1
                    try:
                        outcome = await self._process_entry(entry, source, session)
                    except Exception as e:
                        result.errors += 1
                        logger.error(f"Failed to process entry {entry.link}: {e}", exc_info=True)
                        continue
                    if outcome == "new":
                        result.new += 1
                    elif outcome == "duplicate":
                        result.duplicates += 1
                    elif outcome == "short":
                        result.skipped_short += 1

                self._record_health(source)

        result.duration_seconds = perf.duration
        logger.info(
            f"{result.new} new, {result.duplicates} duplicates, "
            f"{result.skipped_short} too short, {result.errors} errors "
            f"out of {result.processed} entries",
        )
        return result

    async def _process_entry(
        self, entry: FeedEntry, source: Source, session: aiohttp.ClientSession
    ) -> str:
        """Process one feed entry.

        Returns:
            'new', 'duplicate' or 'short'
        """
        url = (entry.link or "").strip()
        if not url:
            raise ValueError("Entry has no link")

        if self.article_repo.exists_by_url(url):
            return "duplicate"

        title = self.sanitizer.clean(entry.title)
        if not title:
            raise ValueError("Entry has no title")

        soup = await self.extractor.fetch_document(url, session)
        body = self.extractor.extract_text(soup, url)
        if not body:
            body = self.sanitizer.clean(entry.description)
        if not body and entry.contents:
            body = self.sanitizer.clean(entry.contents[0])

        if len(body or "") < self.settings.ingestion.min_content_length:
            self.logger.debug(f"Skipping {url}: {len(body or '')} chars of content")
            return "short"

        image_url = (
            self.image_resolver.resolve_from_entry(entry)
            or self.extractor.extract_image_from_document(soup, url)
        )
        published_at = entry.published_at or datetime.now(timezone.utc)

        enrichment = await self._enrich(title, body)
        category = self.category_repo.find_or_create(enrichment.category)

        article = Article(
            title=title,
            content=body,
            summary=enrichment.summary,
            source_url=url,
            image_url=image_url,
            published_at=published_at,
            status=ArticleStatus.PENDING,
            category_id=category.id,
            source_id=source.id,
        )
        article_id = self.article_repo.save_article(article)
        if article_id is None:
            return "duplicate"

        self.logger.info(
            f"Saved article {article_id}: {title[:60]}",
            extra={
                'article_id': article_id,
                'category': enrichment.category,
                'enrichment_provider': enrichment.provider,
            },
        )
        return "new"

    async def _enrich(self, title: str, body: str) -> EnrichmentResult:
        try:
            return await self.enrichment.enrich(title, body)
        except Exception as e:
            self.logger.warning(f"Enrichment failed, using keyword rules: {e}")
            return self.fallback_enrichment.enrich_sync(title, body)

    def _record_health(self, source: Source, failure: Optional[str] = None) -> None:
        try:
            if failure is None:
                self.health.record_success(source.id)
            else:
                self.health.record_failure(source.id, failure)
        except Exception as e:
            self.logger.error(f"Could not record health of source {source.name}: {e}")

    async def close(self) -> None:
        await self.enrichment.close()
