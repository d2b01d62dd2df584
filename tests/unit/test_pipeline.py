"""
Unit Tests for the Ingestion Pipeline
=====================================

Tests for per-source processing: entry cap, deduplication, content floor,
enrichment fallback, error isolation and source health bookkeeping. Feed
download and page extraction are mocked; storage is a real database.
"""

import pytest
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

from newsagg.ai.providers.keyword_provider import KeywordEnrichmentProvider
from newsagg.config.settings import IngestionSettings, NewsAggSettings
from newsagg.database.models import Article, ArticleStatus, Source
from newsagg.processing.feed_reader import FeedEntry
from newsagg.processing.pipeline import IngestionPipeline
from newsagg.processing.source_health import SourceHealthTracker
from newsagg.storage.article_repository import ArticleRepository
from newsagg.storage.category_repository import CategoryRepository
from newsagg.storage.source_repository import SourceRepository
from newsagg.utils.exceptions import FeedFetchError, SourceManagementError

FULL_TEXT = (
    "Совет директоров Банка России сохранил ключевую ставку на прежнем уровне. "
    "Регулятор отметил замедление инфляции и высокий спрос на кредиты. "
    "Следующее заседание по ставке пройдет в конце квартала."
)


def _entries(count, prefix="https://news.example.com/item"):
    return [
        FeedEntry(
            link=f"{prefix}/{i}",
            title=f"<b>Новость</b> номер {i}",
            description="Короткое описание",
            published_at=datetime(2024, 9, 5, 12, i % 60, tzinfo=timezone.utc),
        )
        for i in range(1, count + 1)
    ]


def _extractor(text=FULL_TEXT, image=None):
    extractor = Mock()

    @asynccontextmanager
    async def get_session():
        yield Mock(name="session")

    extractor.get_session = get_session
    extractor.fetch_document = AsyncMock(return_value=Mock(name="soup"))
    extractor.extract_text = Mock(return_value=text)
    extractor.extract_image_from_document = Mock(return_value=image)
    return extractor


def _reader(entries=None, error=None):
    reader = Mock()
    if error is not None:
        reader.read = AsyncMock(side_effect=error)
    else:
        reader.read = AsyncMock(return_value=entries or [])
    return reader


class TestIngestOne:
    """Test processing of a single source."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_connection, sample_source):
        self.db = db_connection
        self.source = sample_source
        self.articles = ArticleRepository(db_connection)
        self.sources = SourceRepository(db_connection)

    def _pipeline(self, reader, extractor=None, enrichment=None, settings=None):
        return IngestionPipeline(
            self.db,
            settings=settings or NewsAggSettings(),
            feed_reader=reader,
            extractor=extractor or _extractor(),
            enrichment=enrichment or KeywordEnrichmentProvider(),
            health=SourceHealthTracker(self.db, error_threshold=5),
        )

    def _store(self, url):
        self.articles.save_article(
            Article(title="Уже есть", content=FULL_TEXT, source_url=url, source_id=self.source.id)
        )

    @pytest.mark.asyncio
    async def test_cap_and_dedup(self):
        entries = _entries(15)
        for i in (2, 5, 8):
            self._store(entries[i - 1].link)
        extractor = _extractor()
        pipeline = self._pipeline(_reader(entries), extractor)

        result = await pipeline.ingest_one(self.source)

        assert result.success
        assert result.entries_in_feed == 15
        assert result.processed == 10
        assert result.new == 7
        assert result.duplicates == 3
        assert result.errors == 0
        assert self.articles.get_article_count() == 10

        fetched = [call.args[0] for call in extractor.fetch_document.call_args_list]
        assert len(fetched) == 7
        assert not any(url.endswith(("/11", "/12", "/13", "/14", "/15")) for url in fetched)
        assert not self.articles.exists_by_url(entries[10].link)

    @pytest.mark.asyncio
    async def test_stored_article_fields(self):
        entry = _entries(1)[0]
        entry.enclosures = [{"href": "https://cdn.example.com/photo.jpg", "type": "image/jpeg"}]
        extractor = _extractor(image="https://cdn.example.com/page.jpg")
        pipeline = self._pipeline(_reader([entry]), extractor)

        await pipeline.ingest_one(self.source)

        article = self.articles.get_by_url(entry.link)
        assert article.title == "Новость номер 1"
        assert article.content == FULL_TEXT
        assert article.status == ArticleStatus.PENDING
        assert article.source_id == self.source.id
        assert article.author_id is None
        assert article.image_url == "https://cdn.example.com/photo.jpg"
        assert article.published_at == entry.published_at
        assert article.summary

        category = CategoryRepository(self.db).find_by_name("Экономика")
        assert article.category_id == category.id

    @pytest.mark.asyncio
    async def test_page_image_when_entry_has_none(self):
        entry = _entries(1)[0]
        pipeline = self._pipeline(_reader([entry]), _extractor(image="https://cdn.example.com/page.jpg"))

        await pipeline.ingest_one(self.source)

        assert self.articles.get_by_url(entry.link).image_url == "https://cdn.example.com/page.jpg"

    @pytest.mark.asyncio
    async def test_idempotent_second_run(self):
        entries = _entries(5)
        pipeline = self._pipeline(_reader(entries))

        first = await pipeline.ingest_one(self.source)
        second = await pipeline.ingest_one(self.source)

        assert first.new == 5
        assert second.new == 0
        assert second.duplicates == 5
        assert self.articles.get_article_count() == 5

    @pytest.mark.asyncio
    async def test_insert_conflict_counts_as_duplicate(self):
        entry = _entries(1)[0]
        self._store(entry.link)
        pipeline = self._pipeline(_reader([entry]))
        # Another writer stored the URL after the existence check
        pipeline.article_repo.exists_by_url = Mock(return_value=False)

        result = await pipeline.ingest_one(self.source)

        assert result.success
        assert result.new == 0
        assert result.duplicates == 1
        assert result.errors == 0
        assert self.articles.get_article_count() == 1
        assert self.articles.get_by_url(entry.link).title == "Уже есть"

    @pytest.mark.asyncio
    async def test_description_fallback_and_content_floor(self):
        long_entry, short_entry = _entries(2)
        long_entry.description = f"<p>{FULL_TEXT}</p>"
        short_entry.description = "Слишком коротко"
        pipeline = self._pipeline(_reader([long_entry, short_entry]), _extractor(text=None))

        result = await pipeline.ingest_one(self.source)

        assert result.new == 1
        assert result.skipped_short == 1
        assert self.articles.get_by_url(long_entry.link).content == FULL_TEXT
        assert not self.articles.exists_by_url(short_entry.link)

    @pytest.mark.asyncio
    async def test_content_block_fallback(self):
        entry = _entries(1)[0]
        entry.description = ""
        entry.contents = [f"<div>{FULL_TEXT}</div>"]
        pipeline = self._pipeline(_reader([entry]), _extractor(text=None))

        result = await pipeline.ingest_one(self.source)

        assert result.new == 1

    @pytest.mark.asyncio
    async def test_entry_error_is_isolated(self):
        entries = _entries(3)
        extractor = _extractor()
        extractor.extract_text = Mock(side_effect=[FULL_TEXT, RuntimeError("parser crashed"), FULL_TEXT])
        pipeline = self._pipeline(_reader(entries), extractor)

        result = await pipeline.ingest_one(self.source)

        assert result.success
        assert result.new == 2
        assert result.errors == 1
        assert self.sources.get_source(self.source.id).error_count == 0

    @pytest.mark.asyncio
    async def test_entry_without_link_counts_as_error(self):
        entries = _entries(2)
        entries[0].link = "  "
        pipeline = self._pipeline(_reader(entries))

        result = await pipeline.ingest_one(self.source)

        assert result.errors == 1
        assert result.new == 1

    @pytest.mark.asyncio
    async def test_enrichment_failure_uses_keywords(self):
        enrichment = Mock()
        enrichment.enrich = AsyncMock(side_effect=RuntimeError("backend exploded"))
        pipeline = self._pipeline(_reader(_entries(1)), enrichment=enrichment)

        result = await pipeline.ingest_one(self.source)

        assert result.new == 1
        article = self.articles.get_by_url(_entries(1)[0].link)
        assert article.category_id == CategoryRepository(self.db).find_by_name("Экономика").id

    @pytest.mark.asyncio
    async def test_feed_failure_recorded(self):
        pipeline = self._pipeline(_reader(error=FeedFetchError("HTTP 503: Service Unavailable")))

        result = await pipeline.ingest_one(self.source)

        assert not result.success
        assert "503" in result.error
        source = self.sources.get_source(self.source.id)
        assert source.error_count == 1
        assert "503" in source.last_error

    @pytest.mark.asyncio
    async def test_success_clears_previous_errors(self):
        SourceHealthTracker(self.db).record_failure(self.source.id, "old failure")
        pipeline = self._pipeline(_reader(_entries(1)))

        await pipeline.ingest_one(self.source)

        source = self.sources.get_source(self.source.id)
        assert source.error_count == 0
        assert source.last_updated is not None

    @pytest.mark.asyncio
    async def test_success_recorded_even_when_all_entries_fail(self):
        SourceHealthTracker(self.db).record_failure(self.source.id, "old failure")
        extractor = _extractor()
        extractor.extract_text = Mock(side_effect=RuntimeError("always"))
        pipeline = self._pipeline(_reader(_entries(2)), extractor)

        result = await pipeline.ingest_one(self.source)

        assert result.errors == 2
        assert self.sources.get_source(self.source.id).error_count == 0

    @pytest.mark.asyncio
    async def test_disabled_source_not_fetched(self):
        reader = _reader(_entries(1))
        self.source.active = False
        pipeline = self._pipeline(reader)

        result = await pipeline.ingest_one(self.source)

        assert not result.success
        reader.read.assert_not_called()

    @pytest.mark.asyncio
    async def test_custom_cap(self):
        settings = NewsAggSettings(ingestion=IngestionSettings(max_articles_per_source=3))
        pipeline = self._pipeline(_reader(_entries(6)), settings=settings)

        result = await pipeline.ingest_one(self.source)

        assert result.processed == 3
        assert result.new == 3


class TestIngestAll:
    """Test runs over many sources."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_connection):
        self.db = db_connection
        repo = SourceRepository(db_connection)
        self.good_id = repo.create_source(Source(name="Хорошая", feed_url="https://good.example.com/rss"))
        self.bad_id = repo.create_source(Source(name="Плохая", feed_url="https://bad.example.com/rss"))
        self.off_id = repo.create_source(
            Source(name="Выключена", feed_url="https://off.example.com/rss", active=False)
        )
        self.sources = repo

    def _reader(self):
        async def read(feed_url, session):
            if "bad" in feed_url:
                raise FeedFetchError("Request timeout after 10s", feed_url=feed_url)
            return _entries(2, prefix=feed_url.replace("/rss", ""))

        reader = Mock()
        reader.read = AsyncMock(side_effect=read)
        return reader

    def _pipeline(self, reader, parallel=1):
        settings = NewsAggSettings(ingestion=IngestionSettings(parallel_sources=parallel))
        return IngestionPipeline(
            self.db,
            settings=settings,
            feed_reader=reader,
            extractor=_extractor(),
            enrichment=KeywordEnrichmentProvider(),
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("parallel", [1, 3])
    async def test_failures_isolated_per_source(self, parallel):
        reader = self._reader()
        run = await self._pipeline(reader, parallel).ingest_all()

        assert run.sources_processed == 2
        assert run.sources_failed == 1
        assert run.new_articles == 2
        assert reader.read.call_count == 2
        assert self.sources.get_source(self.bad_id).error_count == 1
        assert self.sources.get_source(self.good_id).error_count == 0
        assert self.sources.get_source(self.off_id).error_count == 0

    @pytest.mark.asyncio
    async def test_ingest_source_id(self):
        result = await self._pipeline(self._reader()).ingest_source_id(self.good_id)
        assert result.new == 2

    @pytest.mark.asyncio
    async def test_ingest_unknown_source_id(self):
        with pytest.raises(SourceManagementError):
            await self._pipeline(self._reader()).ingest_source_id(999999)

    @pytest.mark.asyncio
    async def test_explicit_source_list_skips_inactive(self):
        reader = self._reader()
        run = await self._pipeline(reader).ingest_all(self.sources.list_sources())

        assert run.sources_processed == 2
        assert all(call.args[0] != "https://off.example.com/rss" for call in reader.read.call_args_list)
