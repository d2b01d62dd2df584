"""
Unit Tests for Seed Data and Maintenance
========================================
"""

import pytest

from newsagg.database.models import Article, Source
from newsagg.services.maintenance_service import MaintenanceService
from newsagg.services.seed_data import DEFAULT_CATEGORIES, DEFAULT_SOURCES, seed_defaults
from newsagg.storage.article_repository import ArticleRepository
from newsagg.storage.category_repository import CategoryRepository
from newsagg.storage.source_repository import SourceRepository


class TestSeedDefaults:
    def test_seed_is_idempotent(self, db_connection):
        first = seed_defaults(db_connection)
        second = seed_defaults(db_connection)

        assert first == {"categories": len(DEFAULT_CATEGORIES), "sources": len(DEFAULT_SOURCES)}
        assert second == {"categories": 0, "sources": 0}
        assert len(CategoryRepository(db_connection).list_categories()) == len(DEFAULT_CATEGORIES)
        assert all(s.active for s in SourceRepository(db_connection).list_sources())

    def test_existing_rows_untouched(self, db_connection):
        name, feed_url, _ = DEFAULT_SOURCES[0]
        repo = SourceRepository(db_connection)
        source_id = repo.create_source(Source(name="Свое имя", feed_url=feed_url, active=False))

        created = seed_defaults(db_connection)

        assert created["sources"] == len(DEFAULT_SOURCES) - 1
        source = repo.get_source(source_id)
        assert source.name == "Свое имя"
        assert not source.active


class TestMaintenanceService:
    """Test summary cleanup over stored articles."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_connection, sample_source):
        self.articles = ArticleRepository(db_connection)
        self.service = MaintenanceService(db_connection)
        self.source = sample_source

    def _save(self, url, summary):
        return self.articles.save_article(
            Article(
                title="Заголовок",
                content="Текст статьи",
                summary=summary,
                source_url=url,
                source_id=self.source.id,
            )
        )

    def test_clean_summaries(self):
        dirty = self._save(
            "https://example.com/1",
            "Главная / Экономика / Рубль укрепился. Чтобы дочитать статью, войдите или зарегистрируйтесь.",
        )
        prefixed = self._save("https://example.com/2", f"{self.source.name}: Нефть подорожала.")
        clean = self._save("https://example.com/3", "Курс не изменился.")

        assert self.service.clean_summaries() == 2

        assert self.articles.get_article(dirty).summary == "Рубль укрепился."
        assert self.articles.get_article(prefixed).summary == "Нефть подорожала."
        assert self.articles.get_article(clean).summary == "Курс не изменился."

    def test_second_pass_changes_nothing(self):
        self._save("https://example.com/1", f"{self.source.name} - Нефть подорожала.")

        assert self.service.clean_summaries() == 1
        assert self.service.clean_summaries() == 0

    def test_summary_emptied_by_cleanup_is_kept(self):
        article_id = self._save("https://example.com/1", self.source.name)

        assert self.service.clean_summaries() == 0
        assert self.articles.get_article(article_id).summary == self.source.name
