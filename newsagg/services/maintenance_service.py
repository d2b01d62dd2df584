"""
Maintenance Service
===================

One-off data fixes run from the CLI.
"""

from ..database.connection import DatabaseConnection
from ..ingestion.text_sanitizer import TextSanitizer
from ..storage.article_repository import ArticleRepository
from ..utils.logging import get_logger_for_component, PerformanceLogger


class MaintenanceService:
    """Housekeeping over stored articles."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.articles = ArticleRepository(db_connection)
        self.sanitizer = TextSanitizer()
        self.logger = get_logger_for_component("maintenance")

    def clean_summaries(self) -> int:
        """Re-clean every stored summary.

        Summaries stored before the current cleanup rules may still carry
        breadcrumbs, registration prompts or a leading source name.

        Returns:
            Number of articles whose summary changed
        """
        with PerformanceLogger(self.logger, "summary cleanup"):
            updates = []
            for article_id, summary, source_name in self.articles.iter_summaries():
                cleaned = self.sanitizer.clean_summary(summary, source_name)
                if cleaned and cleaned != summary:
                    updates.append((cleaned, article_id))

            changed = self.articles.update_summaries(updates)

        self.logger.info(f"Cleaned {changed} article summaries")
        return changed
