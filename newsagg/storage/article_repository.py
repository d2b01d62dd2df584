"""
Article Repository
==================

Article persistence. The ``source_url`` UNIQUE constraint is the
authoritative deduplication guard; ``exists_by_url`` is only a cheap
pre-check that avoids fetching pages for articles already stored.
"""

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional, Dict, Tuple

from ..database.models import Article, ArticleStatus
from ..database.connection import DatabaseConnection
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class ArticleRepository:
    """Repository for ingested articles."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("article_repository")

    def exists_by_url(self, source_url: str) -> bool:
        """Whether an article with exactly this URL is stored."""
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT 1 FROM articles WHERE source_url = ? LIMIT 1", (source_url,)
                ).fetchone()
                return row is not None
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to check article URL {source_url}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def save_article(self, article: Article) -> Optional[int]:
        """Insert a new article.

        Returns:
            The new article id, or None when an article with the same
            ``source_url`` already exists

        Raises:
            DatabaseError: For any other storage failure
        """
        now = datetime.now(timezone.utc)
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO articles (
                        title, content, summary, source_url, image_url, published_at,
                        status, category_id, source_id, author_id, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        article.title,
                        article.content,
                        article.summary,
                        article.source_url,
                        article.image_url,
                        _iso(article.published_at),
                        article.status.value,
                        article.category_id,
                        article.source_id,
                        article.author_id,
                        _iso(article.created_at or now),
                        _iso(article.updated_at or now),
                    ),
                )
                conn.commit()
                article_id = cursor.lastrowid

        except sqlite3.IntegrityError as e:
            if "articles.source_url" in str(e):
                self.logger.debug(f"Article already stored: {article.source_url}")
                return None
            raise DatabaseError(
                f"Failed to save article {article.source_url}: {e}",
                error_code=ErrorCode.DATABASE_CONSTRAINT,
                recoverable=False,
            ) from e
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to save article {article.source_url}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        self.logger.debug(f"Saved article {article_id}: {article.title[:60]}")
        return article_id

    def get_article(self, article_id: int) -> Optional[Article]:
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM articles WHERE id = ?", (article_id,)
                ).fetchone()
                return self._row_to_article(row) if row else None
        except sqlite3.Error as e:
            self.logger.error(f"Failed to get article {article_id}: {e}")
            return None

    def get_by_url(self, source_url: str) -> Optional[Article]:
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM articles WHERE source_url = ?", (source_url,)
                ).fetchone()
                return self._row_to_article(row) if row else None
        except sqlite3.Error as e:
            self.logger.error(f"Failed to get article {source_url}: {e}")
            return None

    def list_by_source(self, source_id: int, limit: int = 100) -> List[Article]:
        """Most recently published articles of one source."""
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM articles WHERE source_id = ?
                    ORDER BY published_at DESC, id DESC LIMIT ?
                    """,
                    (source_id, limit),
                ).fetchall()
                return [self._row_to_article(row) for row in rows]
        except sqlite3.Error as e:
            self.logger.error(f"Failed to list articles for source {source_id}: {e}")
            return []

    def iter_summaries(self) -> List[Tuple[int, str, Optional[str]]]:
        """``(article_id, summary, source_name)`` for every article with a summary."""
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT a.id, a.summary, s.name AS source_name
                    FROM articles a LEFT JOIN sources s ON s.id = a.source_id
                    WHERE a.summary IS NOT NULL AND a.summary != ''
                    ORDER BY a.id
                    """
                ).fetchall()
                return [(row["id"], row["summary"], row["source_name"]) for row in rows]
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to read article summaries: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def update_summaries(self, updates: List[Tuple[str, int]]) -> int:
        """Apply ``(summary, article_id)`` pairs in one transaction."""
        if not updates:
            return 0
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self.db.transaction() as conn:
                cursor = conn.executemany(
                    "UPDATE articles SET summary = ?, updated_at = ? WHERE id = ?",
                    [(summary, now, article_id) for summary, article_id in updates],
                )
                return cursor.rowcount
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to update summaries: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION,
            ) from e

    def get_article_count(self, status: Optional[ArticleStatus] = None) -> int:
        try:
            with self.db.get_connection() as conn:
                if status is None:
                    row = conn.execute("SELECT COUNT(*) FROM articles").fetchone()
                else:
                    row = conn.execute(
                        "SELECT COUNT(*) FROM articles WHERE status = ?", (status.value,)
                    ).fetchone()
                return row[0] if row else 0
        except sqlite3.Error as e:
            self.logger.error(f"Failed to count articles: {e}")
            return 0

    def get_source_article_stats(self) -> Dict[str, int]:
        """Article counts per source name."""
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT s.name AS source_name, COUNT(a.id) AS article_count
                    FROM sources s LEFT JOIN articles a ON a.source_id = s.id
                    GROUP BY s.id ORDER BY article_count DESC
                    """
                ).fetchall()
                return {row["source_name"]: row["article_count"] for row in rows}
        except sqlite3.Error as e:
            self.logger.error(f"Failed to get source article stats: {e}")
            return {}

    def _row_to_article(self, row) -> Article:
        return Article(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            summary=row["summary"],
            source_url=row["source_url"],
            image_url=row["image_url"],
            published_at=row["published_at"],
            status=ArticleStatus(row["status"]),
            category_id=row["category_id"],
            source_id=row["source_id"],
            author_id=row["author_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
