"""
Source Repository
=================

Data access for configured feed sources.
"""

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

from ..database.connection import DatabaseConnection
from ..database.models import Source
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode

UPDATABLE_FIELDS = (
    "name",
    "feed_url",
    "website_url",
    "description",
    "active",
    "error_count",
    "last_error",
    "last_updated",
)


def _to_db_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SourceRepository:
    """Repository for feed sources."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("source_repository")

    def create_source(self, source: Source) -> int:
        """Insert a source and return its id.

        Raises:
            DatabaseError: On constraint violation (duplicate feed URL) or
                any other storage failure
        """
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO sources (
                        name, feed_url, website_url, description, active,
                        error_count, last_error, last_updated, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        source.name,
                        source.feed_url,
                        source.website_url,
                        source.description,
                        source.active,
                        source.error_count,
                        source.last_error,
                        _to_db_value(source.last_updated),
                        _to_db_value(source.created_at or datetime.now(timezone.utc)),
                    ),
                )
                conn.commit()
                source_id = cursor.lastrowid

            self.logger.info(f"Created source {source_id}: {source.name} ({source.feed_url})")
            return source_id

        except sqlite3.IntegrityError as e:
            raise DatabaseError(
                f"Source with feed URL {source.feed_url} already exists",
                error_code=ErrorCode.DATABASE_CONSTRAINT,
                recoverable=False,
            ) from e
        except sqlite3.Error as e:
            self.logger.error(f"Failed to create source: {e}")
            raise DatabaseError(
                f"Failed to create source: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_source(self, source_id: int) -> Optional[Source]:
        """Fetch a source by id."""
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM sources WHERE id = ?", (source_id,)
                ).fetchone()
                return self._row_to_source(row) if row else None
        except sqlite3.Error as e:
            self.logger.error(f"Failed to get source {source_id}: {e}")
            raise DatabaseError(
                f"Failed to get source {source_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def get_source_by_feed_url(self, feed_url: str) -> Optional[Source]:
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM sources WHERE feed_url = ?", (feed_url.strip(),)
                ).fetchone()
                return self._row_to_source(row) if row else None
        except sqlite3.Error as e:
            self.logger.error(f"Failed to get source by URL {feed_url}: {e}")
            return None

    def list_sources(self, active_only: bool = False) -> List[Source]:
        """All sources ordered by id, optionally only the active ones."""
        query = "SELECT * FROM sources"
        if active_only:
            query += " WHERE active = 1"
        query += " ORDER BY id"

        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(query).fetchall()
                return [self._row_to_source(row) for row in rows]
        except sqlite3.Error as e:
            self.logger.error(f"Failed to list sources: {e}")
            raise DatabaseError(
                f"Failed to list sources: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def search_by_name(self, fragment: str) -> List[Source]:
        """Case-insensitive substring search on the source name."""
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    "SELECT * FROM sources ORDER BY name"
                ).fetchall()
        except sqlite3.Error as e:
            self.logger.error(f"Failed to search sources: {e}")
            return []

        # SQLite LIKE only folds ASCII; Cyrillic names need Python casefold
        needle = fragment.casefold()
        return [self._row_to_source(row) for row in rows if needle in row["name"].casefold()]

    def update_source(self, source_id: int, **kwargs) -> bool:
        """Update whitelisted fields of a source.

        Returns:
            True if a row was updated
        """
        fields = []
        values = []
        for field, value in kwargs.items():
            if field in UPDATABLE_FIELDS:
                fields.append(f"{field} = ?")
                values.append(_to_db_value(value))

        if not fields:
            self.logger.warning(f"No valid fields to update for source {source_id}")
            return False

        values.append(source_id)
        query = f"UPDATE sources SET {', '.join(fields)} WHERE id = ?"

        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(query, values)
                conn.commit()
                return cursor.rowcount > 0
        except sqlite3.IntegrityError as e:
            raise DatabaseError(
                f"Update of source {source_id} violates a constraint: {e}",
                error_code=ErrorCode.DATABASE_CONSTRAINT,
                recoverable=False,
            ) from e
        except sqlite3.Error as e:
            self.logger.error(f"Failed to update source {source_id}: {e}")
            raise DatabaseError(
                f"Failed to update source {source_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def delete_source(self, source_id: int) -> bool:
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute("DELETE FROM sources WHERE id = ?", (source_id,))
                conn.commit()
                deleted = cursor.rowcount > 0
        except sqlite3.Error as e:
            self.logger.error(f"Failed to delete source {source_id}: {e}")
            raise DatabaseError(
                f"Failed to delete source {source_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        if deleted:
            self.logger.info(f"Deleted source {source_id}")
        return deleted

    def get_statistics(self) -> Dict[str, Any]:
        """Counts of total, active, failing and disabled sources."""
        try:
            with self.db.get_connection() as conn:
                stats = conn.execute(
                    """
                    SELECT
                        COUNT(*) as total_sources,
                        COUNT(CASE WHEN active = 1 THEN 1 END) as active_sources,
                        COUNT(CASE WHEN error_count > 0 THEN 1 END) as failing_sources,
                        COUNT(CASE WHEN active = 0 THEN 1 END) as disabled_sources
                    FROM sources
                """
                ).fetchone()
                return dict(stats) if stats else {}
        except sqlite3.Error as e:
            self.logger.error(f"Failed to get source statistics: {e}")
            return {}

    def _row_to_source(self, row) -> Source:
        return Source(
            id=row["id"],
            name=row["name"],
            feed_url=row["feed_url"],
            website_url=row["website_url"],
            description=row["description"],
            active=bool(row["active"]),
            error_count=row["error_count"] or 0,
            last_error=row["last_error"],
            last_updated=row["last_updated"],
            created_at=row["created_at"],
        )
