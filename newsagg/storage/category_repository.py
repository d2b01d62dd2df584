"""
Category Repository
===================

Category lookup and on-the-fly creation for classified articles.
"""

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import Category
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode

AUTO_CATEGORY_DESCRIPTION = "Автоматически созданная категория"
AUTO_CATEGORY_COLOR = "#6c757d"


class CategoryRepository:
    """Repository for article categories."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("category_repository")

    def find_by_name(self, name: str) -> Optional[Category]:
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM categories WHERE name = ?", (name,)
                ).fetchone()
                return self._row_to_category(row) if row else None
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to look up category {name}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def create_category(self, category: Category) -> Category:
        """Insert a category, returning the stored row.

        A concurrent insert of the same name is not an error: the existing
        row is returned instead.
        """
        try:
            with self.db.get_connection() as conn:
                conn.execute(
                    """
                    INSERT OR IGNORE INTO categories (name, description, color_code, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        category.name,
                        category.description,
                        category.color_code,
                        (category.created_at or datetime.now(timezone.utc)).isoformat(),
                    ),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create category {category.name}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        stored = self.find_by_name(category.name)
        if stored is None:
            raise DatabaseError(
                f"Category {category.name} missing after insert",
                error_code=ErrorCode.DATABASE_CONSTRAINT,
            )
        return stored

    def find_or_create(self, name: str) -> Category:
        """Return the category called ``name``, creating it if needed."""
        existing = self.find_by_name(name)
        if existing:
            return existing

        self.logger.info(f"Creating category on the fly: {name}")
        return self.create_category(
            Category(
                name=name,
                description=AUTO_CATEGORY_DESCRIPTION,
                color_code=AUTO_CATEGORY_COLOR,
            )
        )

    def list_categories(self) -> List[Category]:
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute("SELECT * FROM categories ORDER BY name").fetchall()
                return [self._row_to_category(row) for row in rows]
        except sqlite3.Error as e:
            self.logger.error(f"Failed to list categories: {e}")
            return []

    def _row_to_category(self, row) -> Category:
        return Category(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            color_code=row["color_code"] or AUTO_CATEGORY_COLOR,
            created_at=row["created_at"],
        )
