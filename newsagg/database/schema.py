"""
NewsAgg Database Schema
=======================

SQLite schema for the ingestion pipeline:
- sources: configured RSS/Atom feeds with health counters
- categories: article categories (seeded and auto-created)
- articles: ingested articles, unique per source URL
"""

import sqlite3
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"sources", "categories", "articles"}


class DatabaseSchema:
    """Schema manager for the NewsAgg SQLite database."""

    def __init__(self, db_path: str = "data/newsagg.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all tables and indexes if they do not exist."""
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("PRAGMA foreign_keys = ON")

            self._create_sources_table(conn)
            self._create_categories_table(conn)
            self._create_articles_table(conn)
            self._create_indexes(conn)

            conn.commit()
            logger.info("Database schema created successfully")
        finally:
            conn.close()

    def _create_sources_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sources (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                feed_url TEXT UNIQUE NOT NULL,
                website_url TEXT,
                description TEXT,
                active BOOLEAN DEFAULT TRUE,
                error_count INTEGER DEFAULT 0 CHECK (error_count >= 0),
                last_error TEXT,
                last_updated TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_categories_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS categories (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT UNIQUE NOT NULL,
                description TEXT,
                color_code TEXT DEFAULT '#6c757d',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_articles_table(self, conn: sqlite3.Connection) -> None:
        """Articles are unique per source_url; the constraint is the dedup guard."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS articles (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                content TEXT NOT NULL,
                summary TEXT,
                source_url TEXT UNIQUE NOT NULL,
                image_url TEXT,
                published_at TIMESTAMP,
                status TEXT NOT NULL DEFAULT 'PENDING'
                    CHECK (status IN ('DRAFT', 'PENDING', 'PUBLISHED', 'REJECTED')),
                category_id INTEGER,
                source_id INTEGER,
                author_id INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE SET NULL,
                FOREIGN KEY (source_id) REFERENCES sources(id) ON DELETE SET NULL
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_articles_status ON articles(status)",
            "CREATE INDEX IF NOT EXISTS idx_articles_published ON articles(published_at)",
            "CREATE INDEX IF NOT EXISTS idx_articles_source ON articles(source_id)",
            "CREATE INDEX IF NOT EXISTS idx_articles_category ON articles(category_id)",
            "CREATE INDEX IF NOT EXISTS idx_sources_active ON sources(active)",
        ]
        for index_sql in indexes:
            conn.execute(index_sql)

    def drop_tables(self) -> None:
        """Drop all tables (for tests and resets)."""
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("PRAGMA foreign_keys = OFF")
            for table in ("articles", "categories", "sources"):
                conn.execute(f"DROP TABLE IF EXISTS {table}")
            conn.commit()
            logger.warning("All database tables dropped")
        finally:
            conn.close()

    def get_connection(self) -> sqlite3.Connection:
        """Plain connection with foreign keys enabled."""
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.row_factory = sqlite3.Row
        return conn

    def verify_schema(self) -> bool:
        """Check that every expected table exists."""
        conn = None
        try:
            conn = self.get_connection()
            cursor = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            tables = {row[0] for row in cursor.fetchall()}

            missing = EXPECTED_TABLES - tables
            if missing:
                logger.error(f"Missing tables: {sorted(missing)}")
                return False

            conn.execute("PRAGMA foreign_key_check")
            logger.info("Database schema verification passed")
            return True

        except sqlite3.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False
        finally:
            if conn is not None:
                conn.close()


def create_tables(db_path: str = "data/newsagg.db") -> None:
    """Create the database tables at ``db_path``."""
    DatabaseSchema(db_path).create_tables()
