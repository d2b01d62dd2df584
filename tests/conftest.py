"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for NewsAgg tests.

- Session-scoped database file, schema created once
- clean_db empties all tables between tests
"""

import pytest
import tempfile
import os
import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

_TEST_DIR = Path(tempfile.gettempdir()) / "newsagg_tests"

# Set test environment variables before any imports
os.environ["NEWSAGG_DATABASE__PATH"] = str(_TEST_DIR / "newsagg_settings.db")
os.environ["NEWSAGG_LOGGING__FILE_PATH"] = ""
os.environ["NEWSAGG_LOGGING__CONSOLE_LOGGING"] = "false"
os.environ["NEWSAGG_AI__ENABLED"] = "false"
os.environ["NEWSAGG_DEBUG"] = "true"


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def session_test_db():
    """Session-scoped test database (created once for all tests).

    Database name: newsagg_test.db (easier to inspect/debug)
    """
    from newsagg.database.schema import DatabaseSchema

    _TEST_DIR.mkdir(exist_ok=True)
    db_path = _TEST_DIR / "newsagg_test.db"

    if db_path.exists():
        db_path.unlink()

    schema = DatabaseSchema(str(db_path))
    schema.create_tables()

    yield str(db_path)

    try:
        db_path.unlink()
    except FileNotFoundError:
        pass


@pytest.fixture
def clean_db(session_test_db):
    """Empty every table while keeping the schema."""
    from newsagg.database.connection import DatabaseConnection

    conn = DatabaseConnection(session_test_db, pool_size=2)

    with conn.get_connection() as db:
        # Order matters for foreign keys
        db.execute("DELETE FROM articles")
        db.execute("DELETE FROM categories")
        db.execute("DELETE FROM sources")
        db.commit()

    conn.close_all_connections()

    yield session_test_db


@pytest.fixture
def temp_db():
    """Isolated temporary database file with schema."""
    from newsagg.database.schema import DatabaseSchema

    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    DatabaseSchema(db_path).create_tables()

    yield db_path

    try:
        os.unlink(db_path)
    except FileNotFoundError:
        pass


@pytest.fixture
def db_connection(clean_db):
    """Database connection manager over a clean database."""
    from newsagg.database.connection import DatabaseConnection

    connection = DatabaseConnection(clean_db, pool_size=2)
    yield connection

    connection.close_all_connections()


@pytest.fixture
def sample_source(db_connection):
    """An active source stored in the database."""
    from newsagg.database.models import Source
    from newsagg.storage.source_repository import SourceRepository

    repo = SourceRepository(db_connection)
    source = Source(
        name="Тестовый источник",
        feed_url="https://example.com/rss.xml",
        website_url="https://example.com",
    )
    source.id = repo.create_source(source)
    return source


@pytest.fixture
def sample_article_text():
    """Russian body text long enough to pass the content floor."""
    return (
        "Центральный банк объявил о сохранении ключевой ставки на прежнем уровне. "
        "По словам регулятора, инфляция замедляется, а кредитование экономики растет. "
        "Аналитики ожидают снижения ставки в следующем квартале."
    )
