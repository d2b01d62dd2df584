"""
Default Seed Data
=================

Categories and news sources installed into an empty database.
"""

from typing import Dict

from ..database.connection import DatabaseConnection
from ..database.models import Category, Source
from ..storage.category_repository import CategoryRepository
from ..storage.source_repository import SourceRepository
from ..utils.logging import get_logger_for_component

DEFAULT_CATEGORIES = [
    ("Технологии", "Новости из мира технологий и IT", "#007bff"),
    ("Политика", "Политические новости и события", "#dc3545"),
    ("Экономика", "Экономические новости и аналитика", "#28a745"),
    ("Спорт", "Спортивные новости и результаты", "#fd7e14"),
    ("Наука", "Научные открытия и исследования", "#6f42c1"),
    ("Культура", "Культурные события и искусство", "#e83e8c"),
    ("Здоровье", "Новости медицины и здравоохранения", "#20c997"),
    ("Образование", "Новости образования и науки", "#6c757d"),
    ("Общество", "Общественные события и социальные вопросы", "#ffc107"),
    ("Мир", "Международные новости", "#17a2b8"),
]

DEFAULT_SOURCES = [
    ("Хабр", "https://habr.com/ru/rss/hub/programming/", "https://habr.com"),
    ("РИА Новости", "https://ria.ru/export/rss2/archive/index.xml", "https://ria.ru"),
    ("Лента.ру", "https://lenta.ru/rss", "https://lenta.ru"),
    ("Газета.ру", "https://www.gazeta.ru/export/rss/first.xml", "https://gazeta.ru"),
    ("Ведомости", "https://www.vedomosti.ru/rss/news", "https://www.vedomosti.ru"),
]


def seed_defaults(db_connection: DatabaseConnection) -> Dict[str, int]:
    """Insert missing default categories and sources.

    Safe to run repeatedly: existing categories (by name) and sources (by
    feed URL) are left untouched.

    Returns:
        Number of categories and sources created
    """
    logger = get_logger_for_component("seed")
    category_repo = CategoryRepository(db_connection)
    source_repo = SourceRepository(db_connection)
    created = {"categories": 0, "sources": 0}

    for name, description, color_code in DEFAULT_CATEGORIES:
        if category_repo.find_by_name(name):
            continue
        category_repo.create_category(
            Category(name=name, description=description, color_code=color_code)
        )
        created["categories"] += 1

    for name, feed_url, website_url in DEFAULT_SOURCES:
        if source_repo.get_source_by_feed_url(feed_url):
            continue
        source_repo.create_source(
            Source(name=name, feed_url=feed_url, website_url=website_url, active=True)
        )
        created["sources"] += 1

    logger.info(
        f"Seeded {created['categories']} categories and {created['sources']} sources"
    )
    return created
