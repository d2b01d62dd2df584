"""
NewsAgg Storage Layer
=====================

Repository pattern implementations for data access abstraction.

This module provides:
- Source repository for feed source records
- Article repository with URL-based deduplication
- Category repository with find-or-create semantics
"""

from .source_repository import SourceRepository
from .article_repository import ArticleRepository
from .category_repository import CategoryRepository

__all__ = [
    "SourceRepository",
    "ArticleRepository",
    "CategoryRepository",
]
