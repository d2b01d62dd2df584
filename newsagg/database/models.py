"""
NewsAgg Data Models
===================

Pydantic models mirroring the database schema. Feed and article URLs are
kept as plain strings: the article URL is the deduplication key and must be
stored exactly as the feed published it.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArticleStatus(str, Enum):
    """Moderation status of an article."""
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"

    @property
    def display_name(self) -> str:
        return _STATUS_DISPLAY_NAMES[self]


_STATUS_DISPLAY_NAMES = {
    ArticleStatus.DRAFT: "Черновик",
    ArticleStatus.PENDING: "На модерации",
    ArticleStatus.PUBLISHED: "Опубликована",
    ArticleStatus.REJECTED: "Отклонена",
}


class Source(BaseModel):
    """RSS/Atom feed source with health counters."""
    id: Optional[int] = Field(default=None, description="Database primary key")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    feed_url: str = Field(..., min_length=1, description="RSS/Atom feed URL")
    website_url: Optional[str] = Field(default=None, description="Publisher home page")
    description: Optional[str] = Field(default=None, max_length=1000)
    active: bool = Field(default=True, description="Whether the source is fetched")
    error_count: int = Field(default=0, ge=0, description="Consecutive ingestion failures")
    last_error: Optional[str] = Field(default=None, description="Most recent failure message")
    last_updated: Optional[datetime] = Field(default=None, description="Last successful ingestion")
    created_at: Optional[datetime] = Field(default_factory=_utcnow)

    @field_validator('name', 'feed_url')
    @classmethod
    def strip_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator('feed_url')
    @classmethod
    def validate_feed_url(cls, v):
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError("feed URL must use http or https")
        return v

    def is_healthy(self) -> bool:
        """Active with no recorded failures."""
        return self.active and self.error_count == 0

    def __str__(self) -> str:
        return f"Source({self.name}:{self.feed_url})"


class Category(BaseModel):
    """Article category."""
    id: Optional[int] = Field(default=None, description="Database primary key")
    name: str = Field(..., min_length=1, max_length=100, description="Unique category name")
    description: Optional[str] = Field(default=None, max_length=500)
    color_code: str = Field(default="#6c757d", pattern=r"^#[0-9a-fA-F]{6}$")
    created_at: Optional[datetime] = Field(default_factory=_utcnow)

    def __str__(self) -> str:
        return f"Category({self.name})"


class Article(BaseModel):
    """Ingested article awaiting moderation."""
    id: Optional[int] = Field(default=None, description="Database primary key")
    title: str = Field(..., min_length=1, max_length=1000, description="Cleaned title")
    content: str = Field(..., min_length=1, description="Cleaned article body")
    summary: Optional[str] = Field(default=None, description="Short summary")
    source_url: str = Field(..., min_length=1, description="Canonical article URL (dedup key)")
    image_url: Optional[str] = Field(default=None, description="Representative image")
    published_at: Optional[datetime] = Field(default=None, description="Publication time (UTC)")
    status: ArticleStatus = Field(default=ArticleStatus.PENDING)
    category_id: Optional[int] = Field(default=None)
    source_id: Optional[int] = Field(default=None)
    author_id: Optional[int] = Field(default=None, description="Always empty for ingested articles")
    created_at: Optional[datetime] = Field(default_factory=_utcnow)
    updated_at: Optional[datetime] = Field(default_factory=_utcnow)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Article title cannot be empty")
        return v[:1000]

    def __str__(self) -> str:
        return f"Article({self.title[:50]}...)"


SourceDict = Dict[str, Any]
ArticleDict = Dict[str, Any]
