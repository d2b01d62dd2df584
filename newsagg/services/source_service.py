"""
Source Administration Service
=============================

Operator-facing management of feed sources, shared by the CLI and any
future admin interface.
"""

from typing import Any, Dict, List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import Source
from ..processing.source_health import SourceHealthTracker, SourceHealthStatus
from ..storage.source_repository import SourceRepository
from ..utils.exceptions import SourceManagementError, ErrorCode
from ..utils.logging import get_logger_for_component
from ..utils.validators import URLValidator, validate_source_name


class SourceService:
    """Create, edit and switch feed sources."""

    def __init__(self, db_connection: DatabaseConnection, health: Optional[SourceHealthTracker] = None):
        """Initialize with database connection."""
        self.db = db_connection
        self.repository = SourceRepository(db_connection)
        self.health = health or SourceHealthTracker(db_connection)
        self.logger = get_logger_for_component("source_service")

    def create_source(
        self,
        name: str,
        feed_url: str,
        website_url: Optional[str] = None,
        description: Optional[str] = None,
        active: bool = True,
    ) -> Source:
        """Validate and store a new source.

        Raises:
            ValidationError: Invalid name or URL
            SourceManagementError: Feed URL already registered
        """
        name = validate_source_name(name)
        feed_url = URLValidator.validate_feed_url(feed_url)
        website_url = URLValidator.validate_optional_url(website_url, "website_url")

        existing = self.repository.get_source_by_feed_url(feed_url)
        if existing:
            raise SourceManagementError(
                f"Feed URL {feed_url} is already registered as '{existing.name}'",
                source_id=existing.id,
                error_code=ErrorCode.SOURCE_DUPLICATE,
                user_message="A source with this feed URL already exists",
            )

        source = Source(
            name=name,
            feed_url=feed_url,
            website_url=website_url,
            description=description,
            active=active,
        )
        source.id = self.repository.create_source(source)
        return source

    def update_source(self, source_id: int, **changes: Any) -> Source:
        """Apply validated changes to an existing source."""
        source = self.get_source(source_id)

        if "name" in changes:
            changes["name"] = validate_source_name(changes["name"])
        if "feed_url" in changes:
            changes["feed_url"] = URLValidator.validate_feed_url(changes["feed_url"])
            other = self.repository.get_source_by_feed_url(changes["feed_url"])
            if other and other.id != source.id:
                raise SourceManagementError(
                    f"Feed URL {changes['feed_url']} is already registered as '{other.name}'",
                    source_id=other.id,
                    error_code=ErrorCode.SOURCE_DUPLICATE,
                    user_message="A source with this feed URL already exists",
                )
        if "website_url" in changes:
            changes["website_url"] = URLValidator.validate_optional_url(
                changes["website_url"], "website_url"
            )

        active = changes.pop("active", None)
        if changes:
            self.repository.update_source(source_id, **changes)
        # Activation goes through the tracker so error counters are cleared
        if active is not None and bool(active) != source.active:
            self.health.toggle(source_id)
        return self.get_source(source_id)

    def delete_source(self, source_id: int) -> None:
        """Delete a source; its articles keep existing without a source."""
        if not self.repository.delete_source(source_id):
            raise SourceManagementError(
                f"Source {source_id} not found", source_id=source_id,
                error_code=ErrorCode.SOURCE_NOT_FOUND,
            )

    def toggle_source(self, source_id: int) -> bool:
        """Flip the active flag. Returns the new state."""
        return self.health.toggle(source_id)

    def reset_errors(self, source_id: int) -> None:
        self.health.reset(source_id)

    def get_source(self, source_id: int) -> Source:
        source = self.repository.get_source(source_id)
        if source is None:
            raise SourceManagementError(
                f"Source {source_id} not found", source_id=source_id,
                error_code=ErrorCode.SOURCE_NOT_FOUND,
            )
        return source

    def list_sources(self, active_only: bool = False) -> List[Source]:
        return self.repository.list_sources(active_only=active_only)

    def search_sources(self, fragment: str) -> List[Source]:
        return self.repository.search_by_name(fragment)

    def get_statuses(self) -> List[SourceHealthStatus]:
        return self.health.get_all_statuses()

    def get_counts(self) -> Dict[str, int]:
        """Total, active, failing and disabled source counts."""
        stats = self.repository.get_statistics()
        return {
            "total": stats.get("total_sources", 0),
            "active": stats.get("active_sources", 0),
            "failing": stats.get("failing_sources", 0),
            "disabled": stats.get("disabled_sources", 0),
        }
