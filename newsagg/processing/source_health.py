"""
Source Health Tracking
======================

Per-source circuit breaker. Every ingestion outcome is recorded in its own
short write transaction so counters survive crashes and stay independent
of article persistence.

States:
- Healthy: active, no recorded failures
- Degraded: active, 1..threshold-1 consecutive failures
- Disabled: ``active`` is false (threshold reached or switched off)
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from ..config.settings import get_settings
from ..database.connection import DatabaseConnection
from ..database.models import Source
from ..storage.source_repository import SourceRepository
from ..utils.exceptions import SourceManagementError, ErrorCode
from ..utils.logging import get_logger_for_component


class SourceState(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DISABLED = "disabled"


@dataclass
class SourceHealthStatus:
    """Health snapshot of one source."""
    source: Source
    state: SourceState
    consecutive_errors: int
    last_error: Optional[str]
    last_success_age_hours: Optional[float]
    status_message: str
    error_threshold: int = 5

    @property
    def health_score(self) -> float:
        """1.0 when healthy, decaying linearly to 0.0 at the threshold."""
        if self.state == SourceState.DISABLED:
            return 0.0
        return max(0.0, 1.0 - self.consecutive_errors / self.error_threshold)


class SourceHealthTracker:
    """Records ingestion outcomes and disables failing sources."""

    def __init__(self, db_connection: DatabaseConnection, error_threshold: Optional[int] = None):
        self.db = db_connection
        self.error_threshold = error_threshold or get_settings().health.error_threshold
        self.repository = SourceRepository(db_connection)
        self.logger = get_logger_for_component("source_health")

    def record_success(self, source_id: int) -> None:
        """Clear the failure counter and stamp the last update time."""
        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE sources
                SET error_count = 0, last_error = NULL, last_updated = ?
                WHERE id = ?
                """,
                (datetime.now(timezone.utc).isoformat(), source_id),
            )
            self._require_row(cursor.rowcount, source_id)

    def record_failure(self, source_id: int, message: str) -> int:
        """Count one failed ingestion; disable at the threshold.

        Returns:
            The new consecutive error count
        """
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT name, error_count, active FROM sources WHERE id = ?", (source_id,)
            ).fetchone()
            self._require_row(1 if row else 0, source_id)

            error_count = (row["error_count"] or 0) + 1
            conn.execute(
                "UPDATE sources SET error_count = ?, last_error = ? WHERE id = ?",
                (error_count, message, source_id),
            )

            if error_count >= self.error_threshold and row["active"]:
                self._disable_source(conn, source_id, row["name"], error_count, message)
            else:
                self.logger.info(
                    f"Source {row['name']} failed ({error_count}/{self.error_threshold}): {message}",
                    extra={'source_id': source_id, 'error_count': error_count},
                )

        return error_count

    def _disable_source(self, conn, source_id: int, name: str, error_count: int, reason: str) -> None:
        conn.execute("UPDATE sources SET active = 0 WHERE id = ?", (source_id,))
        self.logger.warning(
            f"Disabled source {name} after {error_count} consecutive errors: {reason}",
            extra={'source_id': source_id, 'disable_reason': reason},
        )

    def reset(self, source_id: int) -> None:
        """Clear errors and re-activate the source."""
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE sources SET error_count = 0, last_error = NULL, active = 1 WHERE id = ?",
                (source_id,),
            )
            self._require_row(cursor.rowcount, source_id)
        self.logger.info(f"Reset errors of source {source_id}")

    def toggle(self, source_id: int) -> bool:
        """Flip the active flag; activation also clears errors.

        Returns:
            The new active state
        """
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT active FROM sources WHERE id = ?", (source_id,)
            ).fetchone()
            self._require_row(1 if row else 0, source_id)

            activate = not bool(row["active"])
            if activate:
                conn.execute(
                    "UPDATE sources SET active = 1, error_count = 0, last_error = NULL WHERE id = ?",
                    (source_id,),
                )
            else:
                conn.execute("UPDATE sources SET active = 0 WHERE id = ?", (source_id,))

        self.logger.info(f"Source {source_id} {'activated' if activate else 'deactivated'}")
        return activate

    def get_status(self, source_id: int) -> Optional[SourceHealthStatus]:
        source = self.repository.get_source(source_id)
        return self._status_for(source) if source else None

    def get_all_statuses(self) -> List[SourceHealthStatus]:
        return [self._status_for(source) for source in self.repository.list_sources()]

    def _status_for(self, source: Source) -> SourceHealthStatus:
        last_success_age_hours = None
        if source.last_updated:
            last_updated = source.last_updated
            if last_updated.tzinfo is None:
                last_updated = last_updated.replace(tzinfo=timezone.utc)
            age = datetime.now(timezone.utc) - last_updated
            last_success_age_hours = age.total_seconds() / 3600

        if not source.active:
            state = SourceState.DISABLED
            status_message = "Source is disabled"
            if source.error_count >= self.error_threshold:
                status_message = f"Disabled after {source.error_count} consecutive errors"
        elif source.error_count > 0:
            state = SourceState.DEGRADED
            status_message = f"Source unstable: {source.error_count} consecutive errors"
        else:
            state = SourceState.HEALTHY
            status_message = "Source is healthy"

        return SourceHealthStatus(
            source=source,
            state=state,
            consecutive_errors=source.error_count,
            last_error=source.last_error,
            last_success_age_hours=last_success_age_hours,
            status_message=status_message,
            error_threshold=self.error_threshold,
        )

    @staticmethod
    def _require_row(rowcount: int, source_id: int) -> None:
        if rowcount == 0:
            raise SourceManagementError(
                f"Source {source_id} not found",
                source_id=source_id,
                error_code=ErrorCode.SOURCE_NOT_FOUND,
            )
