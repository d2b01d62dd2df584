"""
NewsAgg Ingestion Scheduler
===========================

Runs the ingestion pipeline over all active sources at a fixed interval.
A failed run is logged and the next run happens on schedule; the loop ends
when ``stop()`` is called or the task is cancelled.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from ..config.settings import NewsAggSettings, get_settings
from ..database.connection import get_db_manager
from ..processing.pipeline import IngestionPipeline, IngestionRunResult
from ..utils.exceptions import NewsAggError, handle_exception, is_retryable_error
from ..utils.logging import get_logger_for_component


class IngestionScheduler:
    """Periodic ingestion runner."""

    def __init__(
        self,
        settings: Optional[NewsAggSettings] = None,
        pipeline: Optional[IngestionPipeline] = None,
        interval_seconds: Optional[float] = None,
    ):
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("scheduler")
        if pipeline is None:
            db_manager = get_db_manager(
                self.settings.database.path, self.settings.database.pool_size
            )
            pipeline = IngestionPipeline(db_manager, settings=self.settings)
        self.pipeline = pipeline
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else self.settings.ingestion.poll_interval_minutes * 60
        )
        self._stop_event = asyncio.Event()

        self.runs_completed = 0
        self.runs_failed = 0
        self.last_run_at: Optional[datetime] = None
        self.last_result: Optional[IngestionRunResult] = None
        self.last_error: Optional[NewsAggError] = None

    async def run_once(self) -> Optional[IngestionRunResult]:
        """Execute one ingestion run; None when the run blew up."""
        self.last_run_at = datetime.now(timezone.utc)
        try:
            result = await self.pipeline.ingest_all()
        except Exception as e:
            self.runs_failed += 1
            self.last_error = handle_exception(e, self.logger, "scheduled ingestion run")
            if not is_retryable_error(self.last_error):
                self.logger.warning(
                    f"Ingestion run failed with a non-transient error: {self.last_error}",
                    exc_info=e,
                )
            return None

        self.runs_completed += 1
        self.last_result = result
        return result

    async def run_forever(self, max_runs: Optional[int] = None) -> None:
        """Run until stopped, sleeping ``interval_seconds`` between runs."""
        self.logger.info(
            f"Scheduler started, running every {self.interval_seconds:.0f}s"
        )
        runs = 0
        while not self._stop_event.is_set():
            await self.run_once()
            runs += 1
            if max_runs is not None and runs >= max_runs:
                break
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

        self.logger.info(
            f"Scheduler stopped after {self.runs_completed} runs ({self.runs_failed} failed)"
        )

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def is_stopping(self) -> bool:
        return self._stop_event.is_set()

    async def close(self) -> None:
        await self.pipeline.close()
