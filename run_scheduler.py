#!/usr/bin/env python3
"""
NewsAgg Scheduler Runner
========================

Main entry point for running periodic ingestion as a service.
Handles initialization, startup, and graceful shutdown.
"""

import sys
import signal
import asyncio
import argparse
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from newsagg.scheduler.ingestion_scheduler import IngestionScheduler
from newsagg.config.settings import get_settings
from newsagg.database.schema import DatabaseSchema
from newsagg.utils.logging import configure_application_logging, get_logger_for_component


async def main():
    """Main entry point for the scheduler service."""
    parser = argparse.ArgumentParser(description='NewsAgg Ingestion Scheduler')
    parser.add_argument('--once', action='store_true', help='Run one ingestion pass and exit')
    parser.add_argument('--interval', type=int, help='Minutes between runs')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    args = parser.parse_args()

    settings = get_settings()
    configure_application_logging(
        log_level="DEBUG" if args.debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )
    logger = get_logger_for_component("scheduler_runner")
    logger.info("Starting NewsAgg scheduler...")

    DatabaseSchema(settings.database.path).create_tables()
    scheduler = IngestionScheduler(
        settings, interval_seconds=args.interval * 60 if args.interval else None
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.stop)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    try:
        if args.once:
            result = await scheduler.run_once()
            if result is None:
                sys.exit(1)
            logger.info(
                f"Ingestion finished: {result.new_articles} new articles, "
                f"{result.sources_failed} failed sources"
            )
        else:
            await scheduler.run_forever()
    finally:
        await scheduler.close()
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n👋 Scheduler stopped by user")
