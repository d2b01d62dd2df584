#!/usr/bin/env python3
"""
NewsAgg - RSS Ingestion and Enrichment
======================================

Main application entry point with CLI interface for management and testing.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py init-db --seed            # Create schema and default data
    python main.py add-source NAME URL       # Register a feed source
    python main.py list-sources              # Show sources with health state
    python main.py ingest                    # Run one ingestion pass
    python main.py run-scheduler             # Ingest periodically until stopped
"""

import sys
import asyncio
import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from newsagg.config.settings import get_settings
from newsagg.database.schema import DatabaseSchema
from newsagg.database.connection import get_db_manager
from newsagg.utils.logging import configure_application_logging
from newsagg.utils.exceptions import NewsAggError

console = Console()
logger = logging.getLogger(__name__)

STATE_ICONS = {"healthy": "🟢", "degraded": "🟡", "disabled": "🔴"}


def _setup(debug: bool = False):
    """Load settings and configure logging for a command."""
    settings = get_settings()
    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )
    return settings


def _db(settings):
    return get_db_manager(settings.database.path, settings.database.pool_size)


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, debug):
    """NewsAgg - RSS ingestion with AI categorization and summaries."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking NewsAgg Configuration[/bold blue]")

    try:
        settings = get_settings()
    except NewsAggError as e:
        console.print(f"[bold red]❌ Configuration error: {e.user_message}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Details")

    table.add_row("Database", f"Path: {settings.database.path}, pool: {settings.database.pool_size}")
    table.add_row(
        "Logging",
        f"Level: {settings.logging.level.value}, file: {settings.logging.file_path or 'disabled'}",
    )
    table.add_row(
        "Ingestion",
        f"{settings.ingestion.max_articles_per_source} entries/source, "
        f"min {settings.ingestion.min_content_length} chars, "
        f"every {settings.ingestion.poll_interval_minutes} min",
    )
    table.add_row("Source health", f"Disable after {settings.health.error_threshold} errors")
    if settings.ai.enabled:
        table.add_row("AI backend", f"{settings.ai.api_url} (model {settings.ai.effective_model})")
    else:
        table.add_row("AI backend", "Disabled, keyword rules only")

    console.print(table)
    console.print("[bold green]✅ Configuration is valid[/bold green]")


@cli.command()
@click.option('--seed', is_flag=True, help='Insert default categories and sources')
@click.pass_context
def init_db(ctx, seed):
    """Initialize database with schema."""
    console.print("[bold blue]🗄️ Initializing NewsAgg Database[/bold blue]")

    try:
        settings = _setup(ctx.obj['debug'])
        schema = DatabaseSchema(settings.database.path)
        schema.create_tables()

        if not schema.verify_schema():
            console.print("[bold red]❌ Database schema verification failed[/bold red]")
            sys.exit(1)

        db_manager = _db(settings)
        if seed:
            from newsagg.services.seed_data import seed_defaults
            created = seed_defaults(db_manager)
            console.print(
                f"🌱 Seeded {created['categories']} categories and {created['sources']} sources"
            )

        info = db_manager.get_database_info()
        info_table = Table(title="Database Information")
        info_table.add_column("Property", style="cyan")
        info_table.add_column("Value", style="green")
        info_table.add_row("Database Path", settings.database.path)
        info_table.add_row("Size", f"{info['database_size_mb']:.2f} MB")
        for table_name, count in info['table_counts'].items():
            info_table.add_row(f"Rows in {table_name}", str(count))
        console.print(info_table)
        console.print("[bold green]✅ Database initialized successfully![/bold green]")

    except NewsAggError as e:
        console.print(f"[bold red]❌ Database initialization error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.argument('name')
@click.argument('feed_url')
@click.option('--website', help='Website URL of the source')
@click.option('--description', help='Short description')
@click.option('--inactive', is_flag=True, help='Create the source switched off')
@click.pass_context
def add_source(ctx, name, feed_url, website, description, inactive):
    """Register a new RSS source."""
    from newsagg.services.source_service import SourceService

    settings = _setup(ctx.obj['debug'])
    try:
        source = SourceService(_db(settings)).create_source(
            name, feed_url, website_url=website, description=description, active=not inactive
        )
    except NewsAggError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    console.print(f"[bold green]✅ Added source #{source.id}: {source.name}[/bold green]")


@cli.command()
@click.option('--active-only', is_flag=True, help='Hide disabled sources')
@click.option('--search', help='Filter by name fragment')
@click.pass_context
def list_sources(ctx, active_only, search):
    """Show all sources with their health state."""
    from newsagg.services.source_service import SourceService

    settings = _setup(ctx.obj['debug'])
    service = SourceService(_db(settings))

    statuses = service.get_statuses()
    if search:
        matching = {source.id for source in service.search_sources(search)}
        statuses = [s for s in statuses if s.source.id in matching]
    if active_only:
        statuses = [s for s in statuses if s.source.active]

    if not statuses:
        console.print("[yellow]⚠️ No sources found[/yellow]")
        return

    table = Table(title="RSS Sources")
    table.add_column("ID", style="cyan")
    table.add_column("State")
    table.add_column("Name", style="cyan")
    table.add_column("Feed URL", style="blue")
    table.add_column("Errors", style="red")
    table.add_column("Last update")
    table.add_column("Last error")

    for status in statuses:
        source = status.source
        url = source.feed_url if len(source.feed_url) <= 50 else source.feed_url[:47] + "..."
        table.add_row(
            str(source.id),
            f"{STATE_ICONS[status.state.value]} {status.state.value}",
            source.name,
            url,
            str(status.consecutive_errors),
            str(source.last_updated) if source.last_updated else "Never",
            (status.last_error or "")[:40],
        )
    console.print(table)

    counts = service.get_counts()
    console.print(
        f"Total: {counts['total']}, active: {counts['active']}, "
        f"failing: {counts['failing']}, disabled: {counts['disabled']}"
    )


@cli.command()
@click.argument('source_id', type=int)
@click.pass_context
def toggle_source(ctx, source_id):
    """Activate or deactivate a source."""
    from newsagg.services.source_service import SourceService

    settings = _setup(ctx.obj['debug'])
    try:
        active = SourceService(_db(settings)).toggle_source(source_id)
    except NewsAggError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        sys.exit(1)
    console.print(f"Source #{source_id} is now {'active' if active else 'disabled'}")


@cli.command()
@click.argument('source_id', type=int)
@click.pass_context
def reset_source(ctx, source_id):
    """Clear the error counter of a source and re-activate it."""
    from newsagg.services.source_service import SourceService

    settings = _setup(ctx.obj['debug'])
    try:
        SourceService(_db(settings)).reset_errors(source_id)
    except NewsAggError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        sys.exit(1)
    console.print(f"[bold green]✅ Source #{source_id} reset[/bold green]")


@cli.command()
@click.option('--source-id', type=int, help='Ingest only this source')
@click.pass_context
def ingest(ctx, source_id):
    """Run one ingestion pass over active sources."""
    from newsagg.processing.pipeline import IngestionPipeline

    settings = _setup(ctx.obj['debug'])

    async def run_ingestion():
        pipeline = IngestionPipeline(_db(settings), settings=settings)
        try:
            if source_id is not None:
                return [await pipeline.ingest_source_id(source_id)]
            return (await pipeline.ingest_all()).sources
        finally:
            await pipeline.close()

    try:
        results = asyncio.run(run_ingestion())
    except NewsAggError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        sys.exit(1)

    table = Table(title="Ingestion Results")
    table.add_column("Source", style="cyan")
    table.add_column("Status")
    table.add_column("Feed", justify="right")
    table.add_column("New", justify="right", style="green")
    table.add_column("Dupes", justify="right")
    table.add_column("Short", justify="right")
    table.add_column("Errors", justify="right", style="red")
    table.add_column("Time", justify="right")

    for result in results:
        table.add_row(
            result.source_name,
            "✅" if result.success else f"❌ {(result.error or '')[:30]}",
            str(result.entries_in_feed),
            str(result.new),
            str(result.duplicates),
            str(result.skipped_short),
            str(result.errors),
            f"{result.duration_seconds:.1f}s",
        )
    console.print(table)
    console.print(f"[bold blue]📊 {sum(r.new for r in results)} new articles[/bold blue]")


@cli.command()
@click.argument('url')
@click.pass_context
def extract(ctx, url):
    """Extract article text and image from a page."""
    from newsagg.ingestion.content_extractor import ContentExtractor

    _setup(ctx.obj['debug'])
    console.print(f"[bold blue]📄 Extracting {url}[/bold blue]")

    async def run_extract():
        extractor = ContentExtractor()
        async with extractor.get_session() as session:
            soup = await extractor.fetch_document(url, session)
            return (
                extractor.extract_text(soup, url),
                extractor.extract_image_from_document(soup, url),
            )

    text, image = asyncio.run(run_extract())
    if not text:
        console.print("[yellow]⚠️ No article text found[/yellow]")
    else:
        console.print(f"[green]{len(text)} characters extracted[/green]")
        console.print(text[:1000] + ("..." if len(text) > 1000 else ""))
    console.print(f"🖼️ Image: {image or 'none'}")


@cli.command()
@click.option('--title', default="Центробанк сохранил ключевую ставку", help='Sample title')
@click.pass_context
def check_ai(ctx, title):
    """Probe the AI backend and run a sample enrichment."""
    from newsagg.ai.providers.completion_provider import CompletionEnrichmentProvider
    from newsagg.ai.provider_factory import create_enrichment_provider

    settings = _setup(ctx.obj['debug'])
    console.print("[bold blue]🤖 Checking AI backend[/bold blue]")

    if not settings.ai.enabled:
        console.print("[yellow]AI backend disabled, keyword rules will be used[/yellow]")
    else:
        probe = CompletionEnrichmentProvider(settings.ai)
        if probe.is_available():
            models = probe.get_available_models()
            console.print(f"[green]✅ Backend reachable at {settings.ai.api_url}[/green]")
            console.print(f"Models: {', '.join(models) or 'none reported'}")
        else:
            console.print(f"[red]❌ Backend not reachable at {settings.ai.api_url}[/red]")

    async def run_sample():
        provider = create_enrichment_provider(settings)
        try:
            return await provider.enrich(
                title,
                "Банк России принял решение сохранить ключевую ставку на прежнем уровне. "
                "Регулятор отметил замедление инфляции и рост кредитования экономики.",
            )
        finally:
            await provider.close()

    result = asyncio.run(run_sample())
    console.print(f"Category: [cyan]{result.category}[/cyan] ({result.provider})")
    console.print(f"Summary: {result.summary}")


@cli.command()
@click.pass_context
def clean_summaries(ctx):
    """Re-clean stored article summaries."""
    from newsagg.services.maintenance_service import MaintenanceService

    settings = _setup(ctx.obj['debug'])
    changed = MaintenanceService(_db(settings)).clean_summaries()
    console.print(f"[bold green]✅ Cleaned {changed} summaries[/bold green]")


@cli.command()
@click.option('--interval', type=int, help='Minutes between runs (default from settings)')
@click.pass_context
def run_scheduler(ctx, interval: Optional[int]):
    """Ingest periodically until interrupted."""
    from newsagg.scheduler.ingestion_scheduler import IngestionScheduler

    settings = _setup(ctx.obj['debug'])

    async def run_service():
        scheduler = IngestionScheduler(
            settings, interval_seconds=interval * 60 if interval else None
        )
        try:
            await scheduler.run_forever()
        finally:
            await scheduler.close()

    console.print("[bold blue]🕐 NewsAgg scheduler starting, press Ctrl+C to stop[/bold blue]")
    asyncio.run(run_service())


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 NewsAgg interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[bold red]❌ Unexpected error: {e}[/bold red]")
        sys.exit(1)
