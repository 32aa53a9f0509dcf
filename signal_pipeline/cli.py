"""
Command-line interface for signal-pipeline.

Provides commands to scrape sources, run the scheduled refresh and the
signal passes, initialize the database, and inspect pipeline health.

Usage:
    signal-pipeline init-db                   # Create tables
    signal-pipeline scrape                    # Scrape all active sources
    signal-pipeline scrape --source-id <id>   # Scrape one source
    signal-pipeline refresh                   # Refresh due projects
    signal-pipeline detect <project-id>       # Detect signals
    signal-pipeline momentum <project-id>     # Re-evaluate open signals
    signal-pipeline health                    # Pipeline health
    signal-pipeline stuck                     # Stuck ingestions
    signal-pipeline serve                     # Start the trigger API
"""

import asyncio
import sys
import uuid
from typing import Any, Awaitable, Callable

import click

from signal_pipeline.config.settings import get_settings
from signal_pipeline.observability.logging import bind_context, clear_context, setup_logging
from signal_pipeline.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Signal Pipeline - content ingestion and signal detection."""
    setup_logging("DEBUG" if debug else None)


def _run_with_pipeline(fn: Callable[[Any], Awaitable[int | None]]) -> None:
    """Run ``fn(pipeline)`` against a connected database.

    A non-zero return value becomes the exit status; a lost database
    connection exits with status 2.
    """
    from signal_pipeline.services.pipeline import Pipeline
    from signal_pipeline.storage.database import Database, StoreUnavailableError

    async def run():
        db = Database()
        await db.connect()
        try:
            async with Pipeline(db) as pipeline:
                return await fn(pipeline)
        finally:
            await db.close()

    bind_context(run_id=uuid.uuid4().hex[:12])

    try:
        code = asyncio.run(run())
    except StoreUnavailableError as e:
        click.echo(click.style(f"Database unavailable: {e}", fg="red"), err=True)
        sys.exit(2)
    finally:
        clear_context()

    if code:
        sys.exit(code)


def _echo_errors(errors: list[str]) -> None:
    if errors:
        click.echo("\nErrors:")
        for err in errors:
            click.echo(click.style(f"  - {err}", fg="red"))


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""

    async def run(pipeline):
        await pipeline.init_schema()
        click.echo("Database initialized successfully")

    _run_with_pipeline(run)


@main.command()
@click.option("--source-id", default=None, type=click.UUID, help="Scrape only this source")
def scrape(source_id: uuid.UUID | None) -> None:
    """Scrape active sources and analyze new content.

    Example:
        signal-pipeline scrape
        signal-pipeline scrape --source-id 6f1c...
    """

    async def run(pipeline):
        result = await pipeline.run_scrape(source_id=str(source_id) if source_id else None)

        click.echo("\nScrape Results:")
        click.echo(f"  Sources scraped:  {result.scraped}")
        click.echo(f"  Failed sources:   {result.failed_sources}")
        click.echo(f"  New items:        {result.new_items}")
        click.echo(f"  Duplicates:       {result.duplicates}")
        click.echo(f"  Rejected:         {result.rejected}")
        click.echo(f"  Analyzed:         {result.analyzed}")
        click.echo(f"  Analysis failed:  {result.analysis_failed}")
        click.echo(f"  Signals created:  {result.signals_created}")
        _echo_errors(result.errors)

    _run_with_pipeline(run)


@main.command()
def refresh() -> None:
    """Refresh every project whose interval has elapsed.

    Designed for cron scheduling: 0 * * * * signal-pipeline refresh
    """

    async def run(pipeline):
        result = await pipeline.run_scheduled_refresh()

        click.echo("\nScheduled Refresh Results:")
        click.echo(f"  Projects due:       {result.projects_due}")
        click.echo(f"  Projects processed: {result.projects_processed}")
        click.echo(f"  Projects failed:    {result.projects_failed}")
        click.echo(f"  Sources scraped:    {result.sources_scraped}")
        click.echo(f"  New items:          {result.new_items}")
        click.echo(f"  Signals detected:   {result.signals_detected}")
        click.echo(f"  Signals updated:    {result.signals_updated}")
        _echo_errors(
            [f"{p.project_id}: {p.error}" for p in result.projects if p.error is not None]
        )

    _run_with_pipeline(run)


@main.command()
@click.argument("project_id", type=click.UUID)
@click.option("--lookback-hours", default=None, type=int, help="Ingestion window in hours")
def detect(project_id: uuid.UUID, lookback_hours: int | None) -> None:
    """Detect signals in a project's pending ingestions."""

    async def run(pipeline):
        result = await pipeline.detect_signals(str(project_id), lookback_hours)
        if not result.success:
            click.echo(click.style(f"Detection failed: {result.error}", fg="red"))
            return 1

        click.echo(f"\nSignal Detection ({project_id}):")
        click.echo(f"  Ingestions analyzed: {result.ingestions_analyzed}")
        click.echo(f"  Ingestions failed:   {result.ingestions_failed}")
        click.echo(f"  Signals detected:    {result.signals_detected}")
        click.echo(f"  Tokens used:         {result.token_usage.total_tokens}")
        click.echo(f"  Estimated cost:      ${result.estimated_cost_usd:.4f}")

    _run_with_pipeline(run)


@main.command()
@click.argument("project_id", type=click.UUID)
@click.option("--lookback-hours", default=None, type=int, help="Ingestion window in hours")
def momentum(project_id: uuid.UUID, lookback_hours: int | None) -> None:
    """Re-evaluate momentum of a project's open signals."""

    async def run(pipeline):
        result = await pipeline.analyze_momentum(str(project_id), lookback_hours)
        if not result.success:
            click.echo(click.style(f"Momentum analysis failed: {result.error}", fg="red"))
            return 1

        click.echo(f"\nMomentum Analysis ({project_id}):")
        click.echo(f"  Signals analyzed:  {result.signals_analyzed}")
        click.echo(f"  Signals updated:   {result.signals_updated}")
        click.echo(f"  Signals unchanged: {result.signals_unchanged}")
        click.echo(f"  Evidence linked:   {result.evidence_linked}")
        click.echo(f"  Estimated cost:    ${result.estimated_cost_usd:.4f}")
        if result.analysis_notes:
            click.echo(f"\n{result.analysis_notes}")

    _run_with_pipeline(run)


@main.command()
def health() -> None:
    """Classify pipeline health from recorded executions."""
    colors = {"healthy": "green", "degraded": "yellow", "unhealthy": "red"}

    async def run(pipeline):
        report = await pipeline.health()
        status = report.status.value

        click.echo("\nPipeline Health:")
        click.echo("-" * 40)
        click.echo(click.style(f"  Status: {status}", fg=colors[status]))
        if report.reason:
            click.echo(f"  Reason: {report.reason}")
        click.echo(f"  Shortest interval:   {report.shortest_interval_hours}h")
        if report.hours_since_success is not None:
            click.echo(f"  Hours since success: {report.hours_since_success}")
        click.echo(f"  Active projects:     {report.active_projects}")
        for interval, count in report.projects_by_interval.items():
            click.echo(f"    every {interval}h: {count}")
        click.echo(f"  Stuck ingestions:    {report.stuck_ingestions}")
        click.echo("-" * 40)

        return 0 if status == "healthy" else 1

    _run_with_pipeline(run)


@main.command()
def stuck() -> None:
    """List ingestions stuck in pending analysis."""

    async def run(pipeline):
        items = await pipeline.stuck_ingestions()
        if not items:
            click.echo("No stuck ingestions")
            return

        click.echo(f"\n{len(items)} stuck ingestion(s):")
        for item in items:
            scraped = item.scraped_at.isoformat() if item.scraped_at else "-"
            click.echo(f"  {item.id}  {scraped}  {item.url}")

    _run_with_pipeline(run)


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def serve(host: str | None, port: int | None, reload: bool, metrics_port: int | None) -> None:
    """Start the trigger API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    metrics_port = metrics_port or settings.metrics_port

    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "signal_pipeline.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
