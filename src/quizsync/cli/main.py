"""Main CLI entry point for quizsync.

Provides command-line interface for syncing and inspecting cached question pools.
"""

import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from quizsync import SyncOrchestrator, SyncOutcome
from quizsync.cache.config import SyncConfig, get_global_config
from quizsync.errors import QuizSyncError, UnknownName
from quizsync.remote import content_names

# Global console for Rich output
console = Console()

_OUTCOME_STYLE = {
    SyncOutcome.USED_FRESH_CACHE: "[green]✓[/green] Cache is up to date",
    SyncOutcome.UPDATED_FROM_REMOTE: "[green]✓[/green] Updated from remote",
    SyncOutcome.FELL_BACK_TO_CACHE: "[yellow]![/yellow] Remote unavailable, using cache",
}


def build_config(ctx_cache_dir: Optional[str] = None) -> SyncConfig:
    """Build sync configuration from multiple sources.

    Priority:
    1. Explicit --cache-dir/-C flag
    2. QUIZSYNC_CACHE_DIR environment variable
    3. Global configuration (config file or defaults)

    Args:
        ctx_cache_dir: Cache directory from CLI context

    Returns:
        SyncConfig to use for this invocation
    """
    if ctx_cache_dir:
        config = SyncConfig.from_env()
        config.cache_dir = Path(ctx_cache_dir).expanduser()
        return config

    if os.environ.get("QUIZSYNC_CACHE_DIR"):
        return SyncConfig.from_env()

    return get_global_config()


def make_orchestrator(ctx) -> SyncOrchestrator:
    """Create an orchestrator for the invocation's configuration."""
    return SyncOrchestrator(config=build_config(ctx.obj.get("cache_dir")))


@click.group()
@click.option(
    "--cache-dir",
    "-C",
    type=click.Path(file_okay=False),
    help="Cache directory (default: ~/.quizsync_cache or QUIZSYNC_CACHE_DIR env var)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show sync progress logging")
@click.pass_context
def cli(ctx, cache_dir, verbose):
    """quizsync CLI - Keep question pools cached for offline use.

    Use --cache-dir/-C to pick the cache directory, or set QUIZSYNC_CACHE_DIR.
    """
    ctx.ensure_object(dict)
    ctx.obj["cache_dir"] = cache_dir
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )


@cli.command("list")
@click.pass_context
def list_sets(ctx):
    """List known question pools and their remote locations."""
    orchestrator = make_orchestrator(ctx)

    table = Table(title="Question Pools")
    table.add_column("Name", style="cyan")
    table.add_column("Cached")
    table.add_column("URL", style="dim")

    for name in content_names():
        cached = "[green]yes[/green]" if orchestrator.store.exists(name) else "no"
        table.add_row(name, cached, orchestrator.fetcher.resolve(name))

    console.print(table)


@cli.command("sync")
@click.argument("name")
@click.option("--no-shuffle", is_flag=True, help="Keep records in published order")
@click.option("--show", "show_count", default=0, help="Print the first N questions")
@click.pass_context
def sync(ctx, name, no_shuffle, show_count):
    """Sync a question pool and report what happened.

    Example:
        quizsync sync technician
        quizsync sync "General Class" --show 3
    """
    config = build_config(ctx.obj.get("cache_dir"))
    if no_shuffle:
        config = replace(config, shuffle=False)

    with SyncOrchestrator(config=config) as orchestrator:
        result = orchestrator.sync(name)

    if not result.ok:
        raise click.ClickException(
            f"Sync of '{result.name}' failed "
            f"({type(result.reason).__name__}): {result.reason}"
        )

    console.print(f"{_OUTCOME_STYLE[result.outcome]} - '{result.name}'")
    console.print(f"  Records: {len(result.records)}")
    if result.outcome is SyncOutcome.UPDATED_FROM_REMOTE and not result.cache_written:
        console.print("  [yellow]Warning:[/yellow] download could not be cached")

    for record in result.records[:show_count]:
        _print_record(record)


@cli.command("show")
@click.argument("name")
@click.option("--limit", "-n", default=5, help="Number of questions to show")
@click.pass_context
def show(ctx, name, limit):
    """Show cached questions without contacting the remote source."""
    orchestrator = make_orchestrator(ctx)
    try:
        records = orchestrator.cached_records(name)
    except QuizSyncError as e:
        raise click.ClickException(str(e)) from e

    console.print(f"[bold]{name}[/bold]: {len(records)} cached records")
    for record in records[:limit]:
        _print_record(record)


@cli.command("status")
@click.pass_context
def status(ctx):
    """Show cache status for every question pool."""
    orchestrator = make_orchestrator(ctx)

    table = Table(title="Cache Status")
    table.add_column("Name", style="cyan")
    table.add_column("Cached")
    table.add_column("Records", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Cached At")
    table.add_column("Last Outcome")

    for name in content_names():
        info = orchestrator.get_status(name)
        size = info["size_bytes"]
        table.add_row(
            name,
            "[green]yes[/green]" if info["cached"] else "no",
            str(info["record_count"]) if info["record_count"] is not None else "-",
            f"{size / 1024:.1f} KB" if size is not None else "-",
            (info["cached_at"] or "-")[:19],
            info["last_outcome"] or "-",
        )

    console.print(table)

    stats = orchestrator.get_stats()
    console.print(f"Cache directory: {stats['cache_dir']}")
    if stats.get("syncs"):
        console.print(
            f"Syncs: {stats['syncs']} "
            f"(fresh {stats.get('fresh_hits', 0)}, "
            f"updated {stats.get('updates', 0)}, "
            f"fallback {stats.get('fallbacks', 0)}, "
            f"failed {stats.get('failures', 0)})"
        )


@cli.command("clear")
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def clear(ctx, name, yes):
    """Delete the cached copy of a question pool."""
    orchestrator = make_orchestrator(ctx)
    try:
        orchestrator.fetcher.resolve(name)
    except UnknownName as e:
        raise click.ClickException(str(e)) from e

    if not yes:
        click.confirm(f"Delete cached copy of '{name}'?", abort=True)

    if orchestrator.clear(name):
        console.print(f"[green]✓[/green] Cleared cache for '{name}'")
    else:
        console.print(f"Nothing cached for '{name}'")


def _print_record(record) -> None:
    console.print(f"\n[bold]{escape(record.id)}[/bold] {escape(record.prompt)}")
    for i, option in enumerate(record.options):
        marker = "[green]*[/green]" if i == record.correct_index else " "
        console.print(f"  {marker} {chr(ord('A') + i)}. {escape(option)}")


if __name__ == "__main__":
    cli()
