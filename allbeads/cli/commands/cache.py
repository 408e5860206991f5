"""
Cache commands for the AllBeads CLI.
"""

from __future__ import annotations

import typer

from allbeads.cli.state import load_config
from allbeads.cli.ui.console import console, render_cache_stats
from allbeads.core.cache import GraphCache
from allbeads.errors import CacheUnavailable

app = typer.Typer(help="Snapshot cache management")


@app.command("status")
def cache_status():
    """Show what the cache holds and how old it is."""
    config = load_config()
    stats = GraphCache(config.cache.get_path()).stats()
    render_cache_stats(stats)

    if stats.age_seconds is not None and stats.age_seconds > config.cache.ttl_seconds:
        console.print(f"[warning]Snapshot is older than the {config.cache.ttl_seconds}s TTL[/]")


@app.command("clear")
def cache_clear(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Skip confirmation",
    ),
):
    """Remove the cached snapshot."""
    config = load_config()
    cache = GraphCache(config.cache.get_path())

    if not force:
        if not typer.confirm(f"Clear cache at {cache.path}?"):
            console.print("[warning]Cancelled[/]")
            raise typer.Exit()

    try:
        cache.clear()
    except CacheUnavailable as e:
        console.print(f"[error]{e.message}[/]")
        raise typer.Exit(1)
    console.print(f"[success]Cleared cache at {cache.path}[/]")
