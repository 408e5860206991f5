"""
Main CLI application.

This module defines the main Typer application and entry point.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from allbeads import __version__
from allbeads.cli.commands import cache, config
from allbeads.cli.state import cli_state, load_config
from allbeads.cli.ui.console import console

# Create the main app
app = typer.Typer(
    name="allbeads",
    help="Federated issue graph aggregation and sync",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

# Add sub-commands
app.add_typer(cache.app, name="cache", help="Snapshot cache management")
app.add_typer(config.app, name="config", help="Configuration management")


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]AllBeads[/] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-essential output",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (default: allbeads.yaml or ~/.config/allbeads/config.yaml)",
    ),
):
    """
    AllBeads - Federated issue graph aggregation and sync

    Merges the issue data of many git repositories into one dependency
    graph, caches it locally and keeps it fresh with a polling daemon.
    """
    cli_state.quiet = quiet
    cli_state.debug = debug
    cli_state.config_path = config_path
    console.quiet = quiet


@app.command()
def aggregate(
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Aggregate even when the cached snapshot is fresh",
    ),
    context: Optional[list[str]] = typer.Option(
        None,
        "--context",
        "-x",
        help="Only aggregate rigs in this context (repeatable)",
    ),
    ready: bool = typer.Option(
        False,
        "--ready",
        "-r",
        help="List beads that are ready to work on",
    ),
):
    """
    Run one aggregation pass and store the snapshot.

    Example:
        allbeads aggregate
        allbeads aggregate --no-cache --context work
    """
    from allbeads.cli.commands.run import run_aggregate

    settings = load_config()
    asyncio.run(
        run_aggregate(
            settings,
            contexts=context or [],
            use_cache=not no_cache,
            show_ready=ready,
        )
    )


@app.command()
def sheriff(
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        "-i",
        min=1.0,
        help="Poll interval in seconds (overrides configuration)",
    ),
):
    """
    Run the sync daemon until interrupted.

    Example:
        allbeads sheriff --interval 30
    """
    from allbeads.cli.commands.run import run_sheriff

    settings = load_config()
    asyncio.run(run_sheriff(settings, interval))


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
