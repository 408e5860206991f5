"""
Configuration commands for the AllBeads CLI.
"""

from __future__ import annotations

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from allbeads.cli.state import load_config
from allbeads.cli.ui.console import console
from allbeads.models.config import validate_config

app = typer.Typer(help="Configuration management")


@app.command("show")
def config_show():
    """Show current configuration."""
    config = load_config()

    console.print(
        Panel.fit(
            f"[bold]Aggregator:[/]\n"
            f"  Sync Mode: {config.aggregator.sync_mode.value}\n"
            f"  Concurrency: {config.aggregator.concurrency}\n"
            f"  Fetch Timeout: {config.aggregator.fetch_timeout}s\n"
            f"  Max Retries: {config.aggregator.max_retries}\n"
            f"  Collision Policy: {config.aggregator.collision_policy.value}\n"
            f"\n[bold]Cache:[/]\n"
            f"  Enabled: {config.cache.enabled}\n"
            f"  Path: {config.cache.get_path()}\n"
            f"  TTL: {config.cache.ttl_seconds}s\n"
            f"\n[bold]Sheriff:[/]\n"
            f"  Poll Interval: {config.sheriff.poll_interval_seconds}s",
            title="[bold blue]AllBeads Configuration[/]",
        )
    )

    if not config.rigs:
        console.print("[warning]No rigs configured[/]")
        return

    table = Table(title="Rigs", show_header=True)
    table.add_column("Name", style="rig")
    table.add_column("Context")
    table.add_column("Remote")
    table.add_column("Path")
    table.add_column("Branch")
    table.add_column("Auth")
    for rig in config.rigs:
        table.add_row(
            rig.name,
            rig.context,
            escape(rig.remote or "-"),
            escape(str(rig.path)),
            rig.branch,
            rig.auth_strategy.value,
        )
    console.print(table)


@app.command("validate")
def config_validate():
    """Validate configuration file and check for issues."""
    config = load_config()
    console.print("[success]Configuration file parsed successfully[/]\n")

    problems = validate_config(config)
    if problems:
        console.print("[bold red]Problems:[/]")
        for problem in problems:
            console.print(f"  [red]- {escape(problem)}[/]")
        raise typer.Exit(1)

    console.print(f"[bold green]Configuration is valid![/] ({len(config.rigs)} rig(s))")
