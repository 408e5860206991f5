"""
Console utilities for the AllBeads CLI.

Provides the themed console and the tables used to render graphs, reports
and cache status.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from allbeads.core.cache import CacheStats
from allbeads.graph.federated import GraphStats
from allbeads.models.bead import Bead
from allbeads.models.report import AggregationReport, Severity
from allbeads.utils.helpers import format_duration, truncate_string

ALLBEADS_THEME = Theme({
    "info": "dim cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "rig": "bold cyan",
    "bead": "bold magenta",
})

console = Console(theme=ALLBEADS_THEME)

SEVERITY_STYLES = {
    Severity.INFO: "info",
    Severity.WARNING: "warning",
    Severity.ERROR: "error",
}


def render_graph_stats(stats: GraphStats) -> None:
    """Print graph counters."""
    table = Table(title="Federated Graph", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Beads", str(stats.total_beads))
    table.add_row("Shadows", str(stats.total_shadows))
    table.add_row("Rigs", str(stats.total_rigs))
    table.add_row("Ready", f"[success]{stats.ready}[/]")
    table.add_row("Blocked", f"[warning]{stats.blocked}[/]")
    table.add_row("Cross-repo edges", str(stats.cross_repo_edges))
    table.add_row("Unresolved references", str(stats.unresolved_references))
    if stats.stale_shadows:
        table.add_row("Stale shadows", f"[warning]{stats.stale_shadows}[/]")
    console.print(table)

    if stats.by_origin:
        origins = Table(title="Beads by rig", show_header=True)
        origins.add_column("Rig", style="rig")
        origins.add_column("Beads", justify="right")
        for origin, count in stats.by_origin.items():
            origins.add_row(origin, str(count))
        console.print(origins)


def render_report(report: AggregationReport) -> None:
    """Print per-rig outcomes and recorded degradations."""
    table = Table(title="Rigs", show_header=True)
    table.add_column("Rig", style="rig")
    table.add_column("Status")
    table.add_column("Beads", justify="right")
    table.add_column("Revision")
    table.add_column("Skipped", justify="right")

    for outcome in report.outcomes:
        if outcome.ok:
            status = "[success]ok[/]"
        elif outcome.from_cache:
            status = "[warning]cached[/]"
        else:
            status = "[error]failed[/]"
        table.add_row(
            outcome.rig,
            status,
            str(outcome.bead_count),
            (outcome.revision or "-")[:12],
            str(len(outcome.record_errors)),
        )
    console.print(table)

    for entry in report.entries:
        style = SEVERITY_STYLES[entry.severity]
        console.print(f"[{style}]{escape(entry.to_summary())}[/]", highlight=False)


def render_beads(beads: list[Bead], title: str) -> None:
    table = Table(title=title, show_header=True)
    table.add_column("ID", style="bead")
    table.add_column("Pri")
    table.add_column("Rig", style="rig")
    table.add_column("Title")
    for bead in beads:
        table.add_row(escape(bead.id), bead.priority.label, bead.origin or "-", escape(truncate_string(bead.title, 72)))
    console.print(table)


def render_cache_stats(stats: CacheStats) -> None:
    if not stats.exists:
        console.print(f"[info]No cache at {stats.path}[/]")
        return
    age = format_duration(stats.age_seconds) if stats.age_seconds is not None else "never written"
    console.print(
        Panel.fit(
            f"Path: {stats.path}\n"
            f"Beads: {stats.bead_count}\n"
            f"Rigs: {stats.rig_count}\n"
            f"Captured: {stats.captured_at.isoformat() if stats.captured_at else '-'}\n"
            f"Age: {age}\n"
            f"Size: {stats.size_bytes} bytes",
            title="[bold blue]Cache[/]",
        )
    )
