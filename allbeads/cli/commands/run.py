"""
Aggregation and daemon commands for the AllBeads CLI.
"""

from __future__ import annotations

import asyncio
import signal

import typer
from rich.markup import escape

from allbeads.cli.ui.console import console, render_beads, render_graph_stats, render_report
from allbeads.core.aggregator import Aggregator
from allbeads.core.cache import GraphCache, load_or_aggregate
from allbeads.errors import ConfigurationError
from allbeads.models.config import AllBeadsConfig
from allbeads.sheriff.daemon import EventKind, SheriffDaemon, SheriffEvent
from allbeads.utils.logger import get_logger

logger = get_logger(__name__)


async def run_aggregate(
    config: AllBeadsConfig,
    contexts: list[str],
    use_cache: bool,
    show_ready: bool,
) -> None:
    """Run one aggregation pass (or serve a fresh cache) and print the result."""
    try:
        rigs = config.require_rigs(contexts or None)
    except ConfigurationError as e:
        console.print(f"[error]{e.message}[/]")
        raise typer.Exit(2)

    cache = GraphCache(config.cache.get_path()) if config.cache.enabled else None
    aggregator = Aggregator.from_config(config, contexts)

    graph, report = await load_or_aggregate(
        cache,
        aggregator,
        rigs,
        ttl_seconds=config.cache.ttl_seconds,
        use_cache=use_cache,
    )

    if report is None:
        console.print("[info]Served from cache (use --no-cache to refresh)[/]")
    else:
        render_report(report)
    render_graph_stats(graph.stats())
    if show_ready:
        render_beads(graph.ready(), "Ready")


def _print_event(event: SheriffEvent) -> None:
    if event.kind == EventKind.BEAD_CHANGED:
        console.print(f"[bead]{escape(event.message)}[/]", highlight=False)
    elif event.kind == EventKind.SHADOW_SYNCED:
        console.print(f"[success]{escape(event.message)}[/]", highlight=False)
    elif event.kind in (EventKind.RIG_FAILED, EventKind.ERROR):
        scope = f"[rig]{event.rig}[/] " if event.rig else ""
        console.print(f"[warning]{scope}{escape(event.message)}[/]", highlight=False)


async def run_sheriff(config: AllBeadsConfig, interval: float | None) -> None:
    """Run the daemon until SIGINT or SIGTERM."""
    try:
        rigs = config.require_rigs()
    except ConfigurationError as e:
        console.print(f"[error]{e.message}[/]")
        raise typer.Exit(2)

    cache = GraphCache(config.cache.get_path()) if config.cache.enabled else None
    daemon = SheriffDaemon(
        config.sheriff,
        rigs,
        Aggregator.from_config(config),
        cache=cache,
        on_event=_print_event,
    )
    if interval is not None:
        daemon.set_poll_interval(interval)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, daemon.stop)
        except NotImplementedError:
            logger.debug("Signal handlers unsupported on this platform")

    console.print(
        f"[success]Sheriff polling {len(rigs)} rig(s) every {daemon.poll_interval:.0f}s[/] "
        "[info](Ctrl+C to stop)[/]"
    )
    await daemon.run()

    stats = daemon.stats()
    console.print(
        f"[info]Stopped after {stats.cycles} cycle(s), "
        f"{stats.total_changes} change(s), {stats.failed_fetches} failed fetch(es)[/]"
    )
