"""CLI commands package."""

from allbeads.cli.commands import cache, config, run

__all__ = ["cache", "config", "run"]
