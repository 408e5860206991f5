"""Console rendering helpers."""

from allbeads.cli.ui.console import console

__all__ = ["console"]
