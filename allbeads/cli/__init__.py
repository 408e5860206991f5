"""
CLI package for AllBeads.

Provides a thin operator command-line interface using Typer.
"""

from allbeads.cli.app import app, main

__all__ = ["app", "main"]
