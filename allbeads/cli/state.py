"""
Global CLI state shared by the commands.
"""

from __future__ import annotations

import typer

from allbeads.errors import ConfigurationError
from allbeads.models.config import AllBeadsConfig
from allbeads.utils.logger import setup_logging


class CLIState:
    """Global CLI state for options like quiet, debug and the config path."""

    quiet: bool = False
    debug: bool = False
    config_path: str | None = None


cli_state = CLIState()


def load_config() -> AllBeadsConfig:
    """
    Load the configuration selected by the global options and set up logging.

    Exits with status 2 when the configuration cannot be loaded.
    """
    from allbeads.cli.ui.console import console

    try:
        config = AllBeadsConfig.load(cli_state.config_path)
    except ConfigurationError as e:
        console.print(f"[error]Configuration error:[/] {e.message}")
        raise typer.Exit(2)

    if cli_state.debug:
        level = "debug"
    elif cli_state.quiet:
        level = "warning"
    else:
        level = config.logging.level
    setup_logging(
        level=level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
    )
    return config
