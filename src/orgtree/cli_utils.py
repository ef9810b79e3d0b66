"""CLI utility functions for orgtree.

Provides helper functions for:
- Config wiring: Passing Typer CLI options to load_config
- Logging setup: Rich log handler on stderr
- Error formatting: Consistent user-friendly error messages with exit codes
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler

from orgtree.config import OrgtreeConfig, load_config

# Exit code conventions
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # User error (bad input, rejected mutation, missing file)
EXIT_SYSTEM_ERROR = 2  # System error (database failure, I/O)

err_console = Console(stderr=True)


def error(msg: str, *, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Print an error message and exit with the given exit code.

    Raises:
        typer.Exit: Always raises to exit the program.
    """
    err_console.print(f"[red]Error:[/red] {msg}")
    raise typer.Exit(code=exit_code)


def wire_config(
    db_path: str | None = None,
    log_level: str | None = None,
    start_dir: Path | None = None,
) -> OrgtreeConfig:
    """Wire CLI options to load_config with appropriate overrides.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    cli_overrides: dict[str, Any] = {}

    if db_path is not None:
        cli_overrides["db_path"] = db_path
    if log_level is not None:
        cli_overrides["log_level"] = log_level

    try:
        return load_config(cli_overrides=cli_overrides, start_dir=start_dir)
    except ValueError as e:
        error(f"Invalid configuration: {e}", exit_code=EXIT_USER_ERROR)


def setup_logging(level: str) -> None:
    """Send orgtree log records to stderr through Rich.

    Calling it again replaces the previous handler.
    """
    package_logger = logging.getLogger("orgtree")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    handler = RichHandler(console=err_console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False


# -----------------------------------------------------------------------------
# Typer Option Factory Functions
# -----------------------------------------------------------------------------
# Typer consumes Option objects when decorating commands, so each command
# needs a fresh instance.


def db_option() -> Any:
    """Create a Typer Option for --db / -d."""
    return typer.Option(
        None,
        "--db",
        "-d",
        help="Path to the orgtree database (default: orgtree.db).",
    )


def json_option() -> Any:
    return typer.Option(False, "--json", help="Output as JSON.")


def quiet_option() -> Any:
    return typer.Option(False, "--quiet", "-q", help="Minimal output.")
