"""Option parsing and input loading shared by the CLI command modules."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

import typer

from . import context
from .config import EngineConfig
from .exceptions import LoadlineError
from .loader import load_inputs
from .models import Snapshot


def parse_date_option(value: str | None, option_name: str) -> date | None:
    """Parse a YYYY-MM-DD option string."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid date format for --{option_name}: {value}") from e


def parse_now_option(value: str | None) -> datetime | None:
    """Parse the --now option: an ISO timestamp or a bare date."""
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid timestamp for --now: {value}") from e


def load_or_exit(file: Path) -> tuple[Snapshot, EngineConfig]:
    """Load the snapshot and its config, exiting with code 1 on any input problem.

    The global --config option is handed to the loader explicitly.
    """
    try:
        return load_inputs(file, config_path=context.get_config_path())
    except LoadlineError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error loading config: {e}", err=True)
        raise typer.Exit(1) from None
