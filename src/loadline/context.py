"""Command-line context: state shared between the CLI callback and commands."""

from __future__ import annotations

from pathlib import Path


class _Context:
    """Application context for the CLI's global options."""

    def __init__(self) -> None:
        self.config_path: Path | None = None


# Singleton instance; the analysis engine itself never reads it
_context = _Context()


def get_config_path() -> Path | None:
    """Get the config path given on the command line."""
    return _context.config_path


def set_config_path(path: Path | None) -> None:
    """Set the config path given on the command line."""
    _context.config_path = path
