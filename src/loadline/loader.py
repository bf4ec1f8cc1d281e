"""Snapshot and configuration loading."""

from __future__ import annotations

from pathlib import Path

from .config import DEFAULT_CONFIG_FILENAME, EngineConfig, load_config
from .logger import get_logger
from .models import Snapshot
from .parser import SnapshotParser

logger = get_logger()


def _discover_config(
    snapshot_path: Path,
    config_path: Path | None = None,
) -> EngineConfig | None:
    """Discover engine config from various locations.

    Search order:
    1. Explicit config_path argument (the CLI passes its --config here)
    2. snapshot directory / loadline_config.yaml
    3. Current directory / loadline_config.yaml
    """
    # 1. Explicit argument
    if config_path and config_path.exists():
        return load_config(config_path)

    # 2. Snapshot directory
    dir_config = Path(snapshot_path).parent / DEFAULT_CONFIG_FILENAME
    if dir_config.exists():
        logger.debug(f"Using config from snapshot directory: {dir_config}")
        return load_config(dir_config)

    # 3. Current directory
    cwd_config = Path(DEFAULT_CONFIG_FILENAME)
    if cwd_config.exists():
        logger.debug(f"Using config from current directory: {cwd_config}")
        return load_config(cwd_config)

    return None


def load_snapshot(path: Path | str) -> Snapshot:
    """Parse a snapshot YAML file.

    Raises:
        ParseError: If the file is missing or is not valid YAML
        ValidationError: If the YAML does not match the snapshot schema
    """
    snapshot = SnapshotParser().parse_file(path)
    logger.debug(f"Loaded {len(snapshot.tasks)} tasks and {len(snapshot.users)} users from {path}")
    return snapshot


def load_inputs(
    path: Path | str,
    config_path: Path | None = None,
) -> tuple[Snapshot, EngineConfig]:
    """Load a snapshot and the engine config that applies to it.

    Args:
        path: Path to the snapshot YAML file
        config_path: Optional explicit path to the config file

    Returns:
        Tuple of (snapshot, config); the config falls back to EngineConfig()
        when none is found
    """
    path = Path(path)
    config = _discover_config(path, config_path)
    return (load_snapshot(path), config or EngineConfig())
