"""
Configuration and path management.

Provides site root detection and standard paths for the lab site.
Uses .labsite/ directory for labsite-specific data (collections, cache, backups).

Resolution order for site root:
  1. LABSITE_ROOT environment variable (highest priority)
  2. Walk up from cwd looking for .labsite/ directory
  3. Global config file (~/.config/labsite/config.yaml) site_root key
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml

DATA_DIR_NAME = ".labsite"


@dataclass(frozen=True)
class SitePaths:
    """Standard paths for the lab site and labsite data."""

    root: Path
    data_dir: Path

    # Document collections (one JSON file per category)
    collections: Path

    # Cache and session state
    cache: Path
    session_file: Path

    # Backups of collection files
    backups: Path

    config_file: Path

    def collection_file(self, name: str) -> Path:
        """Return the JSON file backing collection *name*."""
        return self.collections / f"{name}.json"

    def collection_backups(self, name: str) -> Path:
        """Return the backup directory for collection *name*."""
        return self.backups / name


def get_global_config_path() -> Path:
    """Return the path to the global labsite config file.

    Respects XDG_CONFIG_HOME if set, otherwise defaults to
    ~/.config/labsite/config.yaml.

    Returns:
        Path to global config file (may not exist).
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        base = Path(xdg_config_home)
    else:
        base = Path.home() / ".config"
    return base / "labsite" / "config.yaml"


def load_global_config() -> dict:
    """Load the global labsite configuration.

    Returns:
        Configuration dict, or empty dict if file is missing or invalid.
    """
    config_path = get_global_config_path()
    if not config_path.is_file():
        return {}
    try:
        text = config_path.read_text(encoding="utf-8")
        data = yaml.safe_load(text)
        if isinstance(data, dict):
            return data
        return {}
    except (OSError, yaml.YAMLError):
        return {}


def _walk_up_for_data_dir(start_path: Path) -> Path | None:
    """Walk up directory tree looking for .labsite/ directory."""
    current = start_path.resolve()
    while current != current.parent:
        if (current / DATA_DIR_NAME).is_dir():
            return current
        current = current.parent
    return None


def find_site_root(start_path: Path | None = None) -> Path:
    """Find site root using 3-tier resolution.

    Resolution order:
      1. LABSITE_ROOT environment variable (highest priority)
      2. Walk up from start_path (or cwd) looking for .labsite/ directory
      3. Global config file site_root key

    Args:
        start_path: Starting path for .labsite/ directory walk (defaults to cwd)

    Returns:
        Path to site root

    Raises:
        FileNotFoundError: If .labsite/ directory not found by any method
    """
    env_root = os.environ.get("LABSITE_ROOT")
    if env_root:
        env_path = Path(env_root).resolve()
        if (env_path / DATA_DIR_NAME).is_dir():
            return env_path
        raise FileNotFoundError(
            f"LABSITE_ROOT={env_root} does not contain a {DATA_DIR_NAME}/ directory."
        )

    if start_path is None:
        start_path = Path.cwd()
    result = _walk_up_for_data_dir(Path(start_path))
    if result is not None:
        return result

    global_config = load_global_config()
    site_root_str = global_config.get("site_root")
    if site_root_str:
        global_path = Path(site_root_str).expanduser().resolve()
        if (global_path / DATA_DIR_NAME).is_dir():
            return global_path
        raise FileNotFoundError(
            f"Global config site_root={site_root_str} does not contain a "
            f"{DATA_DIR_NAME}/ directory."
        )

    raise FileNotFoundError(
        f"Could not find {DATA_DIR_NAME}/ directory starting from {start_path}. "
        f"Run 'labsite init' to initialize, set LABSITE_ROOT, or configure "
        f"site_root in {get_global_config_path()}."
    )


@lru_cache(maxsize=1)
def get_site_root() -> Path:
    """Get the cached site root path."""
    return find_site_root()


def get_paths(site_root: Path | None = None) -> SitePaths:
    """Get all standard paths for the site.

    Args:
        site_root: Site root path (uses cached default if not provided)

    Returns:
        SitePaths dataclass with all paths
    """
    if site_root is None:
        site_root = get_site_root()

    site_root = Path(site_root)
    data_dir = site_root / DATA_DIR_NAME

    return SitePaths(
        root=site_root,
        data_dir=data_dir,
        collections=data_dir / "collections",
        cache=data_dir / "cache",
        session_file=data_dir / "cache" / "session.json",
        backups=data_dir / "backups",
        config_file=data_dir / "config.yaml",
    )
