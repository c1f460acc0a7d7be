"""
Configuration management CLI commands.

Manages labsite settings stored in .labsite/config.yaml.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.table import Table

from labsite.core.backup import DEFAULT_KEEP_COUNT, DEFAULT_KEEP_DAYS
from labsite.core.config import get_paths
from labsite.content.store import DEFAULT_LOAD_WORKERS

console = Console()


def get_config_path() -> Path:
    """Get path to config file."""
    return get_paths().config_file


def load_config() -> dict[str, Any]:
    """Load configuration from file (YAML, or JSON for hand-written files)."""
    config_path = get_config_path()
    if not config_path.exists():
        return {}

    content = config_path.read_text(encoding="utf-8")
    if not content.strip():
        return {}

    if content.strip().startswith("{"):
        result: dict[str, Any] = json.loads(content)
        return result
    loaded = yaml.safe_load(content)
    if isinstance(loaded, dict):
        return loaded
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to file (YAML format)."""
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        yaml.dump(config, default_flow_style=False, sort_keys=False), encoding="utf-8"
    )


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a configuration value by dotted key."""
    current: Any = load_config()
    for part in key.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return default
    return current


def set_config_value(key: str, value: Any) -> None:
    """Set a configuration value by dotted key."""
    config = load_config()
    parts = key.split(".")

    current = config
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]

    current[parts[-1]] = value
    save_config(config)


# Known settings with defaults and descriptions
CONFIG_SCHEMA: dict[str, dict[str, Any]] = {
    "backend.type": {
        "default": "json",
        "type": str,
        "description": "Document backend: json (local files) or firestore",
    },
    "firestore.project_id": {
        "default": None,
        "type": str,
        "description": "Google Cloud project id of the Firestore database",
    },
    "firestore.api_key": {
        "default": None,
        "type": str,
        "description": "Firebase web API key",
    },
    "auth.provider": {
        "default": "local",
        "type": str,
        "description": "Admin sign-in provider: local or firebase",
    },
    "admin.default_category": {
        "default": "events",
        "type": str,
        "description": "Tab shown first in the admin panel",
    },
    "load.workers": {
        "default": DEFAULT_LOAD_WORKERS,
        "type": int,
        "description": "Concurrent collection fetches when loading content",
    },
    "backup.keep_count": {
        "default": DEFAULT_KEEP_COUNT,
        "type": int,
        "description": "Minimum number of collection backups to keep",
    },
    "backup.keep_days": {
        "default": DEFAULT_KEEP_DAYS,
        "type": int,
        "description": "Maximum age of collection backups in days",
    },
}


def get_setting(key: str) -> Any:
    """Get a known setting, falling back to its schema default."""
    value = get_config_value(key)
    if value is None:
        return CONFIG_SCHEMA[key]["default"]
    return value


def _unknown_setting(key: str) -> None:
    console.print(f"[red]Unknown setting: {key}[/red]")
    console.print("\nAvailable settings:")
    for k in CONFIG_SCHEMA:
        console.print(f"  - {k}")


@click.group()
def config():
    """Manage labsite configuration.

    Settings are stored in .labsite/config.yaml.
    """
    pass


@config.command(name="show")
@click.option("--all", "show_all", is_flag=True, help="Show all settings including defaults")
def show_cmd(show_all: bool):
    """Show current configuration.

    Without --all, only shows settings that differ from defaults.
    """
    cfg = load_config()
    config_path = get_config_path()

    if not cfg and not show_all:
        console.print("[dim]No custom configuration set. Using defaults.[/dim]")
        console.print(f"[dim]Config file: {config_path}[/dim]")
        console.print("\n[dim]Use 'labsite config show --all' to see all settings.[/dim]")
        return

    table = Table(title="Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value", style="green")
    table.add_column("Default", style="dim")
    table.add_column("Description", style="dim")

    for key, schema in CONFIG_SCHEMA.items():
        current = get_config_value(key)
        default = schema["default"]
        is_custom = current is not None and current != default

        if show_all or is_custom:
            if key.endswith("api_key") and current:
                display_value = "****"
            else:
                display_value = str(current) if current is not None else f"[dim]{default}[/dim]"
            table.add_row(key, display_value, str(default), schema["description"])

    console.print(table)
    console.print(f"\n[dim]Config file: {config_path}[/dim]")


@config.command(name="get")
@click.argument("key")
def get_cmd(key: str):
    """Get a configuration value.

    Examples:
        labsite config get backend.type
        labsite config get admin.default_category
    """
    if key not in CONFIG_SCHEMA:
        _unknown_setting(key)
        return

    value = get_config_value(key)
    if value is None:
        console.print(f"{key} = {CONFIG_SCHEMA[key]['default']} [dim](default)[/dim]")
    else:
        console.print(f"{key} = {value}")


@config.command(name="set")
@click.argument("key")
@click.argument("value")
def set_cmd(key: str, value: str):
    """Set a configuration value.

    Examples:
        labsite config set backend.type firestore
        labsite config set firestore.project_id crypto-lab-site
        labsite config set load.workers 8
    """
    if key not in CONFIG_SCHEMA:
        _unknown_setting(key)
        return

    typed_value: int | str
    if CONFIG_SCHEMA[key]["type"] is int:
        try:
            typed_value = int(value)
        except ValueError:
            console.print("[red]Invalid value type. Expected int[/red]")
            return
    else:
        typed_value = value

    set_config_value(key, typed_value)
    console.print(f"[green]Set {key} = {typed_value}[/green]")


@config.command(name="reset")
@click.argument("key", required=False)
@click.option("--all", "reset_all", is_flag=True, help="Reset all settings to defaults")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def reset_cmd(key: str | None, reset_all: bool, force: bool):
    """Reset configuration to defaults.

    Examples:
        labsite config reset load.workers   # Reset single setting
        labsite config reset --all          # Reset all settings
    """
    if not key and not reset_all:
        console.print("[red]Specify a key or use --all to reset all settings[/red]")
        return

    if reset_all:
        if not force and not click.confirm("Reset all settings to defaults?"):
            console.print("[yellow]Cancelled[/yellow]")
            return
        config_path = get_config_path()
        if config_path.exists():
            config_path.unlink()
        console.print("[green]All settings reset to defaults[/green]")
        return

    if key not in CONFIG_SCHEMA:
        console.print(f"[red]Unknown setting: {key}[/red]")
        return

    cfg = load_config()
    parts = key.split(".")
    current = cfg
    for part in parts[:-1]:
        if isinstance(current.get(part), dict):
            current = current[part]
        else:
            console.print(f"[dim]{key} is already at default[/dim]")
            return

    if parts[-1] in current:
        del current[parts[-1]]
        save_config(cfg)
        console.print(f"[green]Reset {key} to default ({CONFIG_SCHEMA[key]['default']})[/green]")
    else:
        console.print(f"[dim]{key} is already at default[/dim]")


@config.command(name="path")
def path_cmd():
    """Show path to config file."""
    console.print(str(get_config_path()))
