"""
Backup and atomic file writing for collection files.

Every write of a collection file first snapshots the previous version into a
timestamped backup, then replaces the file atomically through a temp file in
the same directory.
"""

from __future__ import annotations

import contextlib
import json
import os
import re
import shutil
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

DEFAULT_KEEP_COUNT = 10
DEFAULT_KEEP_DAYS = 30
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
TIMESTAMP_PATTERN = re.compile(r"_(\d{8}_\d{6}_\d{6})\.")


def parse_backup_timestamp(filename: str) -> datetime | None:
    """Extract timestamp from a backup filename.

    Args:
        filename: Backup filename like 'events_20251212_144234_000123.json'

    Returns:
        datetime if parseable, None otherwise
    """
    match = TIMESTAMP_PATTERN.search(filename)
    if match:
        try:
            return datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
        except ValueError:
            return None
    return None


def create_backup(file_path: Path, backup_dir: Path | None = None) -> Path:
    """Copy *file_path* to a timestamped file in *backup_dir*.

    Args:
        file_path: File to back up
        backup_dir: Target directory (defaults to file_path.parent / 'backups')

    Returns:
        Path to the created backup

    Raises:
        FileNotFoundError: If file_path doesn't exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Cannot backup non-existent file: {file_path}")

    backup_dir = Path(backup_dir) if backup_dir is not None else file_path.parent / "backups"
    backup_dir.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime(TIMESTAMP_FORMAT)
    backup_path = backup_dir / f"{file_path.stem}_{stamp}{file_path.suffix}"
    shutil.copy2(file_path, backup_path)
    return backup_path


def cleanup_old_backups(
    backup_dir: Path,
    stem: str,
    keep_last: int = DEFAULT_KEEP_COUNT,
    keep_days: int | None = DEFAULT_KEEP_DAYS,
) -> list[Path]:
    """Rotate backups of the file named *stem*.

    The newest ``keep_last`` backups are always kept. Older ones are removed
    when ``keep_days`` is None, or when they are older than ``keep_days``.

    Returns:
        List of removed backup paths
    """
    backup_dir = Path(backup_dir)
    if not backup_dir.exists():
        return []

    dated = []
    for path in backup_dir.glob(f"{stem}_*.json"):
        timestamp = parse_backup_timestamp(path.name)
        if timestamp is not None:
            dated.append((timestamp, path))
    dated.sort(reverse=True)

    cutoff = datetime.now() - timedelta(days=keep_days) if keep_days is not None else None
    removed = []
    for timestamp, path in dated[keep_last:]:
        if cutoff is None or timestamp < cutoff:
            path.unlink()
            removed.append(path)
    return removed


def safe_write_json(
    file_path: Path,
    data: dict[str, Any],
    backup_dir: Path | None = None,
    create_backup_first: bool = True,
    keep_backups: int = DEFAULT_KEEP_COUNT,
    keep_days: int | None = DEFAULT_KEEP_DAYS,
) -> Path | None:
    """Atomically write *data* as JSON, backing up the previous file first.

    Args:
        file_path: Destination JSON file
        data: JSON-serializable mapping
        backup_dir: Backup directory (defaults to file_path.parent / 'backups')
        create_backup_first: Snapshot the existing file before writing
        keep_backups: Number of most recent backups always kept
        keep_days: Age limit for older backups (None = count only)

    Returns:
        Path to the backup file if one was created, None otherwise

    Raises:
        ValueError: If data cannot be serialized to JSON
        OSError: If the write fails
    """
    file_path = Path(file_path)
    backup_path = None

    if create_backup_first and file_path.exists():
        backup_path = create_backup(file_path, backup_dir)
        cleanup_old_backups(
            backup_dir or (file_path.parent / "backups"),
            file_path.stem,
            keep_backups,
            keep_days,
        )

    try:
        json_str = json.dumps(data, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Cannot serialize data to JSON: {e}") from e

    file_path.parent.mkdir(parents=True, exist_ok=True)
    temp_fd, temp_path = tempfile.mkstemp(
        suffix=".json",
        prefix=f".{file_path.name}.",
        dir=file_path.parent,
        text=True,
    )
    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
            f.write(json_str)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        Path(temp_path).replace(file_path)
    except Exception as e:
        with contextlib.suppress(OSError):
            Path(temp_path).unlink()
        raise OSError(f"Failed to write {file_path}: {e}") from e

    return backup_path
