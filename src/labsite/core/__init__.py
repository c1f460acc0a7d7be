"""Core utilities for labsite."""

from labsite.core.backup import (
    DEFAULT_KEEP_COUNT,
    DEFAULT_KEEP_DAYS,
    create_backup,
    safe_write_json,
)
from labsite.core.config import get_paths, get_site_root
from labsite.core.errors import (
    AuthError,
    ContentError,
    InvalidRecord,
    InvalidTransition,
    NotFound,
    RemoteUnavailable,
)

__all__ = [
    # Backup
    "create_backup",
    "safe_write_json",
    "DEFAULT_KEEP_COUNT",
    "DEFAULT_KEEP_DAYS",
    # Config
    "get_site_root",
    "get_paths",
    # Errors
    "ContentError",
    "RemoteUnavailable",
    "NotFound",
    "InvalidRecord",
    "InvalidTransition",
    "AuthError",
]
