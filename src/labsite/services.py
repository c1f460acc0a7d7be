"""
Wiring shared by the CLI commands.

Builds the session manager, remote client and content store from the site
configuration. Nothing here is cached at module level; every command builds
its own objects.
"""

from __future__ import annotations

from labsite.auth.session import Session, SessionManager, get_auth_backend
from labsite.config.commands import get_setting, load_config
from labsite.content.store import PartitionedContentStore
from labsite.core.config import get_paths
from labsite.remote import get_remote_client


def get_session_manager() -> SessionManager:
    """Session manager persisting to the site cache."""
    config = load_config()
    return SessionManager(get_auth_backend(config), cache_path=get_paths().session_file)


def open_store(session: Session | None = None) -> PartitionedContentStore:
    """Content store over the configured backend.

    Args:
        session: Signed-in session whose token authorizes remote writes
    """
    config = load_config()
    client = get_remote_client(config, session=session)
    return PartitionedContentStore(client, workers=int(get_setting("load.workers")))
