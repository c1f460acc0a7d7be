"""Remote collection clients.

A remote collection client performs durable reads and writes of documents
grouped into named collections (one collection per content category). The
content store depends only on the ``RemoteCollectionClient`` protocol.

Implementations must raise ``RemoteUnavailable`` when the backend cannot
complete a call and ``NotFound`` when an update or delete targets a missing
document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from labsite.auth.session import Session


@dataclass
class RemoteDocument:
    """A document as returned by a full collection scan."""

    id: str
    fields: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class RemoteCollectionClient(Protocol):
    """Minimal interface the content store needs from a document backend."""

    def fetch_all(self, collection: str) -> list[RemoteDocument]:
        """Return every document of *collection*."""
        ...

    def create(self, collection: str, fields: dict[str, Any]) -> str:
        """Insert a document and return its server-assigned id."""
        ...

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Replace the given fields of an existing document."""
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        """Delete an existing document."""
        ...


def get_remote_client(
    config: dict[str, Any],
    site_root: Path | None = None,
    session: Session | None = None,
) -> RemoteCollectionClient:
    """Build the configured remote client.

    Args:
        config: Site configuration dict (``backend.type`` selects the backend)
        site_root: Site root for the JSON backend (uses cached default if not provided)
        session: Signed-in session; its token authorizes Firestore writes

    Returns:
        A RemoteCollectionClient

    Raises:
        ValueError: If the backend is unknown or not fully configured
    """
    backend = str(config.get("backend", {}).get("type", "json")).lower()

    if backend == "json":
        from labsite.core.config import get_paths
        from labsite.remote.jsonfile import JsonCollectionClient

        backup_config: dict[str, Any] = config.get("backup", {})
        return JsonCollectionClient(
            get_paths(site_root),
            keep_backups=backup_config.get("keep_count"),
            keep_days=backup_config.get("keep_days"),
        )

    if backend == "firestore":
        from labsite.remote.firestore import FirestoreClient

        firestore_config: dict[str, Any] = config.get("firestore", {})
        project_id = firestore_config.get("project_id")
        if not project_id:
            raise ValueError("firestore.project_id is not configured")
        return FirestoreClient(
            project_id=str(project_id),
            api_key=firestore_config.get("api_key"),
            id_token=session.token if session is not None else None,
            database=str(firestore_config.get("database", "(default)")),
        )

    raise ValueError(f"Unknown backend type: {backend!r} (expected 'json' or 'firestore')")


__all__ = ["RemoteCollectionClient", "RemoteDocument", "get_remote_client"]
