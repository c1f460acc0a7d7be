"""
Local JSON-file document store.

Each collection lives in ``.labsite/collections/<name>.json`` as a mapping of
document id to document fields. Writes are atomic and every write backs up the
previous file under ``.labsite/backups/<name>/``.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
import uuid
from datetime import datetime
from typing import Any

from labsite.core.backup import DEFAULT_KEEP_COUNT, DEFAULT_KEEP_DAYS, safe_write_json
from labsite.core.config import SitePaths
from labsite.core.errors import NotFound, RemoteUnavailable
from labsite.remote import RemoteDocument

logger = logging.getLogger(__name__)


def new_document_id() -> str:
    """Return a random 20-character document id."""
    return uuid.uuid4().hex[:20]


class JsonCollectionClient:
    """Remote collection client backed by JSON files on disk."""

    # Keys that are metadata, not documents
    SPECIAL_KEYS = {"_comment", "_schema_version", "_updated"}

    SCHEMA_VERSION = "1.0"

    def __init__(
        self,
        paths: SitePaths,
        keep_backups: int | None = None,
        keep_days: int | None = None,
    ):
        """Initialize the client.

        Args:
            paths: Site paths (collection and backup directories)
            keep_backups: Number of backups kept per collection
            keep_days: Age limit for older backups
        """
        self.paths = paths
        self.keep_backups = keep_backups if keep_backups is not None else DEFAULT_KEEP_COUNT
        self.keep_days = keep_days if keep_days is not None else DEFAULT_KEEP_DAYS
        self._lock = threading.Lock()

    # -- file access --------------------------------------------------------

    def _read(self, collection: str) -> dict[str, Any]:
        path = self.paths.collection_file(collection)
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise RemoteUnavailable(
                f"{path} contains invalid JSON ({e}). Fix it or restore a backup "
                f"from {self.paths.collection_backups(collection)}.",
                category=collection,
            ) from e
        except OSError as e:
            raise RemoteUnavailable(f"Cannot read {path}: {e}", category=collection) from e
        if not isinstance(data, dict):
            raise RemoteUnavailable(f"{path} does not contain a JSON object", category=collection)
        return data

    def _write(self, collection: str, data: dict[str, Any]) -> None:
        data["_comment"] = f"labsite collection '{collection}'. Edit with 'labsite content'."
        data["_schema_version"] = self.SCHEMA_VERSION
        data["_updated"] = datetime.now().isoformat(timespec="seconds")
        try:
            safe_write_json(
                self.paths.collection_file(collection),
                data,
                backup_dir=self.paths.collection_backups(collection),
                keep_backups=self.keep_backups,
                keep_days=self.keep_days,
            )
        except (OSError, ValueError) as e:
            raise RemoteUnavailable(str(e), category=collection) from e

    def _documents(self, data: dict[str, Any]) -> dict[str, dict[str, Any]]:
        return {key: value for key, value in data.items() if key not in self.SPECIAL_KEYS}

    # -- RemoteCollectionClient ---------------------------------------------

    def fetch_all(self, collection: str) -> list[RemoteDocument]:
        """Return every document of *collection* in file order."""
        data = self._read(collection)
        documents = [
            RemoteDocument(id=doc_id, fields=copy.deepcopy(fields))
            for doc_id, fields in self._documents(data).items()
            if isinstance(fields, dict)
        ]
        logger.debug("Fetched %d documents from %s", len(documents), collection)
        return documents

    def create(self, collection: str, fields: dict[str, Any]) -> str:
        """Insert a document and return its new id."""
        with self._lock:
            data = self._read(collection)
            doc_id = new_document_id()
            while doc_id in data:
                doc_id = new_document_id()
            data[doc_id] = copy.deepcopy(fields)
            self._write(collection, data)
        logger.debug("Created %s/%s", collection, doc_id)
        return doc_id

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge *fields* into an existing document."""
        with self._lock:
            data = self._read(collection)
            if doc_id in self.SPECIAL_KEYS or doc_id not in data:
                raise NotFound(f"No document {doc_id!r} in {collection}", collection, doc_id)
            data[doc_id] = {**data[doc_id], **copy.deepcopy(fields)}
            self._write(collection, data)
        logger.debug("Updated %s/%s", collection, doc_id)

    def delete(self, collection: str, doc_id: str) -> None:
        """Delete an existing document."""
        with self._lock:
            data = self._read(collection)
            if doc_id in self.SPECIAL_KEYS or doc_id not in data:
                raise NotFound(f"No document {doc_id!r} in {collection}", collection, doc_id)
            del data[doc_id]
            self._write(collection, data)
        logger.debug("Deleted %s/%s", collection, doc_id)
