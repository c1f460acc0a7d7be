"""
Cloud Firestore REST client.

Talks to the Firestore v1 REST API with a plain ``requests`` session. Each
content category is a top-level collection; document ids are assigned by
Firestore on create.

Firestore wraps every value in a typed envelope (``{"stringValue": "x"}``);
``encode_value``/``decode_value`` convert between those envelopes and plain
Python values.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from datetime import datetime
from typing import Any

import requests

from labsite.core.errors import InvalidRecord, NotFound, RemoteUnavailable
from labsite.remote import RemoteDocument

logger = logging.getLogger(__name__)

_SIMPLE_FIELD = re.compile(r"^[A-Za-z_][A-Za-z_0-9]*$")


# ---------------------------------------------------------------------------
# Value codec
# ---------------------------------------------------------------------------


def encode_value(value: Any) -> dict[str, Any]:
    """Wrap a Python value in a Firestore typed value envelope.

    Raises:
        TypeError: For values Firestore cannot store.
    """
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        # int64 travels as a decimal string
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": value.isoformat()}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot store value of type {type(value).__name__} in Firestore")


def encode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Encode a mapping of field name to value."""
    return {str(key): encode_value(value) for key, value in fields.items()}


def decode_value(envelope: dict[str, Any]) -> Any:
    """Unwrap a Firestore typed value envelope.

    Timestamps, references and geo points are returned in their wire form
    (strings / dicts).
    """
    if "nullValue" in envelope:
        return None
    if "booleanValue" in envelope:
        return bool(envelope["booleanValue"])
    if "integerValue" in envelope:
        return int(envelope["integerValue"])
    if "doubleValue" in envelope:
        return float(envelope["doubleValue"])
    if "stringValue" in envelope:
        return envelope["stringValue"]
    if "timestampValue" in envelope:
        return envelope["timestampValue"]
    if "referenceValue" in envelope:
        return envelope["referenceValue"]
    if "geoPointValue" in envelope:
        return dict(envelope["geoPointValue"])
    if "bytesValue" in envelope:
        return envelope["bytesValue"]
    if "arrayValue" in envelope:
        return [decode_value(item) for item in envelope["arrayValue"].get("values", [])]
    if "mapValue" in envelope:
        return decode_fields(envelope["mapValue"].get("fields", {}))
    raise ValueError(f"Unknown Firestore value: {envelope!r}")


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Decode a Firestore ``fields`` map."""
    return {key: decode_value(value) for key, value in fields.items()}


def quote_field_path(name: str) -> str:
    """Quote a top-level field name for use in an update mask."""
    if _SIMPLE_FIELD.match(name):
        return name
    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def document_id(name: str) -> str:
    """Return the trailing id of a full document resource name."""
    return name.rsplit("/", 1)[-1]


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class FirestoreClient:
    """Remote collection client for Cloud Firestore."""

    BASE_URL = "https://firestore.googleapis.com/v1"

    PAGE_SIZE = 300

    # Retry config for 429 rate-limit responses
    MAX_RETRIES = 3
    RETRY_BACKOFF_BASE = 1.0  # seconds; doubles each retry

    def __init__(
        self,
        project_id: str,
        api_key: str | None = None,
        id_token: str | None = None,
        database: str = "(default)",
        timeout: float = 15.0,
    ):
        """Initialize the client.

        Args:
            project_id: Google Cloud project id
            api_key: Web API key (sent as ``key`` query parameter)
            id_token: Firebase ID token of the signed-in admin
            database: Firestore database id
            timeout: Per-request timeout in seconds
        """
        self.project_id = project_id
        self.api_key = api_key
        self.database = database
        self.timeout = timeout
        self.documents_url = (
            f"{self.BASE_URL}/projects/{project_id}/databases/{database}/documents"
        )
        self.id_token = id_token
        self._local = threading.local()

    @property
    def _session(self) -> requests.Session:
        """HTTP session for the calling thread (load() fetches from a pool)."""
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            if self.id_token:
                session.headers.update({"Authorization": f"Bearer {self.id_token}"})
            self._local.session = session
        return session

    def _request(
        self,
        method: str,
        path: str,
        params: list[tuple[str, str]] | None = None,
        json_data: dict[str, Any] | None = None,
        collection: str | None = None,
        doc_id: str | None = None,
    ) -> dict[str, Any]:
        """Make a request to the Firestore REST API.

        Retries 429 responses with exponential backoff.

        Raises:
            NotFound: On 404
            RemoteUnavailable: On network failures and any other error status
        """
        url = f"{self.documents_url}/{path.lstrip('/')}"
        query = list(params or [])
        if self.api_key:
            query.append(("key", self.api_key))

        for attempt in range(1 + self.MAX_RETRIES):
            try:
                response = self._session.request(
                    method,
                    url,
                    params=query,
                    json=json_data,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                raise RemoteUnavailable(f"Request failed: {e}", collection, doc_id) from e

            if response.status_code == 429 and attempt < self.MAX_RETRIES:
                wait = self.RETRY_BACKOFF_BASE * (2 ** attempt)
                logger.debug("Rate limited on %s %s, retrying in %.1fs", method, path, wait)
                time.sleep(wait)
                continue

            break

        if response.status_code == 404:
            raise NotFound(f"Not found: {path}", collection, doc_id)

        if not response.ok:
            try:
                message = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                message = response.text
            raise RemoteUnavailable(
                f"Firestore error ({response.status_code}): {message}", collection, doc_id
            )

        if response.status_code == 204 or not response.content:
            return {}

        try:
            result: dict[str, Any] = response.json()
        except ValueError as e:
            raise RemoteUnavailable(f"Invalid JSON from Firestore: {e}", collection, doc_id) from e
        return result

    def fetch_all(self, collection: str) -> list[RemoteDocument]:
        """Return every document of *collection*, following page tokens."""
        documents: list[RemoteDocument] = []
        page_token: str | None = None

        while True:
            params = [("pageSize", str(self.PAGE_SIZE))]
            if page_token:
                params.append(("pageToken", page_token))
            data = self._request("GET", collection, params=params, collection=collection)

            for raw in data.get("documents", []):
                try:
                    fields = decode_fields(raw.get("fields", {}))
                except ValueError as e:
                    raise RemoteUnavailable(str(e), collection) from e
                documents.append(RemoteDocument(id=document_id(raw["name"]), fields=fields))

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.debug("Fetched %d documents from %s", len(documents), collection)
        return documents

    def create(self, collection: str, fields: dict[str, Any]) -> str:
        """Create a document with a Firestore-assigned id."""
        body = {"fields": self._encode(fields, collection)}
        data = self._request("POST", collection, json_data=body, collection=collection)
        name = data.get("name")
        if not name:
            raise RemoteUnavailable("Firestore did not return a document name", collection)
        doc_id = document_id(name)
        logger.debug("Created %s/%s", collection, doc_id)
        return doc_id

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Overwrite the given fields of an existing document."""
        params = [("updateMask.fieldPaths", quote_field_path(key)) for key in fields]
        params.append(("currentDocument.exists", "true"))
        body = {"fields": self._encode(fields, collection)}
        self._request(
            "PATCH",
            f"{collection}/{doc_id}",
            params=params,
            json_data=body,
            collection=collection,
            doc_id=doc_id,
        )
        logger.debug("Updated %s/%s", collection, doc_id)

    def delete(self, collection: str, doc_id: str) -> None:
        """Delete an existing document."""
        self._request(
            "DELETE",
            f"{collection}/{doc_id}",
            params=[("currentDocument.exists", "true")],
            collection=collection,
            doc_id=doc_id,
        )
        logger.debug("Deleted %s/%s", collection, doc_id)

    def _encode(self, fields: dict[str, Any], collection: str) -> dict[str, Any]:
        try:
            return encode_fields(fields)
        except TypeError as e:
            raise InvalidRecord(str(e), collection) from e
