"""
Partitioned content store.

Keeps an in-memory projection of remote collections as a two-level map
``category -> year -> [Record, ...]`` and mirrors every successful remote
write into it.

Invariants maintained by every operation:
  - a record id appears in exactly one year bucket of its category
  - insertion order within a bucket is preserved (new and moved records are
    appended, in-place edits keep their position)
  - a year key exists only while its bucket is non-empty

Remote calls happen before any local mutation, so a failing call leaves the
map exactly as it was.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, TypeVar

from labsite.content.record import Record, UNCATEGORIZED, current_year, resolve_year
from labsite.content.schemas import CATEGORY_SCHEMAS, CategorySchema, validate_record
from labsite.core.errors import ContentError, InvalidRecord, NotFound, RemoteUnavailable
from labsite.remote import RemoteCollectionClient, RemoteDocument

logger = logging.getLogger(__name__)

PartitionMap = dict[str, dict[str, list[Record]]]

T = TypeVar("T")

DEFAULT_LOAD_WORKERS = 4


@dataclass(frozen=True)
class StoreEvent:
    """Notification sent to subscribers after a successful mutation."""

    kind: str  # "added", "updated", "removed", "loaded"
    category: str
    record: Record | None = None
    old_year: str | None = None


StoreListener = Callable[[StoreEvent], None]


def year_sort_key(year: str) -> tuple[int, int, str]:
    """Sort key giving the display order of year labels.

    Numeric labels come first, highest first; other labels (such as
    ``"Uncategorized"``) follow in descending string order. Use with
    ``reverse=True``.
    """
    stripped = year.strip()
    if stripped.isdecimal():
        return (1, int(stripped), stripped)
    return (0, 0, year)


class PartitionedContentStore:
    """Year-partitioned cache of remote content collections."""

    def __init__(
        self,
        client: RemoteCollectionClient,
        schemas: dict[str, CategorySchema] | None = None,
        year_provider: Callable[[], str] = current_year,
        workers: int = DEFAULT_LOAD_WORKERS,
    ):
        """Initialize the store.

        Args:
            client: Remote collection client performing durable writes
            schemas: Category schemas (defaults to the built-in categories)
            year_provider: Returns the current year label used as default
            workers: Maximum concurrent collection fetches during load()
        """
        self.client = client
        self.schemas = schemas if schemas is not None else CATEGORY_SCHEMAS
        self.year_provider = year_provider
        self.workers = max(1, workers)
        self.load_errors: dict[str, ContentError] = {}
        self._partitions: PartitionMap = {}
        self._listeners: list[StoreListener] = []

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register *listener* for mutation events.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: StoreEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _schema(self, category: str) -> CategorySchema:
        schema = self.schemas.get(category)
        if schema is None:
            raise InvalidRecord(
                f"Unknown category: {category!r}. Known: {', '.join(self.schemas)}",
                category=category,
            )
        return schema

    def _validate(self, category: str, fields: dict[str, Any], record_id: str | None = None) -> None:
        errors = validate_record(self._schema(category), fields)
        if errors:
            raise InvalidRecord(
                f"Invalid {category} record: {'; '.join(errors)}",
                category=category,
                record_id=record_id,
                errors=errors,
            )

    def _remote(self, call: Callable[[], T], category: str, record_id: str | None = None) -> T:
        """Run a remote call, folding unexpected failures into RemoteUnavailable."""
        try:
            return call()
        except ContentError:
            raise
        except Exception as e:
            raise RemoteUnavailable(f"Remote call failed: {e}", category, record_id) from e

    def _group(self, category: str, documents: Iterable[RemoteDocument]) -> dict[str, list[Record]]:
        buckets: dict[str, list[Record]] = {}
        for document in documents:
            record = Record.from_document(category, document.id, document.fields)
            buckets.setdefault(record.year, []).append(record)
        return buckets

    def _fetch(self, category: str) -> dict[str, list[Record]]:
        documents = self._remote(lambda: self.client.fetch_all(category), category)
        return self._group(category, documents)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def load(self, categories: Iterable[str]) -> PartitionMap:
        """Fetch *categories* from the remote store and rebuild their partitions.

        Fetches run concurrently; the map is only updated once every fetch has
        finished. A category whose fetch fails is left absent and its error is
        recorded in ``load_errors``; the remaining categories still populate.

        Returns:
            Deep copy of the partitions of the requested categories that loaded
        """
        wanted = list(dict.fromkeys(categories))
        for category in wanted:
            self._schema(category)

        fetched: dict[str, dict[str, list[Record]]] = {}
        errors: dict[str, ContentError] = {}

        if wanted:
            with ThreadPoolExecutor(max_workers=min(self.workers, len(wanted))) as executor:
                futures = {category: executor.submit(self._fetch, category) for category in wanted}
                for category, future in futures.items():
                    try:
                        fetched[category] = future.result()
                    except ContentError as e:
                        errors[category] = e
                        logger.warning("Failed to load %s: %s", category, e)

        for category in wanted:
            if category in fetched:
                self._partitions[category] = fetched[category]
                self.load_errors.pop(category, None)
            else:
                self._partitions.pop(category, None)
                self.load_errors[category] = errors[category]

        for category in wanted:
            self._emit(StoreEvent(kind="loaded", category=category))

        return {category: copy.deepcopy(self._partitions[category]) for category in fetched}

    def add(self, category: str, fields: dict[str, Any]) -> Record:
        """Create a record remotely and file it under its effective year.

        A missing ``year`` defaults to the current year; an empty one files the
        record as Uncategorized.

        Raises:
            InvalidRecord: Before any remote call if fields are invalid
            RemoteUnavailable: If the remote create fails (map unchanged)
        """
        year = resolve_year(fields, self.year_provider())
        data = {k: copy.deepcopy(v) for k, v in fields.items() if k not in ("id", "year")}
        self._validate(category, data)

        draft = Record(id="", category=category, year=year, fields=data)
        record_id = self._remote(lambda: self.client.create(category, draft.to_document()), category)
        record = replace(draft, id=record_id)

        self._partitions.setdefault(category, {}).setdefault(year, []).append(record)
        logger.debug("Added %s/%s under %s", category, record_id, year)
        self._emit(StoreEvent(kind="added", category=category, record=copy.deepcopy(record)))
        return copy.deepcopy(record)

    def update(self, category: str, record_id: str, new_fields: dict[str, Any]) -> Record:
        """Merge *new_fields* into a record, moving it if its year changes.

        The record's current bucket is found by scanning the category. Without
        a ``year`` in *new_fields* the record keeps its year. A record whose
        year is unchanged keeps its position; a moved record goes to the end
        of its new bucket.

        Raises:
            NotFound: If the id is not in the category (no remote call)
            InvalidRecord: If the merged record is invalid (no remote call)
            RemoteUnavailable: If the remote update fails (map unchanged)
        """
        self._schema(category)
        found = self._locate(category, record_id)
        if found is None:
            raise NotFound(f"No {category} record with id {record_id!r}", category, record_id)
        old_year, index, existing = found

        new_year = resolve_year(new_fields, old_year)
        merged = copy.deepcopy(existing.fields)
        merged.update({k: copy.deepcopy(v) for k, v in new_fields.items() if k not in ("id", "year")})
        self._validate(category, merged, record_id)

        updated = Record(id=record_id, category=category, year=new_year, fields=merged)
        self._remote(
            lambda: self.client.update(category, record_id, updated.to_document()),
            category,
            record_id,
        )

        buckets = self._partitions[category]
        if new_year == old_year:
            buckets[old_year][index] = updated
        else:
            del buckets[old_year][index]
            if not buckets[old_year]:
                del buckets[old_year]
            buckets.setdefault(new_year, []).append(updated)
            logger.debug("Moved %s/%s from %s to %s", category, record_id, old_year, new_year)

        self._emit(
            StoreEvent(kind="updated", category=category, record=copy.deepcopy(updated), old_year=old_year)
        )
        return copy.deepcopy(updated)

    def remove(self, category: str, record_id: str, year: str | None = None) -> None:
        """Delete a record remotely, then drop it from its bucket.

        Args:
            category: Record category
            record_id: Record id
            year: Bucket the caller shows the record in; scanned for when omitted

        Raises:
            NotFound: If the record is not in that bucket (no remote call)
            RemoteUnavailable: If the remote delete fails (map unchanged)
        """
        self._schema(category)
        buckets = self._partitions.get(category, {})

        if year is None:
            found = self._locate(category, record_id)
            if found is None:
                raise NotFound(f"No {category} record with id {record_id!r}", category, record_id)
            year = found[0]
        else:
            year = resolve_year({"year": year}, UNCATEGORIZED)

        bucket = buckets.get(year, [])
        index = next((i for i, record in enumerate(bucket) if record.id == record_id), None)
        if index is None:
            raise NotFound(
                f"No {category} record with id {record_id!r} under {year}", category, record_id
            )

        self._remote(lambda: self.client.delete(category, record_id), category, record_id)

        record = bucket.pop(index)
        if not bucket:
            del buckets[year]
        logger.debug("Removed %s/%s from %s", category, record_id, year)
        self._emit(StoreEvent(kind="removed", category=category, record=record, old_year=year))

    def years(self, category: str) -> list[str]:
        """Return the year labels present for *category* in display order."""
        return sorted(self._partitions.get(category, {}), key=year_sort_key, reverse=True)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def _locate(self, category: str, record_id: str) -> tuple[str, int, Record] | None:
        for year, bucket in self._partitions.get(category, {}).items():
            for index, record in enumerate(bucket):
                if record.id == record_id:
                    return year, index, record
        return None

    def find(self, category: str, record_id: str) -> tuple[str, int, Record] | None:
        """Locate a record by scanning its category.

        Returns:
            (year, index within bucket, copy of the record), or None
        """
        found = self._locate(category, record_id)
        if found is None:
            return None
        year, index, record = found
        return year, index, copy.deepcopy(record)

    def get(self, category: str, record_id: str) -> Record | None:
        """Get a copy of a record by id."""
        found = self.find(category, record_id)
        return found[2] if found else None

    def records(self, category: str, year: str | None = None) -> list[Record]:
        """List copies of a category's records, grouped in display year order."""
        buckets = self._partitions.get(category, {})
        if year is not None:
            return copy.deepcopy(buckets.get(year, []))
        return copy.deepcopy([record for label in self.years(category) for record in buckets[label]])

    def categories(self) -> list[str]:
        """Categories currently present in the map."""
        return list(self._partitions)

    def partition(self, category: str) -> dict[str, list[Record]]:
        """Read-only copy of one category's buckets."""
        return copy.deepcopy(self._partitions.get(category, {}))

    def snapshot(self) -> PartitionMap:
        """Deep copy of the whole partition map."""
        return copy.deepcopy(self._partitions)

    def stats(self) -> dict[str, dict[str, int]]:
        """Per-category record and year counts."""
        return {
            category: {
                "records": sum(len(bucket) for bucket in buckets.values()),
                "years": len(buckets),
            }
            for category, buckets in self._partitions.items()
        }
