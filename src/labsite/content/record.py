"""
Content record model and year normalization.

A Record is one document of a remote collection. Its ``year`` is the
*effective* year: the canonical partition label every record is filed under.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from labsite.core.errors import InvalidRecord

UNCATEGORIZED = "Uncategorized"


def current_year() -> str:
    """Return the current calendar year as a year label."""
    return str(date.today().year)


def normalize_year(value: Any) -> str:
    """Normalize a raw ``year`` value to its effective year label.

    Integers become their decimal string, strings are stripped, and
    ``None``/empty/whitespace-only values become ``"Uncategorized"``.

    Raises:
        InvalidRecord: If the value is neither a string nor an integer.
    """
    if value is None:
        return UNCATEGORIZED
    if isinstance(value, bool):
        raise InvalidRecord(f"year must be a string or integer, got {value!r}")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, str):
        return value.strip() or UNCATEGORIZED
    raise InvalidRecord(f"year must be a string or integer, got {type(value).__name__}")


def resolve_year(fields: dict[str, Any], fallback: str) -> str:
    """Return the effective year for *fields*.

    An absent ``year`` key yields *fallback*; a present key is normalized,
    so an explicit empty value still means ``"Uncategorized"``.
    """
    if "year" not in fields:
        return fallback
    return normalize_year(fields["year"])


@dataclass(frozen=True)
class Record:
    """A single content item within a category."""

    id: str
    category: str
    year: str
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        """Display title (members and some legacy documents use ``name``)."""
        for key in ("title", "name"):
            value = self.fields.get(key)
            if value:
                return str(value)
        return self.id

    @property
    def description(self) -> str | None:
        return self.fields.get("description")

    def get(self, key: str, default: Any = None) -> Any:
        """Return a field value."""
        return self.fields.get(key, default)

    def to_document(self) -> dict[str, Any]:
        """Return the remote document body (fields plus canonical year)."""
        document = copy.deepcopy(self.fields)
        document["year"] = self.year
        return document

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {"id": self.id, "category": self.category, **self.to_document()}

    @classmethod
    def from_document(cls, category: str, record_id: str, document: dict[str, Any]) -> Record:
        """Build a record from a fetched remote document.

        Documents written without a usable year are filed as Uncategorized.
        """
        fields = {k: v for k, v in document.items() if k not in ("id", "year")}
        try:
            year = normalize_year(document.get("year"))
        except InvalidRecord:
            year = UNCATEGORIZED
        return cls(id=record_id, category=category, year=year, fields=fields)
