"""
Error taxonomy for content operations.

Every store operation either succeeds or raises one of the ContentError
subclasses below; the in-memory partition map is never left half-mutated.
"""

from __future__ import annotations


class ContentError(Exception):
    """Base exception for content store errors."""

    def __init__(self, message: str, category: str | None = None, record_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.category = category
        self.record_id = record_id


class RemoteUnavailable(ContentError):
    """The remote collection could not complete a fetch/create/update/delete."""


class NotFound(ContentError):
    """A record id is absent from the partition map or the remote collection."""


class InvalidRecord(ContentError):
    """Caller-supplied fields fail the category's shape requirements."""

    def __init__(
        self,
        message: str,
        category: str | None = None,
        record_id: str | None = None,
        errors: list[str] | None = None,
    ):
        super().__init__(message, category=category, record_id=record_id)
        self.errors = list(errors or [])


class InvalidTransition(ValueError):
    """A tab controller transition was requested from an invalid state."""


class AuthError(Exception):
    """Sign-in failed or no session is available."""
