"""
Category tab controller.

Tracks which category tab is active and whether a single record is focused
(being viewed or edited) or the year-grouped list is shown. Each transition
returns the new state.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Union

from labsite.content.record import Record
from labsite.content.store import PartitionedContentStore, StoreEvent
from labsite.core.errors import InvalidTransition


@dataclass(frozen=True)
class Listing:
    """The list of a category is shown."""

    category: str


@dataclass(frozen=True)
class Focused:
    """A single record of the category is shown."""

    category: str
    record: Record


TabState = Union[Listing, Focused]


class TabController:
    """State machine over ``Listing(category)`` and ``Focused(category, record)``."""

    def __init__(self, categories: Iterable[str], default_category: str | None = None):
        """Initialize in ``Listing(default_category)``.

        Args:
            categories: Known category names, in tab order
            default_category: Initially active tab (defaults to the first)

        Raises:
            InvalidTransition: If no categories are given or the default is unknown
        """
        self.categories = list(categories)
        if not self.categories:
            raise InvalidTransition("TabController needs at least one category")
        default = default_category if default_category is not None else self.categories[0]
        if default not in self.categories:
            raise InvalidTransition(f"Unknown default category: {default!r}")
        self.state: TabState = Listing(default)

    @property
    def active_category(self) -> str:
        return self.state.category

    @property
    def focused_record(self) -> Record | None:
        if isinstance(self.state, Focused):
            return self.state.record
        return None

    def select_category(self, category: str) -> TabState:
        """Switch tabs, discarding any focus."""
        if category not in self.categories:
            raise InvalidTransition(f"Unknown category: {category!r}")
        self.state = Listing(category)
        return self.state

    def focus(self, record: Record) -> TabState:
        """Focus *record*, which must belong to the active category."""
        if record.category != self.state.category:
            raise InvalidTransition(
                f"Cannot focus a {record.category} record while the "
                f"{self.state.category} tab is active"
            )
        self.state = Focused(self.state.category, record)
        return self.state

    def unfocus(self) -> TabState:
        """Return to the list of the active category."""
        self.state = Listing(self.state.category)
        return self.state

    def record_deleted(self, record_id: str) -> TabState:
        """Drop focus if the focused record was deleted."""
        if isinstance(self.state, Focused) and self.state.record.id == record_id:
            self.state = Listing(self.state.category)
        return self.state

    def record_updated(self, record: Record) -> TabState:
        """Point focus at the new version of an edited record."""
        if (
            isinstance(self.state, Focused)
            and self.state.record.id == record.id
            and record.category == self.state.category
        ):
            self.state = Focused(self.state.category, record)
        return self.state

    def bind(self, store: PartitionedContentStore) -> Callable[[], None]:
        """Follow mutations of *store*.

        Returns:
            Callable that stops following the store
        """

        def on_event(event: StoreEvent) -> None:
            if event.category != self.state.category:
                return
            if event.kind == "removed" and event.record is not None:
                self.record_deleted(event.record.id)
            elif event.kind == "updated" and event.record is not None:
                self.record_updated(event.record)
            elif event.kind == "loaded":
                focused = self.focused_record
                if focused is not None:
                    current = store.get(event.category, focused.id)
                    if current is None:
                        self.unfocus()
                    else:
                        self.record_updated(current)

        return store.subscribe(on_event)
