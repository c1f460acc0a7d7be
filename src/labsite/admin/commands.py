"""
Interactive admin panel.

One tab per content category. The list view shows the active category
grouped by year; picking a number focuses a record for editing or deletion.
The tab state follows the store, so deleting or moving the focused record
updates the view without a reload.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import click
from rich.console import Console

from labsite.auth.session import Session, SessionManager
from labsite.content.record import Record
from labsite.content.render import render_category, render_record, year_heading
from labsite.content.schemas import CATEGORY_SCHEMAS, CategorySchema
from labsite.content.store import PartitionedContentStore
from labsite.content.tabs import Focused, TabController
from labsite.core.errors import AuthError, ContentError
from labsite.core.field_ops import FieldType, coerce_value
from labsite.core.prompts import (
    confirm,
    error_message,
    prompt_user,
    select_from_list,
    success_message,
    warning_message,
)

logger = logging.getLogger(__name__)
console = Console()

LIST_ACTIONS = "[number] open  a add  t switch tab  r reload  q quit"
FOCUS_ACTIONS = "e edit  d delete  b back  q quit"


# ---------------------------------------------------------------------------
# Form helpers
# ---------------------------------------------------------------------------


def _display(value: Any, field_type: FieldType) -> str:
    if value is None:
        return ""
    if field_type == FieldType.STRING_LIST and isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def prompt_fields(schema: CategorySchema, record: Record | None = None) -> dict[str, Any]:
    """Ask for each schema field, plus the year.

    When editing, the current values are the defaults and only changed fields
    are returned. Blank optional fields are skipped when adding.
    """
    changes: dict[str, Any] = {}
    for name, field_def in schema.fields.items():
        current = record.get(name) if record else None
        default = _display(current, field_def.field_type)
        marker = "*" if name in schema.required else ""
        while True:
            raw = prompt_user(f"{name}{marker} [dim]({field_def.description})[/dim]", default=default or None)
            if record is not None and raw == default:
                break
            if raw == "" and record is None:
                break
            try:
                changes[name] = coerce_value(raw, field_def)
                break
            except ValueError as e:
                error_message(str(e))

    year_default = record.year if record else None
    year = prompt_user("year [dim](blank for the current year)[/dim]", default=year_default)
    if record is None:
        if year.strip():
            changes["year"] = year
    elif year != record.year:
        changes["year"] = year
    return changes


# ---------------------------------------------------------------------------
# Panel
# ---------------------------------------------------------------------------


class AdminPanel:
    """Drives a TabController and a store from console input."""

    def __init__(
        self,
        store: PartitionedContentStore,
        tabs: TabController,
        sessions: SessionManager | None = None,
        dry_run: bool = False,
    ):
        self.store = store
        self.tabs = tabs
        self.sessions = sessions
        self.dry_run = dry_run
        self.signed_out = False
        self._shown: list[Record] = []

    def on_session(self, session: Session | None) -> None:
        if session is None:
            self.signed_out = True

    def reload(self) -> None:
        logger.debug("Reloading %d categories", len(self.tabs.categories))
        self.store.load(self.tabs.categories)
        for category, error in self.store.load_errors.items():
            warning_message(f"Could not load {category}: {error}")

    def show(self) -> None:
        category = self.tabs.active_category
        label = CATEGORY_SCHEMAS[category].label
        console.rule(f"[bold]{label}[/bold]")
        state = self.tabs.state
        if isinstance(state, Focused):
            render_record(console, state.record)
            console.print(f"[dim]{year_heading(state.record.year)}[/dim]")
            console.print(f"[dim]{FOCUS_ACTIONS}[/dim]")
        else:
            if category in self.store.load_errors:
                error_message(f"{category} failed to load. Press r to retry.")
                self._shown = []
            else:
                self._shown = render_category(console, self.store, category, numbered=True)
            console.print(f"[dim]{LIST_ACTIONS}[/dim]")

    def step(self, choice: str) -> bool:
        """Handle one command. Returns False when the panel should close."""
        choice = choice.strip().lower()
        if choice == "q":
            return False
        if isinstance(self.tabs.state, Focused):
            self._focused_action(choice)
        else:
            self._list_action(choice)
        return True

    def _list_action(self, choice: str) -> None:
        if choice == "a":
            self.add()
        elif choice == "t":
            selected = select_from_list(
                self.tabs.categories,
                message="Switch to",
                display_func=lambda c: CATEGORY_SCHEMAS[c].label,
            )
            if selected is not None:
                self.tabs.select_category(selected)
        elif choice == "r":
            self.reload()
        elif choice.isdigit() and 1 <= int(choice) <= len(self._shown):
            self.tabs.focus(self._shown[int(choice) - 1])
        else:
            warning_message(f"Unknown choice: {choice!r}")

    def _focused_action(self, choice: str) -> None:
        record = self.tabs.focused_record
        assert record is not None
        if choice == "b":
            self.tabs.unfocus()
        elif choice == "e":
            self.edit(record)
        elif choice == "d":
            self.delete(record)
        else:
            warning_message(f"Unknown choice: {choice!r}")

    def add(self) -> None:
        category = self.tabs.active_category
        fields = prompt_fields(CATEGORY_SCHEMAS[category])
        if self.dry_run:
            console.print(f"[yellow]Would add {category} record:[/yellow] {fields}")
            return
        try:
            record = self.store.add(category, fields)
        except ContentError as e:
            error_message(str(e))
            return
        success_message(f"Added {record.title} under {record.year}")

    def edit(self, record: Record) -> None:
        changes = prompt_fields(CATEGORY_SCHEMAS[record.category], record)
        if not changes:
            console.print("[dim]No changes.[/dim]")
            return
        if self.dry_run:
            console.print(f"[yellow]Would update {record.id}:[/yellow] {changes}")
            return
        try:
            updated = self.store.update(record.category, record.id, changes)
        except ContentError as e:
            error_message(str(e))
            return
        success_message(f"Updated {updated.title}")

    def delete(self, record: Record) -> None:
        if not confirm(f"Delete {record.title}?"):
            console.print("[yellow]Cancelled[/yellow]")
            return
        if self.dry_run:
            console.print(f"[yellow]Would remove {record.id}[/yellow]")
            return
        try:
            self.store.remove(record.category, record.id, record.year)
        except ContentError as e:
            error_message(str(e))
            return
        success_message(f"Removed {record.title}")

    def run(self) -> None:
        while True:
            # Reading the session notices expiry and notifies on_session
            if self.sessions is not None:
                self.sessions.current_session
            if self.signed_out:
                break
            self.show()
            if not self.step(prompt_user("Action")):
                break
        if self.signed_out:
            warning_message("Session ended. Sign in again with 'labsite auth login'.")


@click.command(name="admin")
@click.option("-c", "--category", type=click.Choice(list(CATEGORY_SCHEMAS)), default=None, help="Tab to open first")
@click.pass_obj
def admin(ctx, category: str | None) -> None:
    """Open the interactive admin panel."""
    from labsite.config.commands import get_setting
    from labsite.services import get_session_manager, open_store

    try:
        manager = get_session_manager()
        session = manager.require()
        store = open_store(session)
    except (AuthError, ValueError) as e:
        error_message(str(e))
        raise SystemExit(1) from e

    default = category or get_setting("admin.default_category")
    if default not in CATEGORY_SCHEMAS:
        warning_message(f"Unknown admin.default_category {default!r}; using events")
        default = "events"

    tabs = TabController(CATEGORY_SCHEMAS, default_category=default)
    panel = AdminPanel(store, tabs, manager, dry_run=ctx.dry_run if ctx else False)
    unbind = tabs.bind(store)
    unsubscribe = manager.subscribe(panel.on_session)

    console.print(f"Signed in as [green]{session.email}[/green]")
    try:
        panel.reload()
        panel.run()
    finally:
        unbind()
        unsubscribe()
