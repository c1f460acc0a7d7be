"""CLI commands for lab site content.

Every command loads the category it works on from the configured backend,
performs at most one store operation, and prints the result grouped by year.
Mutating commands require a signed-in admin session.
"""

from __future__ import annotations

import json as json_module
from typing import Any, NoReturn

import click
from rich.console import Console
from rich.table import Table

from labsite.auth.session import Session
from labsite.content.render import render_category, render_record
from labsite.content.schemas import CATEGORY_SCHEMAS
from labsite.content.store import PartitionedContentStore
from labsite.core.errors import AuthError, ContentError
from labsite.core.field_ops import coerce_untyped, coerce_value, parse_assignment

console = Console()

CATEGORY = click.Choice(list(CATEGORY_SCHEMAS), case_sensitive=True)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def parse_fields(category: str, assignments: tuple[str, ...]) -> dict[str, Any]:
    """Turn ``field=value`` options into typed record fields.

    Known fields are coerced by their schema type; ``year`` stays a string;
    other fields are coerced by value shape.

    Raises:
        click.BadParameter: On malformed assignments or uncoercible values
    """
    schema = CATEGORY_SCHEMAS[category]
    fields: dict[str, Any] = {}
    for text in assignments:
        try:
            name, raw = parse_assignment(text)
            if name == "year":
                fields[name] = raw
            elif name in schema.fields:
                fields[name] = coerce_value(raw, schema.fields[name])
            else:
                fields[name] = coerce_untyped(raw)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--set") from e
    return fields


def _load(store: PartitionedContentStore, category: str) -> None:
    """Load one category or exit with the load error."""
    store.load([category])
    error = store.load_errors.get(category)
    if error is not None:
        console.print(f"[red]ERROR:[/red] Could not load {category}: {error}")
        raise SystemExit(1)


def _fail(error: Exception) -> NoReturn:
    console.print(f"[red]ERROR:[/red] {error}")
    raise SystemExit(1)


def _store(session: Session | None = None) -> PartitionedContentStore:
    """Open the configured store or exit on a configuration error."""
    from labsite.services import open_store

    try:
        return open_store(session)
    except ValueError as e:
        _fail(e)


def _admin_store(category: str) -> PartitionedContentStore:
    """Store for a mutating command, opened with the admin session."""
    from labsite.services import get_session_manager

    try:
        session = get_session_manager().require()
    except (AuthError, ValueError) as e:
        _fail(e)
    store = _store(session)
    _load(store, category)
    return store


# ---------------------------------------------------------------------------
# Click command group
# ---------------------------------------------------------------------------


@click.group(name="content")
def content() -> None:
    """Browse and edit lab site content (courses, events, resources, ...)."""
    pass


@content.command(name="categories")
def categories_cmd() -> None:
    """List content categories and their required fields."""
    table = Table(title="Categories", show_header=True, header_style="bold cyan")
    table.add_column("Category")
    table.add_column("Label", style="green")
    table.add_column("Required fields", style="dim")
    for name, schema in CATEGORY_SCHEMAS.items():
        table.add_row(name, schema.label, ", ".join(schema.required))
    console.print(table)


@content.command(name="list")
@click.argument("category", type=CATEGORY)
@click.option("-y", "--year", default=None, help="Only show one year")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_cmd(category: str, year: str | None, as_json: bool) -> None:
    """List records of CATEGORY grouped by year, newest first."""
    store = _store()
    _load(store, category)

    if as_json:
        years = [year] if year else store.years(category)
        data = {y: [r.to_dict() for r in store.records(category, y)] for y in years}
        click.echo(json_module.dumps(data, indent=2, ensure_ascii=False))
        return

    render_category(console, store, category, year=year)


@content.command(name="years")
@click.argument("category", type=CATEGORY)
def years_cmd(category: str) -> None:
    """List the years present in CATEGORY."""
    store = _store()
    _load(store, category)
    for label in store.years(category):
        console.print(f"{label} [dim]({len(store.records(category, label))})[/dim]")


@content.command(name="show")
@click.argument("category", type=CATEGORY)
@click.argument("record_id")
def show_cmd(category: str, record_id: str) -> None:
    """Show every field of one record."""
    store = _store()
    _load(store, category)
    record = store.get(category, record_id)
    if record is None:
        console.print(f"[red]No {category} record with id {record_id}[/red]")
        raise SystemExit(1)
    render_record(console, record)


@content.command(name="stats")
def stats_cmd() -> None:
    """Show record and year counts for every category."""
    store = _store()
    store.load(CATEGORY_SCHEMAS)

    table = Table(title="Content", show_header=True, header_style="bold cyan")
    table.add_column("Category")
    table.add_column("Records", justify="right")
    table.add_column("Years", justify="right")
    table.add_column("Latest", style="dim")
    stats = store.stats()
    for category in CATEGORY_SCHEMAS:
        if category in store.load_errors:
            table.add_row(category, "[red]error[/red]", "", str(store.load_errors[category]))
            continue
        counts = stats.get(category, {"records": 0, "years": 0})
        years = store.years(category)
        table.add_row(category, str(counts["records"]), str(counts["years"]), years[0] if years else "")
    console.print(table)


@content.command(name="add")
@click.argument("category", type=CATEGORY)
@click.option("-s", "--set", "assignments", multiple=True, metavar="FIELD=VALUE", help="Field value (repeatable)")
@click.pass_obj
def add_cmd(ctx, category: str, assignments: tuple[str, ...]) -> None:
    """Add a record to CATEGORY.

    Without a year the record is filed under the current year; an empty
    year (``-s year=``) files it as Uncategorized.

    Examples:
        labsite content add events -s title="Crypto Day" -s date=2024-03-01 ...
    """
    fields = parse_fields(category, assignments)
    if ctx is not None and ctx.dry_run:
        console.print(f"[yellow]Would add {category} record:[/yellow] {fields}")
        return

    store = _admin_store(category)
    try:
        record = store.add(category, fields)
    except ContentError as e:
        _fail(e)
    console.print(f"[green]Added[/green] {record.title} [dim]({record.id})[/dim] under {record.year}")


@content.command(name="update")
@click.argument("category", type=CATEGORY)
@click.argument("record_id")
@click.option("-s", "--set", "assignments", multiple=True, metavar="FIELD=VALUE", help="Field value (repeatable)")
@click.pass_obj
def update_cmd(ctx, category: str, record_id: str, assignments: tuple[str, ...]) -> None:
    """Update fields of a record; changing ``year`` moves it."""
    fields = parse_fields(category, assignments)
    if not fields:
        console.print("[yellow]Nothing to update. Pass fields with --set.[/yellow]")
        return
    if ctx is not None and ctx.dry_run:
        console.print(f"[yellow]Would update {category}/{record_id}:[/yellow] {fields}")
        return

    store = _admin_store(category)
    old = store.find(category, record_id)
    try:
        record = store.update(category, record_id, fields)
    except ContentError as e:
        _fail(e)
    console.print(f"[green]Updated[/green] {record.title} [dim]({record.id})[/dim]")
    if old is not None and old[0] != record.year:
        console.print(f"  moved from {old[0]} to {record.year}")


@content.command(name="remove")
@click.argument("category", type=CATEGORY)
@click.argument("record_id")
@click.option("--year", default=None, help="Year the record is listed under")
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation")
@click.pass_obj
def remove_cmd(ctx, category: str, record_id: str, year: str | None, yes: bool) -> None:
    """Delete a record."""
    if ctx is not None and ctx.dry_run:
        console.print(f"[yellow]Would remove {category}/{record_id}[/yellow]")
        return

    store = _admin_store(category)
    record = store.get(category, record_id)
    label = record.title if record else record_id
    if not yes and not click.confirm(f"Delete {label}?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    try:
        store.remove(category, record_id, year)
    except ContentError as e:
        _fail(e)
    console.print(f"[green]Removed[/green] {label}")
