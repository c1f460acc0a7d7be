"""Rich rendering of partitions and records."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.table import Table

from labsite.content.record import UNCATEGORIZED, Record
from labsite.content.schemas import get_schema
from labsite.content.store import PartitionedContentStore

# Fields shown as table columns, first match per category wins
SUMMARY_FIELDS = ("instructor", "authors", "author", "date", "location", "role", "courseCode", "duration")


def year_heading(year: str) -> str:
    return UNCATEGORIZED if year == UNCATEGORIZED else f"Year: {year}"


def _format_value(value: Any) -> str:
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def _summary(record: Record) -> str:
    for name in SUMMARY_FIELDS:
        value = record.get(name)
        if value:
            return _format_value(value)
    return ""


def render_category(
    console: Console,
    store: PartitionedContentStore,
    category: str,
    year: str | None = None,
    numbered: bool = False,
) -> list[Record]:
    """Print a category's records grouped by year, newest year first.

    Returns:
        The records in the order printed (numbering follows this order)
    """
    schema = get_schema(category, store.schemas)
    label = schema.label if schema else category
    years = [year] if year is not None else store.years(category)

    shown: list[Record] = []
    if not any(store.records(category, y) for y in years):
        console.print(f"[dim]No {label.lower()} found.[/dim]")
        return shown

    for label_year in years:
        records = store.records(category, label_year)
        if not records:
            continue
        table = Table(
            title=f"{label}: {year_heading(label_year)}",
            show_header=True,
            header_style="bold cyan",
            title_justify="left",
        )
        if numbered:
            table.add_column("#", justify="right", style="dim")
        table.add_column("Title", style="green")
        table.add_column("Details")
        table.add_column("ID", style="dim")
        for record in records:
            shown.append(record)
            row = [record.title, _summary(record), record.id]
            if numbered:
                row.insert(0, str(len(shown)))
            table.add_row(*row)
        console.print(table)
    return shown


def render_record(console: Console, record: Record) -> None:
    """Print every field of a record."""
    table = Table(title=record.title, show_header=False, title_justify="left")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("id", record.id)
    table.add_row("category", record.category)
    table.add_row("year", record.year)
    for name, value in record.fields.items():
        table.add_row(name, _format_value(value))
    console.print(table)
