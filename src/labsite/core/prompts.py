"""
Interactive CLI prompts.

Input helpers for the interactive admin panel.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

from rich.console import Console
from rich.prompt import Confirm, Prompt

console = Console()

T = TypeVar("T")


def prompt_user(message: str, default: str | None = None) -> str:
    """Prompt user for text input.

    Args:
        message: Prompt message
        default: Value returned when the user presses Enter

    Returns:
        User input or default
    """
    result = Prompt.ask(message, default=default, show_default=default is not None)
    return result if result is not None else ""


def confirm(message: str, default: bool = False, auto_yes: bool = False) -> bool:
    """Ask for yes/no confirmation.

    Args:
        message: Question to ask
        default: Default value if user presses Enter
        auto_yes: If True, return True without prompting
    """
    if auto_yes:
        console.print(f"{message} [auto-yes]")
        return True

    return bool(Confirm.ask(message, default=default))


def select_from_list(
    items: Sequence[T],
    message: str = "Select an option",
    display_func: Callable[[T], str] = str,
    allow_cancel: bool = True,
) -> T | None:
    """Present a numbered list and let user select an item.

    Returns:
        Selected item or None if cancelled (or the list is empty)
    """
    if not items:
        console.print("[yellow]No items to select from[/yellow]")
        return None

    console.print(f"\n{message}:")
    for i, item in enumerate(items, 1):
        console.print(f"  {i}. {display_func(item)}")

    if allow_cancel:
        console.print("  q. Cancel")

    while True:
        choice = Prompt.ask("Enter number").strip().lower()

        if allow_cancel and choice == "q":
            return None

        try:
            idx = int(choice) - 1
        except ValueError:
            console.print("[red]Invalid input. Enter a number or 'q' to cancel.[/red]")
            continue
        if 0 <= idx < len(items):
            return items[idx]
        console.print(f"[red]Please enter a number between 1 and {len(items)}[/red]")


def error_message(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]ERROR:[/red] {message}")


def warning_message(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]WARNING:[/yellow] {message}")


def success_message(message: str) -> None:
    """Print a completed-step message."""
    console.print(f"  [green]✓[/green] {message}")
