"""
Admin sign-in CLI commands.

The session is cached in .labsite/cache/session.json so later commands
(content add/update/remove, admin) run as the signed-in admin.
"""

from __future__ import annotations

import click
from rich.console import Console

from labsite.core.errors import AuthError

console = Console()


def _manager():
    from labsite.services import get_session_manager

    try:
        return get_session_manager()
    except ValueError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        raise SystemExit(1) from e


@click.group()
def auth() -> None:
    """Sign admins in and out."""
    pass


@auth.command(name="login")
@click.option("--email", prompt=True, help="Admin email")
@click.option("--password", prompt=True, hide_input=True, help="Admin password")
def login_cmd(email: str, password: str) -> None:
    """Sign in as an admin."""
    manager = _manager()
    try:
        session = manager.sign_in(email, password)
    except AuthError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        raise SystemExit(1) from e
    console.print(f"[green]Signed in[/green] as {session.email} [dim]({session.provider})[/dim]")


@auth.command(name="logout")
def logout_cmd() -> None:
    """Sign out and forget the cached session."""
    manager = _manager()
    if manager.current_session is None:
        console.print("[dim]Not signed in.[/dim]")
        return
    manager.sign_out()
    console.print("[green]Signed out[/green]")


@auth.command(name="whoami")
def whoami_cmd() -> None:
    """Show the signed-in admin."""
    session = _manager().current_session
    if session is None:
        console.print("[yellow]Not signed in.[/yellow]")
        raise SystemExit(1)
    console.print(f"{session.email} [dim]({session.provider}, uid {session.uid})[/dim]")
    if session.expires_at:
        console.print(f"[dim]Session expires {session.expires_at}[/dim]")


@auth.command(name="add-user")
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.pass_obj
def add_user_cmd(ctx, email: str, password: str) -> None:
    """Add or replace a local admin account.

    Only used with ``auth.provider: local``; the password is stored hashed
    under ``auth.users`` in .labsite/config.yaml.
    """
    from labsite.auth.session import hash_password
    from labsite.config.commands import load_config, save_config

    if ctx is not None and ctx.dry_run:
        console.print(f"[yellow]Would add local admin {email}[/yellow]")
        return

    # Emails contain dots, so the dotted-key setters cannot address them
    cfg = load_config()
    auth_cfg = cfg.setdefault("auth", {})
    users = auth_cfg.get("users")
    if not isinstance(users, dict):
        users = auth_cfg["users"] = {}
    replaced = email.lower() in {u.lower() for u in users}
    users[email] = hash_password(password)
    save_config(cfg)

    verb = "Updated" if replaced else "Added"
    console.print(f"[green]{verb}[/green] local admin {email}")
