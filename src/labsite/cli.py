"""
Main CLI dispatcher for labsite.

Usage:
    labsite init                          # Initialize .labsite/ directory
    labsite content [list|show|add|update|remove|...]
    labsite admin                         # Interactive admin panel
    labsite auth [login|logout|whoami]
    labsite config [show|get|set|reset|path]
"""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from labsite import __version__

console = Console()


class Context:
    """Shared context for all commands."""

    def __init__(self, verbose: bool = False, dry_run: bool = False):
        self.verbose = verbose
        self.dry_run = dry_run
        self.console = console


pass_context = click.make_pass_decorator(Context, ensure=True)


def configure_logging(verbose: bool) -> None:
    """Route labsite loggers through rich; DEBUG when verbose."""
    logger = logging.getLogger("labsite")
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


@click.group()
@click.version_option(version=__version__, prog_name="labsite")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("-n", "--dry-run", is_flag=True, help="Preview without making changes")
@click.pass_context
def main(ctx: click.Context, verbose: bool, dry_run: bool) -> None:
    """Lab website content management tools.

    Browse and edit courses, events, members and resources of the lab site.
    """
    ctx.ensure_object(dict)
    ctx.obj = Context(verbose=verbose, dry_run=dry_run)
    configure_logging(verbose)

    if dry_run:
        console.print("[yellow]DRY RUN MODE - No changes will be made[/yellow]")


@main.command()
@click.option("--force", "-f", is_flag=True, help="Reinitialize an existing .labsite/ directory")
@click.pass_obj
def init(ctx, force: bool) -> None:
    """Initialize .labsite/ directory structure.

    Creates the collection, cache and backup directories used by the
    local JSON backend.
    """
    from pathlib import Path

    from labsite.content.schemas import CATEGORY_SCHEMAS
    from labsite.core.config import DATA_DIR_NAME, get_paths

    dry_run = ctx.dry_run if ctx else False

    # init always targets cwd; .labsite/ may not exist yet
    site_root = Path.cwd()
    paths = get_paths(site_root)

    if paths.data_dir.exists() and not force:
        console.print(f"[yellow]{DATA_DIR_NAME}/ directory already exists at {paths.data_dir}[/yellow]")
        console.print("[dim]Use --force to reinitialize.[/dim]")
        return

    console.print(f"[cyan]Initializing {DATA_DIR_NAME}/ directory at {site_root}[/cyan]")

    dirs_to_create = [paths.data_dir, paths.collections, paths.cache]
    dirs_to_create += [paths.collection_backups(name) for name in CATEGORY_SCHEMAS]

    for dir_path in dirs_to_create:
        if not dry_run:
            dir_path.mkdir(parents=True, exist_ok=True)
        console.print(f"  [green]Created[/green] {dir_path.relative_to(site_root)}")

    # Session tokens live in the cache; keep it out of git
    gitignore_path = site_root / ".gitignore"
    gitignore_entry = f"{DATA_DIR_NAME}/cache/"

    if gitignore_path.exists():
        content = gitignore_path.read_text()
        if gitignore_entry not in content:
            if not dry_run:
                with open(gitignore_path, "a") as f:
                    f.write(f"\n# labsite cache\n{gitignore_entry}\n")
            console.print(f"  [green]Updated[/green] .gitignore with {gitignore_entry}")

    console.print()
    if dry_run:
        console.print("[yellow]DRY RUN - no changes made[/yellow]")
    else:
        console.print(f"[green]Done![/green] {DATA_DIR_NAME}/ directory initialized.")


# Import and register command groups (imports after main definition intentional)
from labsite.admin.commands import admin  # noqa: E402
from labsite.auth.commands import auth  # noqa: E402
from labsite.config.commands import config  # noqa: E402
from labsite.content.commands import content  # noqa: E402

main.add_command(content)
main.add_command(admin)
main.add_command(auth)
main.add_command(config)


if __name__ == "__main__":
    main()
