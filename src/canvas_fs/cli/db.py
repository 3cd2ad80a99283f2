"""Schema migration commands."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console
from sqlalchemy.exc import DBAPIError

from canvas_fs.db.engine import get_database_url, get_engine
from canvas_fs.db.migrations import current_revision, head_revision, run_migrations

db_app = typer.Typer(help="Manage the PostgreSQL schema.")
console = Console()

UrlOption = Annotated[str | None, typer.Option("--url", help="Database URL (defaults to DATABASE_URL).")]


@db_app.command("migrate")
def migrate(
    url: UrlOption = None,
    revision: Annotated[str, typer.Option(help="Target Alembic revision.")] = "head",
) -> None:
    """Upgrade the database schema."""
    db_url = url or get_database_url()
    console.print(f"Migrating to {revision}...")
    run_migrations(db_url, revision)
    console.print("[green]Schema is up to date.[/green]")


@db_app.command("status")
def status(url: UrlOption = None) -> None:
    """Compare the database's schema revision with the latest migration."""
    db_url = url or get_database_url()
    head = head_revision(db_url)
    engine = get_engine(db_url)

    async def _run() -> str | None:
        try:
            return await current_revision(engine)
        finally:
            await engine.dispose()

    try:
        current = asyncio.run(_run())
    except (DBAPIError, OSError) as exc:
        console.print(f"[red]Database unreachable:[/red] {exc}")
        raise typer.Exit(1) from exc

    if current is None:
        console.print(f"Schema: [yellow]not migrated[/yellow] (latest {head})")
    elif current == head:
        console.print(f"Schema: [green]{current}[/green] (up to date)")
    else:
        console.print(f"Schema: [yellow]{current}[/yellow] (latest {head})")
