import asyncio
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from canvas_fs.core.errors import CanvasFsError
from canvas_fs.core.ports.database import NodeStore
from canvas_fs.core.projects import ProjectService

project_app = typer.Typer(help="Create, list and delete projects.")
console = Console()


def _get_store() -> NodeStore:
    from canvas_fs.config import Settings
    from canvas_fs.db import create_store

    return create_store(Settings.from_env())


@project_app.command("list")
def list_projects() -> None:
    """List active projects, newest first."""
    store = _get_store()

    async def _run() -> None:
        try:
            projects = await ProjectService(store).list_projects()
        finally:
            await store.dispose()
        table = Table()
        for column in ("id", "name", "owner", "created"):
            table.add_column(column)
        for p in projects:
            table.add_row(p.id, p.name, p.owner, p.created_at.strftime("%Y-%m-%d %H:%M"))
        console.print(table)
        console.print(f"({len(projects)} projects)")

    asyncio.run(_run())


@project_app.command("create")
def create(
    name: Annotated[str, typer.Argument(help="Project name.")],
    description: Annotated[str, typer.Option(help="Free-form description.")] = "",
    owner: Annotated[str, typer.Option(help="Owner label.")] = "anonymous",
) -> None:
    """Create a project with its root folder."""
    store = _get_store()

    async def _run() -> None:
        try:
            project = await ProjectService(store).create_project(name, description=description, owner=owner)
        finally:
            await store.dispose()
        console.print(f"[green]Created[/green] project {project.name} ({project.id})")

    try:
        asyncio.run(_run())
    except CanvasFsError as exc:
        console.print(f"[red]{type(exc).__name__}:[/red] {exc}")
        raise typer.Exit(1) from exc


@project_app.command("delete")
def delete(
    project_id: Annotated[str, typer.Argument(help="Project id.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt.")] = False,
) -> None:
    """Delete a project and permanently remove all of its nodes."""
    if not yes:
        typer.confirm(f"Delete project {project_id} and all of its nodes?", abort=True)
    store = _get_store()

    async def _run() -> int:
        try:
            return await ProjectService(store).delete_project(project_id)
        finally:
            await store.dispose()

    try:
        removed = asyncio.run(_run())
    except CanvasFsError as exc:
        console.print(f"[red]{type(exc).__name__}:[/red] {exc}")
        raise typer.Exit(1) from exc
    console.print(f"[green]Deleted[/green] project {project_id} ({removed} nodes removed)")
