import asyncio
from collections.abc import Sequence
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from canvas_fs.core.errors import CanvasFsError
from canvas_fs.core.ports.database import NodeStore
from canvas_fs.core.query import DEFAULT_SEARCH_LIMIT, node_statistics, search_nodes
from canvas_fs.core.tree import TreeService
from canvas_fs.models import FileSystemNode

tree_app = typer.Typer(help="Inspect project trees.")
console = Console()


def _get_store() -> NodeStore:
    from canvas_fs.config import Settings
    from canvas_fs.db import create_store

    return create_store(Settings.from_env())


def _render_table(headers: Sequence[str], rows: Sequence[tuple[Any, ...]]) -> None:
    table = Table(show_lines=False)
    for h in headers:
        table.add_column(h)
    for row in rows:
        table.add_row(*(str(v) for v in row))
    console.print(table)


def _label(node: FileSystemNode) -> str:
    if node.type == "folder":
        marker = "-" if node.expanded else "+"
        return f"[bold blue]{node.name}/[/bold blue] [dim]{marker} {node.id}[/dim]"
    language = node.metadata.language if node.metadata else "plaintext"
    return f"{node.name} [dim]{node.size or 0} B, {language}, {node.id}[/dim]"


def render_tree(project_id: str, roots: Sequence[FileSystemNode]) -> Tree:
    """Build a rich ``Tree`` from an assembled hierarchy without recursing."""
    tree = Tree(f"[bold]{project_id}[/bold]")
    stack: list[tuple[Tree, FileSystemNode]] = [(tree, n) for n in reversed(roots)]
    while stack:
        branch, node = stack.pop()
        child_branch = branch.add(_label(node))
        stack.extend((child_branch, c) for c in reversed(node.children or []))
    return tree


def _fail(exc: CanvasFsError) -> typer.Exit:
    console.print(f"[red]{type(exc).__name__}:[/red] {exc}")
    return typer.Exit(1)


@tree_app.command("show")
def show(project_id: Annotated[str, typer.Argument(help="Project id.")]) -> None:
    """Print a project's file tree."""
    store = _get_store()

    async def _run() -> list[FileSystemNode]:
        try:
            return await TreeService(store).list_tree(project_id)
        finally:
            await store.dispose()

    try:
        roots = asyncio.run(_run())
    except CanvasFsError as exc:
        raise _fail(exc) from exc
    console.print(render_tree(project_id, roots))


@tree_app.command("search")
def search(
    query: Annotated[str, typer.Argument(help="Text to look for in names and content.")],
    project: Annotated[str | None, typer.Option(help="Restrict to one project.")] = None,
    node_type: Annotated[str | None, typer.Option("--type", help="'file' or 'folder'.")] = None,
    limit: Annotated[int, typer.Option(help="Max results.")] = DEFAULT_SEARCH_LIMIT,
) -> None:
    """Search node names and file content."""
    store = _get_store()

    async def _run() -> list[FileSystemNode]:
        try:
            return await search_nodes(store, query, project_id=project, node_type=node_type, limit=limit)
        finally:
            await store.dispose()

    try:
        results = asyncio.run(_run())
    except CanvasFsError as exc:
        raise _fail(exc) from exc
    _render_table(
        ["project", "id", "type", "name", "modified"],
        [(n.project_id, n.id, n.type, n.name, n.last_modified.strftime("%Y-%m-%d %H:%M")) for n in results],
    )
    console.print(f"({len(results)} matches)")


@tree_app.command("stats")
def stats(project: Annotated[str | None, typer.Option(help="Restrict to one project.")] = None) -> None:
    """Show node counts, sizes and the language breakdown."""
    store = _get_store()

    async def _run() -> dict[str, Any]:
        try:
            return await node_statistics(store, project)
        finally:
            await store.dispose()

    try:
        result = asyncio.run(_run())
    except CanvasFsError as exc:
        raise _fail(exc) from exc
    _render_table(["metric", "value"], list(result["overview"].items()))
    _render_table(
        ["language", "files", "bytes"],
        [(e["language"], e["count"], e["total_size"]) for e in result["languages"]],
    )
