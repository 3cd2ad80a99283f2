from collections.abc import Sequence
from typing import Any, Protocol

from canvas_fs.models import FileSystemNode, Project


class NodeStore(Protocol):
    async def ensure_ready(self) -> None: ...

    async def list_nodes(self, project_id: str) -> list[FileSystemNode]: ...

    async def list_all_nodes(self) -> list[FileSystemNode]: ...

    async def list_nodes_cursor(
        self,
        limit: int = 50,
        project_id: str | None = None,
        node_type: str | None = None,
        after: tuple[str, str] | None = None,
        before: tuple[str, str] | None = None,
    ) -> list[FileSystemNode]: ...

    async def get_node(self, project_id: str, node_id: str) -> FileSystemNode | None: ...

    async def insert_node(self, node: FileSystemNode) -> None: ...

    async def upsert_node(self, node: FileSystemNode) -> None: ...

    async def update_node(self, project_id: str, node_id: str, changes: dict[str, Any]) -> FileSystemNode | None: ...

    async def delete_node(self, project_id: str, node_id: str) -> bool: ...

    async def delete_subtree(self, project_id: str, node_id: str) -> list[str]: ...

    async def replace_all(self, project_id: str, nodes: Sequence[FileSystemNode]) -> None: ...

    async def search_nodes(
        self,
        query: str,
        project_id: str | None = None,
        node_type: str | None = None,
        limit: int = 50,
    ) -> list[FileSystemNode]: ...

    async def insert_project(self, project: Project, seed_nodes: Sequence[FileSystemNode] = ()) -> None: ...

    async def get_project(self, project_id: str) -> Project | None: ...

    async def list_projects(self, include_inactive: bool = False) -> list[Project]: ...

    async def update_project(self, project: Project) -> None: ...

    async def deactivate_project(self, project_id: str) -> int: ...

    async def ping(self) -> bool: ...

    async def dispose(self) -> None: ...
