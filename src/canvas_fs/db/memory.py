from __future__ import annotations

import contextlib
from collections.abc import Iterator, Sequence
from typing import Any

from canvas_fs.core.errors import Conflict, DuplicateNode, StorageUnavailable, ValidationError
from canvas_fs.core.hierarchy import iter_descendant_ids
from canvas_fs.db.helpers import MUTABLE_NODE_FIELDS
from canvas_fs.models import FileSystemNode, Project, utcnow

NodeKey = tuple[str, str]


class InMemoryNodeStore:
    """Dict-backed ``NodeStore`` used for tests and the ``memory`` storage mode.

    Mirrors the guarantees of the Postgres adapter: ``(project_id, id)`` is a
    unique key, sibling names are unique on insert, parents must exist within
    the project, deleting a node removes its subtree, and multi-step writes
    are all-or-nothing.
    Set ``available = False`` to simulate an unreachable database.
    """

    def __init__(self) -> None:
        self.projects: dict[str, Project] = {}
        # insertion order doubles as creation order
        self.nodes: dict[NodeKey, FileSystemNode] = {}
        self.available = True

    def _check_available(self) -> None:
        if not self.available:
            raise StorageUnavailable("In-memory node store is offline")

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[None]:
        self._check_available()
        nodes_snapshot = dict(self.nodes)
        projects_snapshot = dict(self.projects)
        try:
            yield
            self._check_parents()
        except BaseException:
            self.nodes = nodes_snapshot
            self.projects = projects_snapshot
            raise

    def _check_parents(self) -> None:
        for (project_id, node_id), node in self.nodes.items():
            if node.parent_id is not None and (project_id, node.parent_id) not in self.nodes:
                raise ValidationError(f"Node {node_id} references missing parent {node.parent_id}")

    def _write_node(self, node: FileSystemNode) -> None:
        self._check_available()
        self.nodes[(node.project_id, node.id)] = node.model_copy(update={"children": None}, deep=True)

    def _check_sibling_name(self, node: FileSystemNode) -> None:
        for (project_id, node_id), other in self.nodes.items():
            if (
                project_id == node.project_id
                and node_id != node.id
                and other.parent_id == node.parent_id
                and other.name == node.name
            ):
                raise Conflict(f"A node named '{node.name}' already exists in the parent folder")

    async def ensure_ready(self) -> None:
        self._check_available()

    async def list_nodes(self, project_id: str) -> list[FileSystemNode]:
        self._check_available()
        return [n.model_copy(deep=True) for (pid, _), n in self.nodes.items() if pid == project_id]

    async def list_all_nodes(self) -> list[FileSystemNode]:
        self._check_available()
        return [n.model_copy(deep=True) for n in self.nodes.values()]

    async def list_nodes_cursor(
        self,
        limit: int = 50,
        project_id: str | None = None,
        node_type: str | None = None,
        after: tuple[str, str] | None = None,
        before: tuple[str, str] | None = None,
    ) -> list[FileSystemNode]:
        self._check_available()
        rows = sorted(self.nodes.values(), key=lambda n: (n.project_id, n.id))
        if project_id is not None:
            rows = [n for n in rows if n.project_id == project_id]
        if node_type is not None:
            rows = [n for n in rows if n.type == node_type]

        if after is not None:
            rows = [n for n in rows if (n.project_id, n.id) > after]
        elif before is not None:
            rows = [n for n in rows if (n.project_id, n.id) < before]
            rows = rows[-limit:]

        return [n.model_copy(deep=True) for n in rows[:limit]]

    async def get_node(self, project_id: str, node_id: str) -> FileSystemNode | None:
        self._check_available()
        node = self.nodes.get((project_id, node_id))
        return node.model_copy(deep=True) if node is not None else None

    async def insert_node(self, node: FileSystemNode) -> None:
        with self._transaction():
            if (node.project_id, node.id) in self.nodes:
                raise DuplicateNode(f"Node {node.id} already exists in project {node.project_id}")
            self._check_sibling_name(node)
            self._write_node(node)

    async def upsert_node(self, node: FileSystemNode) -> None:
        with self._transaction():
            self._write_node(node)

    async def update_node(self, project_id: str, node_id: str, changes: dict[str, Any]) -> FileSystemNode | None:
        unknown = set(changes) - MUTABLE_NODE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update node fields: {sorted(unknown)}")
        with self._transaction():
            current = self.nodes.get((project_id, node_id))
            if current is None:
                return None
            updated = current.model_copy(update=changes)
            self._write_node(updated)
        return updated.model_copy(deep=True)

    async def delete_node(self, project_id: str, node_id: str) -> bool:
        return bool(await self.delete_subtree(project_id, node_id))

    async def delete_subtree(self, project_id: str, node_id: str) -> list[str]:
        """Remove ``node_id`` and every descendant; returns the removed ids, ``node_id`` first."""
        with self._transaction():
            if (project_id, node_id) not in self.nodes:
                return []
            project_nodes = [n for (pid, _), n in self.nodes.items() if pid == project_id]
            removed = [node_id, *iter_descendant_ids(project_nodes, node_id)]
            for removed_id in removed:
                self._check_available()
                del self.nodes[(project_id, removed_id)]
        return removed

    async def replace_all(self, project_id: str, nodes: Sequence[FileSystemNode]) -> None:
        with self._transaction():
            for key in [k for k in self.nodes if k[0] == project_id]:
                del self.nodes[key]
            for node in nodes:
                if node.project_id != project_id:
                    raise ValidationError(f"Node {node.id} belongs to project {node.project_id}, not {project_id}")
                if (project_id, node.id) in self.nodes:
                    raise DuplicateNode(f"Node {node.id} appears twice in project {project_id}")
                self._write_node(node)

    async def search_nodes(
        self,
        query: str,
        project_id: str | None = None,
        node_type: str | None = None,
        limit: int = 50,
    ) -> list[FileSystemNode]:
        self._check_available()
        needle = query.lower()
        matches = [
            n
            for n in self.nodes.values()
            if (project_id is None or n.project_id == project_id)
            and (node_type is None or n.type == node_type)
            and (needle in n.name.lower() or (n.content is not None and needle in n.content.lower()))
        ]
        matches.sort(key=lambda n: n.last_modified, reverse=True)
        return [n.model_copy(deep=True) for n in matches[:limit]]

    async def insert_project(self, project: Project, seed_nodes: Sequence[FileSystemNode] = ()) -> None:
        with self._transaction():
            if project.id in self.projects:
                raise Conflict(f"Project {project.id} already exists")
            self.projects[project.id] = project.model_copy(deep=True)
            for node in seed_nodes:
                self._write_node(node)

    async def get_project(self, project_id: str) -> Project | None:
        self._check_available()
        project = self.projects.get(project_id)
        return project.model_copy(deep=True) if project is not None else None

    async def list_projects(self, include_inactive: bool = False) -> list[Project]:
        self._check_available()
        projects = [p for p in self.projects.values() if include_inactive or p.is_active]
        # later inserts win ties on created_at
        projects.reverse()
        projects.sort(key=lambda p: p.created_at, reverse=True)
        return [p.model_copy(deep=True) for p in projects]

    async def update_project(self, project: Project) -> None:
        with self._transaction():
            self.projects[project.id] = project.model_copy(deep=True)

    async def deactivate_project(self, project_id: str) -> int:
        with self._transaction():
            project = self.projects[project_id]
            self.projects[project_id] = project.model_copy(update={"is_active": False, "updated_at": utcnow()})
            keys = [k for k in self.nodes if k[0] == project_id]
            for key in keys:
                del self.nodes[key]
        return len(keys)

    async def ping(self) -> bool:
        return self.available

    async def dispose(self) -> None:
        pass
