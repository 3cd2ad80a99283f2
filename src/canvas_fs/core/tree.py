"""Tree operations: validation and orchestration on top of a ``NodeStore``."""

from __future__ import annotations

import logging
import math
import random
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from canvas_fs.core import events
from canvas_fs.core.errors import (
    Conflict,
    DuplicateNode,
    Forbidden,
    InvalidKind,
    NotFound,
    ValidationError,
)
from canvas_fs.core.events import ChangeBroadcaster, ChangeEvent
from canvas_fs.core.hierarchy import assemble_hierarchy, flatten
from canvas_fs.core.languages import byte_size, file_metadata
from canvas_fs.core.ports.database import NodeStore
from canvas_fs.core.ports.notifier import ChangeObserver
from canvas_fs.models import ROOT_NODE_ID, FileSystemNode, Project, TreeNodeInput, utcnow

logger = logging.getLogger(__name__)

NODE_TYPES = ("file", "folder")

_ID_ATTEMPTS = 3


@dataclass(frozen=True)
class DeleteResult:
    deleted_id: str
    descendant_ids: list[str]
    deleted_count: int


@dataclass(frozen=True)
class TreeCounts:
    total: int
    files: int
    folders: int


def new_node_id() -> str:
    return f"node_{uuid.uuid4().hex}"


def default_position(
    parent: FileSystemNode | None,
    node_type: str,
    rng: random.Random,
) -> tuple[float, float]:
    """Place a new node near its parent: files below-right, folders straight below."""
    base_x, base_y = (parent.x, parent.y) if parent is not None else (0.0, 0.0)
    jitter_x = rng.uniform(-20.0, 20.0)
    jitter_y = rng.uniform(0.0, 30.0)
    if node_type == "file":
        return base_x + 150.0 + jitter_x, base_y + 100.0 + jitter_y
    return base_x + jitter_x, base_y + 150.0 + jitter_y


def _coordinate(value: Any, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int | float)) or not math.isfinite(value):
        raise ValidationError(f"Position coordinate '{label}' must be a finite number, got {value!r}")
    return float(value)


def _node_type(value: Any) -> str:
    if value not in NODE_TYPES:
        raise ValidationError(f"Type must be either 'file' or 'folder', got {value!r}")
    return str(value)


def _node_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Node name must be a non-empty string")
    return value.strip()


class TreeService:
    def __init__(
        self,
        store: NodeStore,
        observer: ChangeObserver | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._observer: ChangeObserver = observer if observer is not None else ChangeBroadcaster()
        self._rng = rng or random.Random()

    async def _publish(self, event: ChangeEvent) -> None:
        try:
            await self._observer.notify(event)
        except Exception:
            logger.exception("Dropping %s event for project %s", event.type, event.project_id)

    async def _require_project(self, project_id: str) -> Project:
        project = await self._store.get_project(project_id)
        if project is None or not project.is_active:
            raise NotFound(f"Project {project_id} not found")
        return project

    async def _require_node(self, project_id: str, node_id: str) -> FileSystemNode:
        node = await self._store.get_node(project_id, node_id)
        if node is None:
            raise NotFound(f"Node {node_id} not found in project {project_id}")
        return node

    async def _update(self, project_id: str, node_id: str, changes: dict[str, Any]) -> FileSystemNode:
        updated = await self._store.update_node(project_id, node_id, changes)
        if updated is None:
            raise NotFound(f"Node {node_id} not found in project {project_id}")
        return updated

    async def list_tree(self, project_id: str, hierarchical: bool = True) -> list[FileSystemNode]:
        """Return the project's nodes, nested under their roots or as the flat canonical list."""
        await self._require_project(project_id)
        nodes = await self._store.list_nodes(project_id)
        return assemble_hierarchy(nodes) if hierarchical else nodes

    async def create_node(
        self,
        project_id: str,
        parent_id: str | None,
        node_type: str,
        name: str,
        position: tuple[float, float] | None = None,
        content: str | None = None,
    ) -> FileSystemNode:
        node_type = _node_type(node_type)
        name = _node_name(name)
        if node_type == "folder" and content is not None:
            raise ValidationError("Folders cannot carry content")
        if content is not None and not isinstance(content, str):
            raise ValidationError("File content must be a string")
        if position is not None:
            position = (_coordinate(position[0], "x"), _coordinate(position[1], "y"))

        await self._require_project(project_id)
        parent: FileSystemNode | None = None
        if parent_id is not None:
            parent = await self._require_node(project_id, parent_id)
            if parent.type != "folder":
                raise InvalidKind(f"Parent {parent_id} is a file; only folders can hold children")

        siblings = await self._store.list_nodes(project_id)
        if any(n.parent_id == parent_id and n.name == name for n in siblings):
            raise Conflict(f"A node named '{name}' already exists in the parent folder")

        x, y = position if position is not None else default_position(parent, node_type, self._rng)
        now = utcnow()
        fields: dict[str, Any] = {
            "project_id": project_id,
            "type": node_type,
            "name": name,
            "parent_id": parent_id,
            "x": x,
            "y": y,
            "last_modified": now,
            "created_at": now,
        }
        if node_type == "file":
            text = content or ""
            fields.update(content=text, size=byte_size(text), metadata=file_metadata(name, text))
        else:
            fields.update(expanded=False)

        for attempt in range(1, _ID_ATTEMPTS + 1):
            node = FileSystemNode(id=new_node_id(), **fields)
            try:
                await self._store.insert_node(node)
                break
            except DuplicateNode:
                logger.warning("Node id collision on attempt %d in project %s", attempt, project_id)
        else:
            raise Conflict(f"Could not allocate a unique node id after {_ID_ATTEMPTS} attempts")

        logger.info("created %s %s (%s) under %s in %s", node_type, node.id, name, parent_id, project_id)
        await self._publish(
            ChangeEvent(
                events.NODE_CREATED,
                project_id,
                {"node": node.model_dump(mode="json"), "parentId": parent_id},
            )
        )
        return node

    async def delete_node(self, project_id: str, node_id: str) -> DeleteResult:
        """Delete ``node_id`` together with all of its descendants in one atomic step."""
        if node_id == ROOT_NODE_ID:
            raise Forbidden("Cannot delete root node")
        await self._require_project(project_id)

        t0 = time.perf_counter()
        removed = await self._store.delete_subtree(project_id, node_id)
        if not removed:
            raise NotFound(f"Node {node_id} not found in project {project_id}")
        descendant_ids = removed[1:]
        result = DeleteResult(deleted_id=node_id, descendant_ids=descendant_ids, deleted_count=len(removed))

        logger.info(
            "deleted %s from %s: %d node(s) in %.3fs",
            node_id,
            project_id,
            result.deleted_count,
            time.perf_counter() - t0,
        )
        await self._publish(
            ChangeEvent(
                events.NODE_DELETED,
                project_id,
                {
                    "deletedNodeId": node_id,
                    "deletedCount": result.deleted_count,
                    "descendantIds": descendant_ids,
                },
            )
        )
        return result

    async def update_node_position(self, project_id: str, node_id: str, x: Any, y: Any) -> FileSystemNode:
        new_x = _coordinate(x, "x")
        new_y = _coordinate(y, "y")
        node = await self._update(project_id, node_id, {"x": new_x, "y": new_y, "last_modified": utcnow()})
        await self._publish(ChangeEvent(events.NODE_MOVED, project_id, {"id": node_id, "x": new_x, "y": new_y}))
        return node

    async def _require_folder(self, project_id: str, node_id: str) -> FileSystemNode:
        node = await self._require_node(project_id, node_id)
        if node.type != "folder":
            raise InvalidKind(f"Node {node_id} is a file, not a folder")
        return node

    async def set_folder_expanded(self, project_id: str, node_id: str, expanded: Any) -> FileSystemNode:
        if not isinstance(expanded, bool):
            raise ValidationError(f"Expanded flag must be a boolean, got {expanded!r}")
        await self._require_folder(project_id, node_id)
        node = await self._update(project_id, node_id, {"expanded": expanded})
        await self._publish(
            ChangeEvent(events.FOLDER_EXPANDED, project_id, {"id": node_id, "expanded": expanded})
        )
        return node

    async def toggle_folder_expanded(self, project_id: str, node_id: str) -> FileSystemNode:
        folder = await self._require_folder(project_id, node_id)
        return await self.set_folder_expanded(project_id, node_id, not folder.expanded)

    async def get_file(self, project_id: str, node_id: str) -> FileSystemNode:
        """Return a file node with size and metadata re-derived from its content."""
        node = await self._require_node(project_id, node_id)
        if node.type != "file":
            raise InvalidKind(f"Node {node_id} is a folder, not a file")
        text = node.content or ""
        return node.model_copy(
            update={"size": byte_size(text), "metadata": file_metadata(node.name, text, node.metadata)}
        )

    async def save_file_content(self, project_id: str, node_id: str, content: Any) -> FileSystemNode:
        if not isinstance(content, str):
            raise ValidationError("Content is required")
        node = await self._require_node(project_id, node_id)
        if node.type != "file":
            raise InvalidKind(f"Node {node_id} is a folder, not a file")

        updated = await self._update(
            project_id,
            node_id,
            {
                "content": content,
                "size": byte_size(content),
                "metadata": file_metadata(node.name, content, node.metadata),
                "last_modified": utcnow(),
            },
        )
        assert updated.metadata is not None
        await self._publish(
            ChangeEvent(
                events.FILE_UPDATED,
                project_id,
                {
                    "fileId": node_id,
                    "size": updated.size,
                    "lastModified": updated.last_modified.isoformat(),
                    "lineCount": updated.metadata.line_count,
                },
            )
        )
        return updated

    def _build_tree(self, project_id: str, hierarchy: Sequence[TreeNodeInput]) -> list[FileSystemNode]:
        """Validate a caller-supplied hierarchy and convert it to nested nodes with derived metadata."""
        now = utcnow()
        roots: list[FileSystemNode] = []
        seen_ids: set[str] = set()
        stack: list[tuple[TreeNodeInput, list[FileSystemNode], set[str]]] = []
        root_names: set[str] = set()
        stack.extend((item, roots, root_names) for item in reversed(hierarchy))

        while stack:
            item, siblings, sibling_names = stack.pop()
            node_type = _node_type(item.type)
            name = _node_name(item.name)
            node_id = item.id or new_node_id()
            if node_id in seen_ids:
                raise ValidationError(f"Duplicate node id '{node_id}' in tree")
            seen_ids.add(node_id)
            if name in sibling_names:
                raise Conflict(f"Duplicate name '{name}' among siblings in tree")
            sibling_names.add(name)

            fields: dict[str, Any] = {
                "id": node_id,
                "project_id": project_id,
                "type": node_type,
                "name": name,
                "x": _coordinate(item.x, "x"),
                "y": _coordinate(item.y, "y"),
                "last_modified": now,
                "created_at": now,
            }
            if node_type == "file":
                if item.children:
                    raise ValidationError(f"File '{name}' cannot have children")
                text = item.content or ""
                fields.update(content=text, size=byte_size(text), metadata=file_metadata(name, text))
            else:
                if item.content:
                    raise ValidationError(f"Folder '{name}' cannot carry content")
                fields.update(expanded=bool(item.expanded))

            node = FileSystemNode(**fields)
            if node_type == "folder":
                node.children = []
                child_names: set[str] = set()
                stack.extend((child, node.children, child_names) for child in reversed(item.children or []))
            siblings.append(node)
        return roots

    async def replace_project_tree(self, project_id: str, hierarchy: Sequence[TreeNodeInput]) -> TreeCounts:
        """Replace every node of a project with ``hierarchy`` as one atomic write.

        The caller supplies the complete desired tree, not a diff.
        """
        await self._require_project(project_id)
        t0 = time.perf_counter()
        flat = flatten(self._build_tree(project_id, hierarchy))
        await self._store.replace_all(project_id, flat)

        files = sum(1 for n in flat if n.type == "file")
        counts = TreeCounts(total=len(flat), files=files, folders=len(flat) - files)
        logger.info(
            "replaced tree of %s: %d node(s) (%d files, %d folders) in %.3fs",
            project_id,
            counts.total,
            counts.files,
            counts.folders,
            time.perf_counter() - t0,
        )
        await self._publish(
            ChangeEvent(
                events.TREE_UPDATED,
                project_id,
                {"nodeCount": counts.total, "files": counts.files, "folders": counts.folders},
            )
        )
        return counts
