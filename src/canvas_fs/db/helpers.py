import json
from collections.abc import Mapping
from typing import Any

from canvas_fs.models import FileSystemNode, NodeMetadata, Project, ProjectSettings

MUTABLE_NODE_FIELDS = frozenset(
    {"name", "content", "parent_id", "x", "y", "expanded", "size", "metadata", "last_modified"}
)

NODE_COLUMNS = (
    "project_id",
    "id",
    "type",
    "name",
    "content",
    "parent_id",
    "x",
    "y",
    "expanded",
    "size",
    "last_modified",
    "created_at",
    "metadata",
)

PROJECT_COLUMNS = ("id", "name", "description", "owner", "is_active", "created_at", "updated_at", "settings")


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _load_json(value: Any) -> Any:
    if value is None or isinstance(value, dict):
        return value
    return json.loads(value)


def node_to_params(node: FileSystemNode) -> dict[str, Any]:
    return {
        "project_id": node.project_id,
        "id": node.id,
        "type": node.type,
        "name": node.name,
        "content": node.content,
        "parent_id": node.parent_id,
        "x": node.x,
        "y": node.y,
        "expanded": node.expanded,
        "size": node.size,
        "last_modified": node.last_modified,
        "created_at": node.created_at,
        "metadata": node.metadata.model_dump_json() if node.metadata is not None else None,
    }


def row_to_node(row: Mapping[str, Any]) -> FileSystemNode:
    metadata = _load_json(row["metadata"])
    return FileSystemNode(
        project_id=str(row["project_id"]),
        id=str(row["id"]),
        type=row["type"],
        name=str(row["name"]),
        content=row["content"],
        parent_id=row["parent_id"],
        x=float(row["x"]),
        y=float(row["y"]),
        expanded=row["expanded"],
        size=row["size"],
        last_modified=row["last_modified"],
        created_at=row["created_at"],
        metadata=NodeMetadata.model_validate(metadata) if metadata is not None else None,
    )


def project_to_params(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "owner": project.owner,
        "is_active": project.is_active,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
        "settings": project.settings.model_dump_json(),
    }


def row_to_project(row: Mapping[str, Any]) -> Project:
    settings = _load_json(row["settings"]) or {}
    return Project(
        id=str(row["id"]),
        name=str(row["name"]),
        description=row["description"] or "",
        owner=row["owner"] or "anonymous",
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        settings=ProjectSettings.model_validate(settings),
    )
