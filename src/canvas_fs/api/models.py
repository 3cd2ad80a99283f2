"""Plain dataclasses handed to FastAPI-JSONAPI by the custom data layers.

FastAPI-JSONAPI reads their attributes with ``from_attributes=True`` to build
the JSON:API envelopes; they are not validated on their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from canvas_fs.models import FileSystemNode, Project


@dataclass
class ProjectModel:
    id: str
    name: str
    description: str
    owner: str
    created_at: datetime
    updated_at: datetime
    settings: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_project(cls, project: Project) -> ProjectModel:
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            owner=project.owner,
            created_at=project.created_at,
            updated_at=project.updated_at,
            settings=project.settings.model_dump(),
        )


def node_resource_id(project_id: str, node_id: str) -> str:
    return f"{project_id}:{node_id}"


def split_node_resource_id(resource_id: str) -> tuple[str, str] | None:
    project_id, sep, node_id = resource_id.partition(":")
    if not sep or not project_id or not node_id:
        return None
    return project_id, node_id


@dataclass
class NodeModel:
    id: str
    project_id: str
    node_id: str
    type: str
    name: str
    parent_id: str | None
    x: float
    y: float
    expanded: bool | None
    size: int | None
    language: str | None
    line_count: int | None
    last_modified: datetime
    created_at: datetime

    @classmethod
    def from_node(cls, node: FileSystemNode) -> NodeModel:
        return cls(
            id=node_resource_id(node.project_id, node.id),
            project_id=node.project_id,
            node_id=node.id,
            type=node.type,
            name=node.name,
            parent_id=node.parent_id,
            x=node.x,
            y=node.y,
            expanded=node.expanded,
            size=node.size,
            language=node.metadata.language if node.metadata else None,
            line_count=node.metadata.line_count if node.metadata else None,
            last_modified=node.last_modified,
            created_at=node.created_at,
        )
