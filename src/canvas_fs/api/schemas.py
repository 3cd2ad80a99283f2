from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt

from canvas_fs.models import FileSystemNode, TreeNodeInput

Coordinate = StrictFloat | StrictInt

# --- JSON:API resource schemas (used by FastAPI-JSONAPI ApplicationBuilder) ---


class ProjectSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    description: str
    owner: str
    created_at: datetime
    updated_at: datetime
    settings: dict[str, Any]


class ProjectCreateSchema(BaseModel):
    """POST /projects attributes."""

    name: str
    description: str = ""
    owner: str = "anonymous"
    settings: dict[str, Any] | None = None


class NodeSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_id: str
    node_id: str
    type: str
    name: str
    parent_id: str | None = None
    x: float
    y: float
    expanded: bool | None = None
    size: int | None = None
    language: str | None = None
    line_count: int | None = None
    last_modified: datetime
    created_at: datetime


# --- Custom (non-JSON:API) endpoint schemas ---


class HealthResponse(BaseModel):
    status: str = "ok"


class ReadinessResponse(BaseModel):
    status: str = "ok"
    database: str = "up"


class ProjectUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    settings: dict[str, Any] | None = None


class ProjectDeleteResponse(BaseModel):
    deleted_id: str
    removed_nodes: int


class Position(BaseModel):
    x: Coordinate
    y: Coordinate


class NodeCreateRequest(BaseModel):
    type: str
    name: str
    parent_id: str | None = Field(default=None, alias="parentId")
    position: Position | None = None
    content: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class ExpandedRequest(BaseModel):
    expanded: StrictBool


class FileContentRequest(BaseModel):
    content: str


class TreeSaveRequest(BaseModel):
    """PUT /projects/{pid}/tree: the complete desired tree, not a diff."""

    nodes: list[TreeNodeInput]


class TreeSaveResponse(BaseModel):
    node_count: int
    files: int
    folders: int


class TreeResponse(BaseModel):
    project_id: str
    view: Literal["nested", "flat"]
    nodes: list[FileSystemNode]


class DeleteNodeResponse(BaseModel):
    deleted_id: str
    descendant_ids: list[str]
    deleted_count: int


class SearchResponse(BaseModel):
    query: str
    count: int
    results: list[FileSystemNode]
