from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, model_validator

NodeType = Literal["file", "folder"]

ROOT_NODE_ID = "root"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NodeMetadata(BaseModel):
    language: str = "plaintext"
    encoding: str = "utf-8"
    line_count: int = 0
    permissions: str = "rw-r--r--"


class FileSystemNode(BaseModel):
    """A file or folder placed on a project canvas.

    Stored flat with a ``parent_id`` pointer. ``children`` is only populated on
    views built by ``assemble_hierarchy`` and is never persisted.
    """

    id: str
    project_id: str
    type: NodeType
    name: str
    content: str | None = None
    parent_id: str | None = None
    x: float = 0.0
    y: float = 0.0
    expanded: bool | None = None
    size: int | None = None
    last_modified: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)
    metadata: NodeMetadata | None = None
    children: list["FileSystemNode"] | None = None

    @model_validator(mode="after")
    def _strip_foreign_fields(self) -> "FileSystemNode":
        if self.type == "file":
            self.expanded = None
            self.children = None
            if self.content is None:
                self.content = ""
        else:
            self.content = None
            self.size = None
            self.metadata = None
            if self.expanded is None:
                self.expanded = False
        return self


FileSystemNode.model_rebuild()  # necessary for recursive types


class TreeNodeInput(BaseModel):
    """One node of a caller-supplied hierarchy for whole-tree replacement."""

    id: str | None = None
    type: str
    name: str
    content: str | None = None
    x: float = 0.0
    y: float = 0.0
    expanded: bool | None = None
    children: list["TreeNodeInput"] | None = None


TreeNodeInput.model_rebuild()


class ProjectSettings(BaseModel):
    theme: str = "dark"
    layout: str = "canvas"
    auto_save: bool = True


class Project(BaseModel):
    id: str
    name: str
    description: str = ""
    owner: str = "anonymous"
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
