from __future__ import annotations

import logging
import uuid
from typing import Any

from canvas_fs.core import events
from canvas_fs.core.errors import NotFound, ValidationError
from canvas_fs.core.events import ChangeBroadcaster, ChangeEvent
from canvas_fs.core.ports.database import NodeStore
from canvas_fs.core.ports.notifier import ChangeObserver
from canvas_fs.models import ROOT_NODE_ID, FileSystemNode, Project, ProjectSettings, utcnow

logger = logging.getLogger(__name__)

ROOT_NODE_NAME = "Home"
ROOT_NODE_POSITION = (100.0, 100.0)


def make_root_node(project_id: str) -> FileSystemNode:
    x, y = ROOT_NODE_POSITION
    return FileSystemNode(
        id=ROOT_NODE_ID,
        project_id=project_id,
        type="folder",
        name=ROOT_NODE_NAME,
        x=x,
        y=y,
        expanded=True,
    )


def _settings(value: ProjectSettings | dict[str, Any] | None, current: ProjectSettings | None = None) -> ProjectSettings:
    if value is None:
        return current or ProjectSettings()
    if isinstance(value, ProjectSettings):
        return value
    base = current or ProjectSettings()
    return base.model_copy(update={k: v for k, v in value.items() if k in ProjectSettings.model_fields})


class ProjectService:
    def __init__(self, store: NodeStore, observer: ChangeObserver | None = None) -> None:
        self._store = store
        self._observer: ChangeObserver = observer if observer is not None else ChangeBroadcaster()

    async def _publish(self, event: ChangeEvent) -> None:
        try:
            await self._observer.notify(event)
        except Exception:
            logger.exception("Dropping %s event for project %s", event.type, event.project_id)

    async def create_project(
        self,
        name: str,
        description: str = "",
        owner: str = "anonymous",
        settings: ProjectSettings | dict[str, Any] | None = None,
    ) -> Project:
        """Create a project and seed its undeletable root folder."""
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Project name is required")
        project = Project(
            id=uuid.uuid4().hex,
            name=name.strip(),
            description=description or "",
            owner=owner or "anonymous",
            settings=_settings(settings),
        )
        await self._store.insert_project(project, [make_root_node(project.id)])
        logger.info("created project %s (%s)", project.id, project.name)
        await self._publish(
            ChangeEvent(events.PROJECT_CREATED, project.id, {"project": project.model_dump(mode="json")})
        )
        return project

    async def list_projects(self) -> list[Project]:
        return await self._store.list_projects()

    async def get_project(self, project_id: str) -> Project:
        project = await self._store.get_project(project_id)
        if project is None or not project.is_active:
            raise NotFound(f"Project {project_id} not found")
        return project

    async def update_project(
        self,
        project_id: str,
        name: str | None = None,
        description: str | None = None,
        settings: ProjectSettings | dict[str, Any] | None = None,
    ) -> Project:
        project = await self.get_project(project_id)
        changes: dict[str, Any] = {"updated_at": utcnow(), "settings": _settings(settings, project.settings)}
        if name is not None:
            if not name.strip():
                raise ValidationError("Project name cannot be empty")
            changes["name"] = name.strip()
        if description is not None:
            changes["description"] = description
        updated = project.model_copy(update=changes)
        await self._store.update_project(updated)
        return updated

    async def delete_project(self, project_id: str) -> int:
        """Deactivate a project and physically remove all of its nodes.

        Both happen in one transaction and are not recoverable. Returns the
        number of removed nodes.
        """
        await self.get_project(project_id)
        removed = await self._store.deactivate_project(project_id)
        logger.info("deleted project %s and %d node(s)", project_id, removed)
        await self._publish(ChangeEvent(events.PROJECT_DELETED, project_id, {"removedNodes": removed}))
        return removed
