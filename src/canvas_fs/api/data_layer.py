"""Custom BaseDataLayer classes bridging JSON:API CRUD to the services and ``NodeStore``."""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi_jsonapi.data_layers.base import BaseDataLayer
from fastapi_jsonapi.data_typing import TypeModel, TypeSchema
from fastapi_jsonapi.exceptions import BadRequest, ObjectNotFound
from fastapi_jsonapi.querystring import QueryStringManager
from fastapi_jsonapi.views import RelationshipRequestInfo

from canvas_fs.api.models import NodeModel, ProjectModel, split_node_resource_id
from canvas_fs.api.pagination import InvalidCursorError, decode_cursor, pagination_state, parse_page_params
from canvas_fs.core.errors import NotFound, ValidationError
from canvas_fs.core.events import ChangeBroadcaster
from canvas_fs.core.ports.database import NodeStore
from canvas_fs.core.projects import ProjectService
from canvas_fs.core.tree import NODE_TYPES

_NODE_FILTERS = ("project_id", "type")


class ProjectDataLayer(BaseDataLayer):
    """Data layer for the ``projects`` JSON:API resource."""

    def __init__(
        self,
        request: Request,
        model: type[TypeModel],
        schema: type[TypeSchema],
        resource_type: str,
        store: NodeStore | None = None,
        broadcaster: ChangeBroadcaster | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(request=request, model=model, schema=schema, resource_type=resource_type, **kwargs)
        assert store is not None, "NodeStore dependency must be provided"
        self.projects = ProjectService(store, broadcaster)

    async def get_collection(
        self,
        qs: QueryStringManager,
        view_kwargs: dict[str, Any] | None = None,
        relationship_request_info: RelationshipRequestInfo | None = None,
    ) -> tuple[int, list[Any]]:
        items = [ProjectModel.from_project(p) for p in await self.projects.list_projects()]
        return len(items), items

    async def get_object(
        self,
        view_kwargs: dict[str, Any],
        qs: QueryStringManager | None = None,
        relationship_request_info: RelationshipRequestInfo | None = None,
    ) -> Any:
        project_id = str(view_kwargs.get("id", ""))
        try:
            project = await self.projects.get_project(project_id)
        except NotFound as exc:
            raise ObjectNotFound(detail=str(exc)) from exc
        return ProjectModel.from_project(project)

    async def create_object(self, data_create: Any, view_kwargs: dict[str, Any]) -> Any:
        attrs = data_create.attributes
        try:
            project = await self.projects.create_project(
                name=getattr(attrs, "name", ""),
                description=getattr(attrs, "description", "") or "",
                owner=getattr(attrs, "owner", "anonymous") or "anonymous",
                settings=getattr(attrs, "settings", None),
            )
        except ValidationError as exc:
            raise BadRequest(detail=str(exc)) from exc
        return ProjectModel.from_project(project)


class NodeDataLayer(BaseDataLayer):
    """Read-only data layer for the ``nodes`` JSON:API resource, keyset-paginated by ``(project_id, id)``."""

    def __init__(
        self,
        request: Request,
        model: type[TypeModel],
        schema: type[TypeSchema],
        resource_type: str,
        store: NodeStore | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(request=request, model=model, schema=schema, resource_type=resource_type, **kwargs)
        assert store is not None, "NodeStore dependency must be provided"
        self.store = store

    async def get_collection(
        self,
        qs: QueryStringManager,
        view_kwargs: dict[str, Any] | None = None,
        relationship_request_info: RelationshipRequestInfo | None = None,
    ) -> tuple[int, list[Any]]:
        await self.store.ensure_ready()
        page = parse_page_params(self.request)
        try:
            after = decode_cursor(page.after) if page.after else None
            before = decode_cursor(page.before) if page.before and not after else None
        except InvalidCursorError as exc:
            raise BadRequest(detail=str(exc)) from exc

        filters: dict[str, str] = {}
        for f in qs.filters:
            if f.get("name") in _NODE_FILTERS and f.get("op") == "eq":
                filters[f["name"]] = str(f["val"])
        if filters.get("type") not in (None, *NODE_TYPES):
            raise BadRequest(detail="filter[type] must be 'file' or 'folder'")

        # one extra row tells whether another page exists
        rows = await self.store.list_nodes_cursor(
            limit=page.size + 1,
            project_id=filters.get("project_id"),
            node_type=filters.get("type"),
            after=after,
            before=before,
        )
        visible = rows[-page.size :] if page.backward else rows[: page.size]

        first = (visible[0].project_id, visible[0].id) if visible else None
        last = (visible[-1].project_id, visible[-1].id) if visible else None
        self.request.state.cursor_pagination = pagination_state(
            page, len(rows), first, last, resource_path="/nodes", filters=filters
        )

        # 0 keeps FastAPI-JSONAPI from emitting offset links
        return 0, [NodeModel.from_node(n) for n in visible]

    async def get_object(
        self,
        view_kwargs: dict[str, Any],
        qs: QueryStringManager | None = None,
        relationship_request_info: RelationshipRequestInfo | None = None,
    ) -> Any:
        await self.store.ensure_ready()
        resource_id = str(view_kwargs.get("id", ""))
        key = split_node_resource_id(resource_id)
        if key is None:
            raise BadRequest(detail=f"Node id must look like '<project_id>:<node_id>', got {resource_id!r}")
        node = await self.store.get_node(*key)
        if node is None:
            raise ObjectNotFound(detail=f"Node {resource_id} not found")
        return NodeModel.from_node(node)
