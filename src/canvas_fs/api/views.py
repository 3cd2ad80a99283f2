"""JSON:API views for the projects and nodes resources."""

from __future__ import annotations

from typing import Any, ClassVar

from fastapi import Depends
from fastapi_jsonapi.views import Operation, OperationConfig, ViewBase
from pydantic import BaseModel, ConfigDict

from canvas_fs.api.data_layer import NodeDataLayer, ProjectDataLayer
from canvas_fs.api.dependencies import get_broadcaster, get_store


class StoreDependency(BaseModel):
    """Pydantic model whose fields become FastAPI Depends() parameters."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    store: Any = Depends(get_store)


class ProjectDependency(StoreDependency):
    broadcaster: Any = Depends(get_broadcaster)


async def prepare_store_kwargs(view: ViewBase, deps: StoreDependency) -> dict[str, Any]:
    return {"store": deps.store}


async def prepare_project_kwargs(view: ViewBase, deps: ProjectDependency) -> dict[str, Any]:
    return {"store": deps.store, "broadcaster": deps.broadcaster}


class ProjectView(ViewBase):
    data_layer_cls = ProjectDataLayer  # type: ignore[assignment]
    operation_dependencies: ClassVar[dict[Operation, OperationConfig]] = {
        Operation.ALL: OperationConfig(
            dependencies=ProjectDependency,
            prepare_data_layer_kwargs=prepare_project_kwargs,
        ),
    }


class NodeView(ViewBase):
    data_layer_cls = NodeDataLayer  # type: ignore[assignment]
    operation_dependencies: ClassVar[dict[Operation, OperationConfig]] = {
        Operation.ALL: OperationConfig(
            dependencies=StoreDependency,
            prepare_data_layer_kwargs=prepare_store_kwargs,
        ),
    }
