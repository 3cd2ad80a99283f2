from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_jsonapi import ApplicationBuilder
from fastapi_jsonapi.views import Operation

from canvas_fs.api.dependencies import shutdown_database
from canvas_fs.api.middleware import CursorPaginationMiddleware
from canvas_fs.api.models import NodeModel, ProjectModel
from canvas_fs.api.routes.files import router as files_router
from canvas_fs.api.routes.health import router as health_router
from canvas_fs.api.routes.nodes import router as nodes_router
from canvas_fs.api.routes.projects import router as projects_router
from canvas_fs.api.routes.realtime import router as realtime_router
from canvas_fs.api.routes.root import router as root_router
from canvas_fs.api.routes.search import router as search_router
from canvas_fs.api.routes.tree import router as tree_router
from canvas_fs.api.schemas import NodeSchema, ProjectCreateSchema, ProjectSchema
from canvas_fs.api.views import NodeView, ProjectView
from canvas_fs.config import Settings
from canvas_fs.core.errors import (
    CanvasFsError,
    Conflict,
    DuplicateNode,
    Forbidden,
    InvalidKind,
    NotFound,
    StorageUnavailable,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: tuple[tuple[type[CanvasFsError], int], ...] = (
    (ValidationError, 422),
    (NotFound, 404),
    (InvalidKind, 400),
    (Forbidden, 403),
    (Conflict, 409),
    (StorageUnavailable, 503),
    (DuplicateNode, 409),
)


def status_for(exc: CanvasFsError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def handle_canvas_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, CanvasFsError)
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"error": type(exc).__name__, "detail": str(exc)})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await shutdown_database()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    app = FastAPI(
        title="Canvas FS API",
        description="Projects of files and folders laid out on a canvas.",
        version="0.1.0",
        lifespan=lifespan,
    )

    # JSON:API resources via FastAPI-JSONAPI
    builder = ApplicationBuilder(app)
    builder.add_resource(
        path="/projects",
        tags=["projects"],
        view=ProjectView,
        model=ProjectModel,
        schema=ProjectSchema,
        schema_in_post=ProjectCreateSchema,
        resource_type="projects",
        ending_slash=False,
        operations=[Operation.GET_LIST, Operation.GET, Operation.CREATE],
    )
    builder.add_resource(
        path="/nodes",
        tags=["nodes"],
        view=NodeView,
        model=NodeModel,
        schema=NodeSchema,
        resource_type="nodes",
        ending_slash=False,
        operations=[Operation.GET_LIST, Operation.GET],
    )
    builder.initialize()

    app.add_middleware(CursorPaginationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(CanvasFsError, handle_canvas_error)

    app.include_router(root_router, include_in_schema=False)
    app.include_router(health_router, include_in_schema=False)
    app.include_router(projects_router)
    app.include_router(tree_router)
    app.include_router(nodes_router)
    app.include_router(files_router)
    app.include_router(search_router)
    app.include_router(realtime_router)

    return app
