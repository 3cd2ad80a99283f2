from __future__ import annotations

from typing import Any

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root() -> dict[str, Any]:
    """Discovery endpoint listing the API's entry points."""
    return {
        "jsonapi": {"version": "1.0"},
        "meta": {
            "title": "Canvas FS API",
            "description": "Projects of files and folders laid out on a canvas.",
            "version": "0.1.0",
        },
        "links": {
            "self": "/",
            "projects": "/projects",
            "nodes": "/nodes",
            "tree": "/projects/{project_id}/tree",
            "search": "/search",
            "statistics": "/statistics",
            "realtime": "/ws/projects/{project_id}",
            "openapi": "/openapi.json",
            "docs": "/docs",
        },
    }
