from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from canvas_fs.api.dependencies import get_store
from canvas_fs.api.schemas import SearchResponse
from canvas_fs.core.ports.database import NodeStore
from canvas_fs.core.query import DEFAULT_SEARCH_LIMIT, node_statistics, search_nodes

router = APIRouter(tags=["query"])


@router.get("/search", response_model=SearchResponse, response_model_exclude_none=True)
async def search(
    q: str = Query(""),
    project_id: str | None = Query(None),
    type: str | None = Query(None),
    limit: int = Query(DEFAULT_SEARCH_LIMIT),
    store: NodeStore = Depends(get_store),
) -> SearchResponse:
    """Case-insensitive search over node names and file content."""
    results = await search_nodes(store, q, project_id=project_id, node_type=type, limit=limit)
    return SearchResponse(query=q.strip(), count=len(results), results=results)


@router.get("/statistics")
async def statistics(
    project_id: str | None = Query(None),
    store: NodeStore = Depends(get_store),
) -> dict[str, Any]:
    """Node counts, file sizes, language breakdown and recently modified files."""
    await store.ensure_ready()
    return await node_statistics(store, project_id)
