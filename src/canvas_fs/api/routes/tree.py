from typing import Literal

from fastapi import APIRouter, Depends, Query

from canvas_fs.api.dependencies import get_tree_service
from canvas_fs.api.schemas import TreeResponse, TreeSaveRequest, TreeSaveResponse
from canvas_fs.core.tree import TreeService

router = APIRouter(prefix="/projects/{project_id}/tree", tags=["tree"])


@router.get("", response_model=TreeResponse, response_model_exclude_none=True)
async def get_tree(
    project_id: str,
    view: Literal["nested", "flat"] = Query("nested"),
    tree: TreeService = Depends(get_tree_service),
) -> TreeResponse:
    nodes = await tree.list_tree(project_id, hierarchical=view == "nested")
    return TreeResponse(project_id=project_id, view=view, nodes=nodes)


@router.put("", response_model=TreeSaveResponse)
async def save_tree(
    project_id: str,
    body: TreeSaveRequest,
    tree: TreeService = Depends(get_tree_service),
) -> TreeSaveResponse:
    """Replace the whole tree of a project in one atomic write."""
    counts = await tree.replace_project_tree(project_id, body.nodes)
    return TreeSaveResponse(node_count=counts.total, files=counts.files, folders=counts.folders)
