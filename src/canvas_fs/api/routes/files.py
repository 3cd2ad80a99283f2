from fastapi import APIRouter, Depends

from canvas_fs.api.dependencies import get_tree_service
from canvas_fs.api.schemas import FileContentRequest
from canvas_fs.core.tree import TreeService
from canvas_fs.models import FileSystemNode

router = APIRouter(prefix="/projects/{project_id}/files", tags=["files"])


@router.get("/{node_id}", response_model=FileSystemNode, response_model_exclude_none=True)
async def get_file(
    project_id: str,
    node_id: str,
    tree: TreeService = Depends(get_tree_service),
) -> FileSystemNode:
    return await tree.get_file(project_id, node_id)


@router.put("/{node_id}", response_model=FileSystemNode, response_model_exclude_none=True)
async def save_file(
    project_id: str,
    node_id: str,
    body: FileContentRequest,
    tree: TreeService = Depends(get_tree_service),
) -> FileSystemNode:
    """Overwrite a file's content; size and metadata are recomputed."""
    return await tree.save_file_content(project_id, node_id, body.content)
