from fastapi import APIRouter, Depends, status

from canvas_fs.api.dependencies import get_tree_service
from canvas_fs.api.schemas import DeleteNodeResponse, ExpandedRequest, NodeCreateRequest, Position
from canvas_fs.core.tree import TreeService
from canvas_fs.models import FileSystemNode

router = APIRouter(prefix="/projects/{project_id}/nodes", tags=["nodes"])


@router.post(
    "",
    response_model=FileSystemNode,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_node(
    project_id: str,
    body: NodeCreateRequest,
    tree: TreeService = Depends(get_tree_service),
) -> FileSystemNode:
    position = (body.position.x, body.position.y) if body.position is not None else None
    return await tree.create_node(
        project_id,
        body.parent_id,
        body.type,
        body.name,
        position=position,
        content=body.content,
    )


@router.delete("/{node_id}", response_model=DeleteNodeResponse)
async def delete_node(
    project_id: str,
    node_id: str,
    tree: TreeService = Depends(get_tree_service),
) -> DeleteNodeResponse:
    """Delete a node and everything below it."""
    result = await tree.delete_node(project_id, node_id)
    return DeleteNodeResponse(
        deleted_id=result.deleted_id,
        descendant_ids=result.descendant_ids,
        deleted_count=result.deleted_count,
    )


@router.patch("/{node_id}/position", response_model=FileSystemNode, response_model_exclude_none=True)
async def move_node(
    project_id: str,
    node_id: str,
    body: Position,
    tree: TreeService = Depends(get_tree_service),
) -> FileSystemNode:
    return await tree.update_node_position(project_id, node_id, body.x, body.y)


@router.post("/{node_id}/toggle", response_model=FileSystemNode, response_model_exclude_none=True)
async def toggle_folder(
    project_id: str,
    node_id: str,
    tree: TreeService = Depends(get_tree_service),
) -> FileSystemNode:
    return await tree.toggle_folder_expanded(project_id, node_id)


@router.put("/{node_id}/expanded", response_model=FileSystemNode, response_model_exclude_none=True)
async def set_expanded(
    project_id: str,
    node_id: str,
    body: ExpandedRequest,
    tree: TreeService = Depends(get_tree_service),
) -> FileSystemNode:
    return await tree.set_folder_expanded(project_id, node_id, body.expanded)
