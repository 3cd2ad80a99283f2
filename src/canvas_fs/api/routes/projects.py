from fastapi import APIRouter, Depends

from canvas_fs.api.dependencies import get_project_service
from canvas_fs.api.schemas import ProjectDeleteResponse, ProjectUpdateRequest
from canvas_fs.core.projects import ProjectService
from canvas_fs.models import Project

router = APIRouter(prefix="/projects", tags=["projects"])


@router.patch("/{project_id}/settings", response_model=Project)
async def update_project(
    project_id: str,
    body: ProjectUpdateRequest,
    projects: ProjectService = Depends(get_project_service),
) -> Project:
    return await projects.update_project(
        project_id, name=body.name, description=body.description, settings=body.settings
    )


@router.delete("/{project_id}", response_model=ProjectDeleteResponse)
async def delete_project(
    project_id: str,
    projects: ProjectService = Depends(get_project_service),
) -> ProjectDeleteResponse:
    """Deactivate the project and permanently remove its nodes."""
    removed = await projects.delete_project(project_id)
    return ProjectDeleteResponse(deleted_id=project_id, removed_nodes=removed)
