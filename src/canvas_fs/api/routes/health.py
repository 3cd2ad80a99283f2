from fastapi import APIRouter, Depends, Response, status

from canvas_fs.api.dependencies import get_store
from canvas_fs.api.schemas import HealthResponse, ReadinessResponse
from canvas_fs.core.ports.database import NodeStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/healthz/live", response_model=HealthResponse)
async def liveness() -> HealthResponse:
    return HealthResponse()


@router.get("/healthz/ready", response_model=ReadinessResponse)
async def readiness(
    response: Response,
    store: NodeStore = Depends(get_store),
) -> ReadinessResponse:
    """Readiness probe: is the node store reachable?"""
    if await store.ping():
        return ReadinessResponse(status="ok", database="up")
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status="degraded", database="down")
