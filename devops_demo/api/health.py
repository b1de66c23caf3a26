from __future__ import annotations

from fastapi import APIRouter, Depends

from devops_demo.api.dependencies import get_app_settings, get_uptime_seconds
from devops_demo.config import Settings
from devops_demo.models.schemas import HealthResponse, ReadinessResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(
    settings: Settings = Depends(get_app_settings),
    uptime: float = Depends(get_uptime_seconds),
) -> HealthResponse:
    return HealthResponse(
        uptime=uptime,
        environment=settings.environment,
        version=settings.app_version,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def ready() -> ReadinessResponse:
    # Stub: readiness does not check any downstream dependency yet.
    return ReadinessResponse()
