from __future__ import annotations

import platform
import sys

from fastapi import APIRouter, Depends

from devops_demo.api.dependencies import get_app_settings
from devops_demo.config import Settings
from devops_demo.models.schemas import GreetingResponse, InfoResponse, RuntimeEnvironment, StatusResponse

router = APIRouter(tags=["greeting"])

FEATURES = [
    "FastAPI web server",
    "Prometheus metrics",
    "Health checks",
    "Security headers",
    "CORS support",
    "Request logging",
]


@router.get("/", response_model=GreetingResponse)
async def greeting(settings: Settings = Depends(get_app_settings)) -> GreetingResponse:
    return GreetingResponse(
        message="Hello World from DevOps Take-Home Test!",
        environment=settings.environment,
        pod=settings.hostname,
        version=settings.app_version,
    )


@router.get("/api/status", response_model=StatusResponse)
async def service_status() -> StatusResponse:
    # No real dependencies are wired in; every service reports healthy.
    return StatusResponse()


@router.get("/api/info", response_model=InfoResponse)
async def service_info(settings: Settings = Depends(get_app_settings)) -> InfoResponse:
    return InfoResponse(
        name="Take-Home Test App",
        version=settings.app_version,
        description="A simple Python application demonstrating DevOps practices",
        features=list(FEATURES),
        environment=RuntimeEnvironment(
            python_version=platform.python_version(),
            platform=sys.platform,
            arch=platform.machine(),
            env=settings.environment,
        ),
    )
