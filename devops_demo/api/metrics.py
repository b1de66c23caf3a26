from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from devops_demo.api.dependencies import get_metrics_registry
from devops_demo.observability.metrics import MetricsRegistry


router = APIRouter(tags=["metrics"])


@router.get("/metrics", include_in_schema=False)
async def metrics(registry: MetricsRegistry = Depends(get_metrics_registry)) -> Response:
    # MetricsRenderError is left to the central 500 handler.
    return Response(content=registry.snapshot(), media_type=registry.content_type)
