from __future__ import annotations

from fastapi import Request

from devops_demo.config import Settings
from devops_demo.observability.metrics import MetricsRegistry


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_metrics_registry(request: Request) -> MetricsRegistry:
    return request.app.state.metrics


def get_uptime_seconds(request: Request) -> float:
    clock = request.app.state.clock
    return max(clock() - request.app.state.started_at, 0.0)
