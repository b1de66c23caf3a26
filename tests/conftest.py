from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import structlog
import structlog.testing
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from devops_demo.config import get_settings
from devops_demo.main import create_app
from devops_demo.observability.metrics import MetricsRegistry


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("APP_ENV", "NODE_ENV", "PORT", "HOST", "METRICS_COLLAPSE_UNMATCHED_ROUTES"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("APP_VERSION", "9.9.9-test")
    monkeypatch.setenv("HOSTNAME", "demo-pod-1")
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def app(metrics_registry: MetricsRegistry) -> FastAPI:
    return create_app(get_settings(), metrics_registry)


@pytest.fixture
async def api_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def log_events() -> list[dict]:
    """Capture structlog events, with request contextvars merged in."""

    capture = structlog.testing.LogCapture()
    previous = structlog.get_config()
    structlog.configure(processors=[structlog.contextvars.merge_contextvars, capture])

    yield capture.entries

    structlog.configure(**previous)
