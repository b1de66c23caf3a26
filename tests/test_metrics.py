from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from devops_demo.config import get_settings
from devops_demo.main import create_app
from devops_demo.observability.metrics import DURATION_BUCKETS, MetricsRegistry


class _ExplodingCollector:
    def describe(self) -> list:
        return []

    def collect(self):
        raise RuntimeError("collector exploded")


def _requests_total(registry: MetricsRegistry, method: str, route: str, status_code: str) -> float:
    value = registry.sample_value(
        "http_requests_total",
        {"method": method, "route": route, "status_code": status_code},
    )
    return value or 0.0


async def test_metrics_endpoint_exposes_prometheus_text(api_client) -> None:
    resp = await api_client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "version=0.0.4" in resp.headers["content-type"]
    body = resp.text
    assert "# HELP" in body
    assert "# TYPE" in body
    assert "# TYPE http_requests_total counter" in body
    assert "# TYPE http_request_duration_seconds histogram" in body


async def test_metrics_include_process_level_defaults(api_client) -> None:
    body = (await api_client.get("/metrics")).text
    assert "python_info" in body
    assert "python_gc_objects_collected_total" in body


async def test_request_counter_accumulates_per_route(api_client, metrics_registry) -> None:
    for _ in range(5):
        resp = await api_client.get("/")
        assert resp.status_code == 200

    assert _requests_total(metrics_registry, "GET", "/", "200") == 5

    await api_client.get("/")
    assert _requests_total(metrics_registry, "GET", "/", "200") == 6


async def test_duration_histogram_uses_fixed_buckets(api_client, metrics_registry) -> None:
    await api_client.get("/health")

    labels = {"method": "GET", "route": "/health", "status_code": "200"}
    assert metrics_registry.sample_value("http_request_duration_seconds_count", labels) == 1
    for bound in DURATION_BUCKETS:
        bucket = metrics_registry.sample_value("http_request_duration_seconds_bucket", {**labels, "le": str(bound)})
        assert bucket is not None


async def test_metrics_endpoint_counts_itself(api_client, metrics_registry) -> None:
    await api_client.get("/metrics")
    await api_client.get("/metrics")
    assert _requests_total(metrics_registry, "GET", "/metrics", "200") == 2


async def test_unmatched_paths_share_one_route_label(api_client, metrics_registry) -> None:
    await api_client.get("/nope-1")
    await api_client.get("/nope-2")

    assert _requests_total(metrics_registry, "GET", "unmatched", "404") == 2
    assert _requests_total(metrics_registry, "GET", "/nope-1", "404") == 0


async def test_unmatched_paths_use_raw_path_when_not_collapsed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_COLLAPSE_UNMATCHED_ROUTES", "false")
    get_settings.cache_clear()
    registry = MetricsRegistry(include_process_metrics=False)
    app = create_app(get_settings(), registry)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.get("/nope-1")

    assert _requests_total(registry, "GET", "/nope-1", "404") == 1


async def test_wrong_method_on_known_route_is_labelled_with_template(api_client, metrics_registry) -> None:
    resp = await api_client.post("/health")
    assert resp.status_code == 404
    assert _requests_total(metrics_registry, "POST", "/health", "404") == 1


async def test_metrics_render_failure_returns_error_text_outside_production(api_client, metrics_registry) -> None:
    metrics_registry.registry.register(_ExplodingCollector())

    resp = await api_client.get("/metrics")
    assert resp.status_code == 500
    payload = resp.json()
    assert "collector exploded" in payload["message"]


async def test_metrics_render_failure_is_redacted_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")
    get_settings.cache_clear()
    registry = MetricsRegistry(include_process_metrics=False)
    registry.registry.register(_ExplodingCollector())
    app = create_app(get_settings(), registry)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/metrics")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Something went wrong!", "message": "Internal server error"}
    assert _requests_total(registry, "GET", "/metrics", "500") == 1


def test_record_is_append_only() -> None:
    registry = MetricsRegistry(include_process_metrics=False)
    registry.record("GET", "/", 200, 0.05)
    registry.record("GET", "/", 200, 3.0)
    registry.record("GET", "/", 500, 0.2)

    ok = {"method": "GET", "route": "/", "status_code": "200"}
    assert registry.sample_value("http_requests_total", ok) == 2
    assert registry.sample_value("http_request_duration_seconds_bucket", {**ok, "le": "0.1"}) == 1
    assert registry.sample_value("http_request_duration_seconds_bucket", {**ok, "le": "5.0"}) == 2
    assert registry.sample_value("http_request_duration_seconds_sum", ok) == pytest.approx(3.05)


def test_separate_registries_do_not_share_state() -> None:
    first = MetricsRegistry(include_process_metrics=False)
    second = MetricsRegistry(include_process_metrics=False)
    first.record("GET", "/", 200, 0.01)

    assert first.sample_value("http_requests_total", {"method": "GET", "route": "/", "status_code": "200"}) == 1
    assert second.sample_value("http_requests_total", {"method": "GET", "route": "/", "status_code": "200"}) is None
