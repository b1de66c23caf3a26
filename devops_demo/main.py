from __future__ import annotations

from time import monotonic

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from devops_demo.api.error_handlers import UnhandledErrorMiddleware, register_exception_handlers
from devops_demo.api.greeting import router as greeting_router
from devops_demo.api.health import router as health_router
from devops_demo.api.metrics import router as metrics_router
from devops_demo.config import Settings, get_settings
from devops_demo.observability.metrics import MetricsRegistry
from devops_demo.observability.middleware import RequestContextMiddleware, SecurityHeadersMiddleware


# Taken when the service modules are first imported, i.e. at process start-up.
PROCESS_STARTED_AT = monotonic()


def create_app(settings: Settings | None = None, registry: MetricsRegistry | None = None) -> FastAPI:
    """Build the service application.

    The settings and metrics registry live on ``app.state`` and are handed to
    handlers through dependencies, so each app instance is self-contained.
    """

    settings = settings if settings is not None else get_settings()
    registry = registry if registry is not None else MetricsRegistry()

    app = FastAPI(
        title="DevOps Demo Service",
        version=settings.app_version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.metrics = registry
    app.state.clock = monotonic
    app.state.started_at = PROCESS_STARTED_AT

    app.include_router(greeting_router)
    app.include_router(health_router)
    app.include_router(metrics_router)
    register_exception_handlers(app)

    # Last added runs first: instrumentation wraps CORS, security headers and
    # the 500 fallback, in that order.
    app.add_middleware(UnhandledErrorMiddleware, redact_errors=settings.is_production)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.add_middleware(
        RequestContextMiddleware,
        registry=registry,
        collapse_unmatched_routes=settings.metrics_collapse_unmatched_routes,
    )
    return app
