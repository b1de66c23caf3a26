from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import MutableHeaders

from devops_demo.observability.metrics import MetricsRegistry


UNMATCHED_ROUTE_LABEL = "unmatched"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
}


def route_label(scope: dict[str, Any], *, collapse_unmatched: bool = True) -> str:
    """Return the matched route template, or a fallback for unrouted requests."""

    route = scope.get("route")
    template = getattr(route, "path", None)
    if template:
        return str(template)
    if collapse_unmatched:
        return UNMATCHED_ROUTE_LABEL
    return str(scope.get("path") or "")


class RequestContextMiddleware:
    """Adds request_id context, access logs, and HTTP metrics."""

    def __init__(
        self,
        app: Callable[..., Any],
        registry: MetricsRegistry,
        collapse_unmatched_routes: bool = True,
    ) -> None:
        self.app = app
        self.registry = registry
        self.collapse_unmatched_routes = collapse_unmatched_routes

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        path = scope.get("path")
        method = scope.get("method")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=method,
        )

        start = perf_counter()
        # Stays 500 when the app raises before starting a response.
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed = perf_counter() - start
            route = route_label(scope, collapse_unmatched=self.collapse_unmatched_routes)

            # Update metrics first so they update even if logging misbehaves.
            self.registry.record(
                method=str(method),
                route=route,
                status_code=status_code,
                duration_seconds=elapsed,
            )

            structlog.get_logger("access").info(
                "http_request",
                route=route,
                status_code=status_code,
                elapsed_ms=round(elapsed * 1000.0, 2),
            )

            structlog.contextvars.clear_contextvars()


class SecurityHeadersMiddleware:
    """Sets a fixed set of protective headers on every HTTP response."""

    def __init__(self, app: Callable[..., Any], headers: dict[str, str] | None = None) -> None:
        self.app = app
        self.headers = dict(SECURITY_HEADERS if headers is None else headers)

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message: dict[str, Any]) -> None:
            if message.get("type") == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in self.headers.items():
                    headers.setdefault(name, value)
            await send(message)

        await self.app(scope, receive, send_wrapper)
