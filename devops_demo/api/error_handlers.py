"""Central error handling: 404 for unknown routes, redacted 500 for faults."""
from __future__ import annotations

from typing import Any, Callable

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import HTTP_404_NOT_FOUND, HTTP_405_METHOD_NOT_ALLOWED, HTTP_500_INTERNAL_SERVER_ERROR

from devops_demo.models.schemas import ErrorResponse


GENERIC_ERROR_MESSAGE = "Internal server error"


def not_found_payload(request: Request) -> ErrorResponse:
    return ErrorResponse(
        error="Not Found",
        message=f"Route {request.method} {request.url.path} not found",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the HTTP error handler to the app.

    Unexpected exceptions are handled by UnhandledErrorMiddleware instead, so
    the 500 response still passes through the instrumentation and header
    middleware.
    """

    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # A known path with an unsupported method is treated like an unknown route.
        if exc.status_code in (HTTP_404_NOT_FOUND, HTTP_405_METHOD_NOT_ALLOWED):
            payload = not_found_payload(request)
            return JSONResponse(status_code=HTTP_404_NOT_FOUND, content=payload.model_dump())

        payload = ErrorResponse(error="Request Failed", message=str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content=payload.model_dump(), headers=exc.headers)

    app.add_exception_handler(StarletteHTTPException, handle_http_error)


class UnhandledErrorMiddleware:
    """Turns exceptions escaping the router into a JSON 500 response.

    Must be the innermost user middleware: request context is still bound
    when the fault is logged, and the response travels back out through the
    other middleware like any other.
    """

    def __init__(self, app: Callable[..., Any], redact_errors: bool = False) -> None:
        self.app = app
        self.redact_errors = redact_errors

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal response_started

            if message.get("type") == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            structlog.get_logger("errors").exception("unhandled_exception")
            if response_started:
                raise

            message = GENERIC_ERROR_MESSAGE if self.redact_errors else str(exc)
            payload = ErrorResponse(error="Something went wrong!", message=message)
            response = JSONResponse(status_code=HTTP_500_INTERNAL_SERVER_ERROR, content=payload.model_dump())
            await response(scope, receive, send)
