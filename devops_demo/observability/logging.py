from __future__ import annotations

import logging
import sys
from typing import Any, Callable

import structlog


_CONFIGURED = False


def service_context(service: str, version: str | None = None) -> Callable[..., Any]:
    """Build a processor that stamps every event with the emitting service."""

    def add_service_context(_logger: Any, _method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service)
        if version is not None:
            event_dict.setdefault("version", version)
        return event_dict

    return add_service_context


def configure_logging(
    level: int | str = logging.INFO,
    *,
    service: str = "devops-demo",
    version: str | None = None,
) -> None:
    """Configure structlog + stdlib logging for JSON output.

    Every event carries ``service`` (and ``version`` when given) so the
    server and the health-check process can be told apart in shared logs.
    Safe to call multiple times (no-op after first call).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    if isinstance(level, str):
        level = level.upper()

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        service_context(service, version),
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            # Let ProcessorFormatter render JSON for stdlib log records too.
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=pre_chain,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # uvicorn access logs are replaced by our own http_request events.
    for name in ("uvicorn", "uvicorn.error"):
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.propagate = False
        logger.setLevel(level)
    logging.getLogger("uvicorn.access").disabled = True

    _CONFIGURED = True
