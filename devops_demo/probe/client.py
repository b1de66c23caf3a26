from __future__ import annotations

import httpx
import structlog


DEFAULT_TIMEOUT_SECONDS = 5.0

EXIT_HEALTHY = 0
EXIT_UNHEALTHY = 1


def run_probe(
    host: str = "localhost",
    port: int = 3000,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.BaseTransport | None = None,
) -> int:
    """Issue exactly one GET /health and map the outcome to an exit code.

    Returns 0 only for HTTP 200 with a JSON body whose ``status`` is
    ``"healthy"``. Timeouts, transport errors and unparseable bodies all
    return 1. There are no retries.
    """

    logger = structlog.get_logger("healthcheck")
    url = f"http://{host}:{port}/health"

    try:
        # Leaving the client context closes the connection, aborting it on timeout.
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.get(url)
    except httpx.TimeoutException:
        logger.error("health_check_timed_out", url=url, timeout_seconds=timeout)
        return EXIT_UNHEALTHY
    except httpx.HTTPError as exc:
        logger.error("health_check_request_failed", url=url, error=str(exc))
        return EXIT_UNHEALTHY

    try:
        payload = response.json()
    except ValueError as exc:
        logger.error(
            "health_check_invalid_response",
            url=url,
            status_code=response.status_code,
            error=str(exc),
        )
        return EXIT_UNHEALTHY

    if response.status_code == 200 and isinstance(payload, dict) and payload.get("status") == "healthy":
        logger.info("health_check_passed", url=url)
        return EXIT_HEALTHY

    logger.error("health_check_failed", url=url, status_code=response.status_code, body=payload)
    return EXIT_UNHEALTHY
