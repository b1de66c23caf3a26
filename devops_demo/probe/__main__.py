from __future__ import annotations

import argparse

from devops_demo.config import get_settings
from devops_demo.observability.logging import configure_logging
from devops_demo.probe.client import run_probe


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Single-shot health check for the demo service")
    parser.add_argument("--host", default=settings.healthcheck_host, help="Service host to probe")
    parser.add_argument("--port", type=int, default=settings.port, help="Service port to probe")
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.healthcheck_timeout_seconds,
        help="Seconds to wait for the response",
    )
    args = parser.parse_args()

    configure_logging(settings.log_level, service="devops-demo-healthcheck", version=settings.app_version)
    raise SystemExit(run_probe(host=args.host, port=args.port, timeout=args.timeout))


if __name__ == "__main__":
    main()
