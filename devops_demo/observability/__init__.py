"""Observability helpers.

Request IDs + structlog contextvars for logs, and a Prometheus registry
that the request middleware feeds and `/metrics` exposes.
"""
