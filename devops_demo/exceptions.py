from __future__ import annotations


class DemoServiceError(Exception):
    """Base class for errors raised by the service itself."""


class MetricsRenderError(DemoServiceError):
    """Raised when the metrics registry cannot be serialised."""


class LifecycleError(DemoServiceError):
    """Raised on an illegal server state transition."""
