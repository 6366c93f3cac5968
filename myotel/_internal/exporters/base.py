"""Exporter factory boundary.

The bootstrap never builds exporters directly: it asks an ``ExporterFactory``
for one exporter per provider kind. This keeps config merging and lifecycle
handling testable without a network-capable exporter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable
from urllib.parse import urlparse

from myotel._internal import constants
from myotel._internal.errors import ExporterConstructionError

if TYPE_CHECKING:
    from opentelemetry.sdk._logs.export import LogExporter
    from opentelemetry.sdk.metrics.export import MetricExporter
    from opentelemetry.sdk.trace.export import SpanExporter

    from myotel._internal.config import InitConfig


@runtime_checkable
class ExporterFactory(Protocol):
    """Builds the exporters wired into each provider."""

    def span_exporter(self, config: InitConfig) -> SpanExporter: ...

    def metric_exporter(self, config: InitConfig) -> MetricExporter: ...

    def log_exporter(self, config: InitConfig) -> LogExporter: ...


def validate_endpoint(kind: str, endpoint: str) -> str:
    """Check that ``endpoint`` is an absolute http(s) URL.

    Returns:
        The endpoint without a trailing slash.

    Raises:
        ExporterConstructionError: If the endpoint is malformed.
    """
    try:
        parsed = urlparse(endpoint)
        # Accessing .port validates it
        parsed.port  # noqa: B018
    except ValueError as exc:
        raise ExporterConstructionError(kind, f"malformed endpoint {endpoint!r}: {exc}") from exc

    if parsed.scheme not in ("http", "https"):
        raise ExporterConstructionError(kind, f"endpoint {endpoint!r} must use http or https")
    if not parsed.hostname:
        raise ExporterConstructionError(kind, f"endpoint {endpoint!r} has no host")
    return endpoint.rstrip("/")


def signal_endpoint(kind: str, config: InitConfig) -> str | None:
    """Resolve the per-signal endpoint for ``kind``.

    HTTP exporters use an explicit endpoint verbatim, so the signal path
    (``/v1/traces`` etc.) is appended. gRPC endpoints are used as-is.
    ``None`` leaves resolution to the SDK's ``OTEL_EXPORTER_OTLP_*`` variables.
    """
    if not config.otlp_endpoint:
        return None
    endpoint = validate_endpoint(kind, config.otlp_endpoint)
    if config.otlp_protocol == constants.OTLP_GRPC:
        return endpoint
    return f"{endpoint}{constants.OTLP_HTTP_PATHS[kind]}"
