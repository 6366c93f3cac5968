"""Telemetry bootstrap entry points.

``init_otel`` builds and installs the logger, meter and tracer providers in
one call; the ``shutdown_*`` functions flush and clear them. Both operate on
the default ``ProviderRegistry`` unless one is passed explicitly.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING

from opentelemetry import context as otel_context
from opentelemetry.trace import Link, Span, SpanKind
from opentelemetry.util.types import Attributes

from myotel._internal import constants
from myotel._internal.config import InitConfig
from myotel._internal.exporters import default_exporter_factory
from myotel._internal.registry import ProviderHandles, ProviderRegistry, get_default_registry
from myotel._internal.version import __version__

if TYPE_CHECKING:
    from myotel._internal.exporters import ExporterFactory
    from myotel._internal.logger import ProxyLoggerProvider
    from myotel._internal.meter import ProxyMeter, ProxyMeterProvider
    from myotel._internal.tracer import ProxyTracer, ProxyTracerProvider


async def init_otel(
    config: InitConfig | None = None,
    *,
    registry: ProviderRegistry | None = None,
    exporter_factory: ExporterFactory | None = None,
) -> ProviderHandles:
    """Initialize OpenTelemetry logs, metrics and traces.

    Exporter and provider construction runs in a worker thread; exporters
    connect lazily on first export.

    Args:
        config: Configuration to use. Defaults to ``InitConfig()``.
        registry: Registry to install into. Defaults to the process-wide one.
        exporter_factory: Exporter factory. Defaults to OTLP, or stdout when
            ``config.stdout_exporter`` is set.

    Returns:
        The installed SDK providers.

    Raises:
        AlreadyInitializedError: If providers are already active.
        ProviderShutDownError: If the registry was shut down.
        ExporterConstructionError: If an exporter could not be built.

    Example:
        >>> import myotel
        >>> await myotel.init_otel(myotel.InitConfig(service_name="my-service"))
        >>> myotel.get_logger(__name__).info("service_started")
        >>> myotel.shutdown_all_providers()
    """
    config = config or InitConfig()
    registry = registry or get_default_registry()
    exporter_factory = exporter_factory or default_exporter_factory(config)
    return await asyncio.to_thread(registry.activate, config, exporter_factory)


def shutdown_logger_provider(timeout: float | None = None, *, registry: ProviderRegistry | None = None) -> bool:
    """Flush pending log records and shut the logger provider down.

    Args:
        timeout: Seconds to wait for the flush. Defaults to the
            ``shutdown_timeout`` the provider was initialized with.
        registry: Registry to shut down. Defaults to the process-wide one.

    Returns:
        True if the flush succeeded or nothing was active, False otherwise.
    """
    return (registry or get_default_registry()).shutdown(constants.LOGS, timeout)


def shutdown_meter_provider(timeout: float | None = None, *, registry: ProviderRegistry | None = None) -> bool:
    """Collect and export pending metrics and shut the meter provider down.

    See ``shutdown_logger_provider`` for arguments and return value.
    """
    return (registry or get_default_registry()).shutdown(constants.METRICS, timeout)


def shutdown_tracer_provider(timeout: float | None = None, *, registry: ProviderRegistry | None = None) -> bool:
    """Flush pending spans and shut the tracer provider down.

    See ``shutdown_logger_provider`` for arguments and return value.
    """
    return (registry or get_default_registry()).shutdown(constants.TRACE, timeout)


def shutdown_all_providers(timeout: float | None = None, *, registry: ProviderRegistry | None = None) -> bool:
    """Shut down the logger, tracer and meter providers.

    Returns:
        True if every flush succeeded.
    """
    return (registry or get_default_registry()).shutdown_all(timeout)


def tracer_provider(registry: ProviderRegistry | None = None) -> ProxyTracerProvider:
    """Get the proxy tracer provider."""
    return (registry or get_default_registry()).tracer_provider


def meter_provider(registry: ProviderRegistry | None = None) -> ProxyMeterProvider:
    """Get the proxy meter provider."""
    return (registry or get_default_registry()).meter_provider


def logger_provider(registry: ProviderRegistry | None = None) -> ProxyLoggerProvider:
    """Get the proxy logger provider."""
    return (registry or get_default_registry()).logger_provider


def tracer(
    name: str = constants.INSTRUMENTATION_NAME,
    version: str | None = None,
    *,
    registry: ProviderRegistry | None = None,
) -> ProxyTracer:
    """Get a tracer. The default name and version identify myotel itself."""
    if name == constants.INSTRUMENTATION_NAME and version is None:
        version = __version__
    return tracer_provider(registry).get_tracer(name, version)


def meter(
    name: str,
    version: str | None = None,
    *,
    registry: ProviderRegistry | None = None,
) -> ProxyMeter:
    """Get a meter."""
    return meter_provider(registry).get_meter(name, version)


def start_span(
    name: str,
    parent: otel_context.Context | None = None,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Attributes = None,
    links: Sequence[Link] | None = None,
    registry: ProviderRegistry | None = None,
) -> Span:
    """Start a span on the myotel tracer, optionally under ``parent``.

    The span is not made current and must be ended by the caller; pair it with
    ``use_span_context`` to make it current for a block.
    """
    return tracer(registry=registry).start_span(
        name,
        context=parent,
        kind=kind,
        attributes=attributes,
        links=links,
    )
