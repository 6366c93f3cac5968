"""Proxy TracerProvider and SDK tracer pipeline.

The OpenTelemetry API only lets a process set its global TracerProvider
once. myotel installs a proxy there instead, and swaps the real SDK
provider in and out of the proxy on init and shutdown:

    ProxyTracerProvider -> SDK TracerProvider -> SpanProcessor -> SpanExporter
                       └-> NoOp when uninitialized or shut down
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from threading import Lock
from typing import TYPE_CHECKING
from weakref import WeakKeyDictionary

from opentelemetry import context as otel_context
from opentelemetry import trace as otel_trace
from opentelemetry.sdk.trace import TracerProvider as SDKTracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBasedTraceIdRatio
from opentelemetry.trace import (
    Link,
    Span,
    SpanKind,
    Tracer,
    TracerProvider,
)
from opentelemetry.trace import (
    NoOpTracerProvider as OTELNoOpTracerProvider,
)
from opentelemetry.util.types import Attributes

if TYPE_CHECKING:
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace.export import SpanExporter

    from myotel._internal.config import InitConfig


class NoOpTracerProvider(OTELNoOpTracerProvider):
    """NoOp TracerProvider used before init and after shutdown."""

    pass


class ProxyTracer(Tracer):
    """Tracer handed to callers; forwards to whatever the provider currently holds."""

    def __init__(
        self,
        tracer: Tracer,
        instrumenting_module_name: str,
        provider: ProxyTracerProvider,
    ) -> None:
        self._tracer = tracer
        self._instrumenting_module_name = instrumenting_module_name
        self._provider = provider

    @property
    def instrumenting_module_name(self) -> str:
        """Get the instrumenting module name."""
        return self._instrumenting_module_name

    def set_tracer(self, tracer: Tracer) -> None:
        """Update the underlying tracer."""
        self._tracer = tracer

    def start_span(
        self,
        name: str,
        context: otel_context.Context | None = None,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: Attributes = None,
        links: Sequence[Link] | None = None,
        start_time: int | None = None,
        record_exception: bool = True,
        set_status_on_exception: bool = True,
    ) -> Span:
        return self._tracer.start_span(
            name=name,
            context=context,
            kind=kind,
            attributes=attributes,
            links=links,
            start_time=start_time,
            record_exception=record_exception,
            set_status_on_exception=set_status_on_exception,
        )

    @contextmanager
    def start_as_current_span(
        self,
        name: str,
        context: otel_context.Context | None = None,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: Attributes = None,
        links: Sequence[Link] | None = None,
        start_time: int | None = None,
        record_exception: bool = True,
        set_status_on_exception: bool = True,
        end_on_exit: bool = True,
    ) -> Iterator[Span]:
        with self._tracer.start_as_current_span(
            name=name,
            context=context,
            kind=kind,
            attributes=attributes,
            links=links,
            start_time=start_time,
            record_exception=record_exception,
            set_status_on_exception=set_status_on_exception,
            end_on_exit=end_on_exit,
        ) as span:
            yield span


class ProxyTracerProvider(TracerProvider):
    """TracerProvider registered globally once, fronting the SDK provider of the moment.

    Tracers are tracked weakly together with a factory, so each one is rebuilt
    against the new provider on every swap.
    """

    def __init__(self, provider: TracerProvider | None = None) -> None:
        self._provider: TracerProvider = provider or NoOpTracerProvider()
        self._lock = Lock()
        # Values are factory functions to recreate tracers after provider swap
        self._tracers: WeakKeyDictionary[ProxyTracer, Callable[[], Tracer]] = WeakKeyDictionary()

    @property
    def provider(self) -> TracerProvider:
        """Get the underlying provider."""
        return self._provider

    @property
    def is_configured(self) -> bool:
        """Check if a real provider has been set."""
        return not isinstance(self._provider, NoOpTracerProvider)

    def set_provider(self, provider: TracerProvider) -> None:
        """Set the underlying TracerProvider and rebind all existing tracers."""
        with self._lock:
            self._provider = provider
            for proxy_tracer, factory in self._tracers.items():
                proxy_tracer.set_tracer(factory())

    def reset(self) -> TracerProvider:
        """Detach the underlying provider, falling back to NoOp.

        Returns:
            The provider that was detached.
        """
        previous = self._provider
        self.set_provider(NoOpTracerProvider())
        return previous

    def get_tracer(
        self,
        instrumenting_module_name: str,
        instrumenting_library_version: str | None = None,
        schema_url: str | None = None,
        attributes: Attributes = None,
    ) -> ProxyTracer:
        """Get a ProxyTracer that follows provider swaps."""
        with self._lock:

            def tracer_factory() -> Tracer:
                return self._provider.get_tracer(
                    instrumenting_module_name,
                    instrumenting_library_version,
                    schema_url,
                    attributes,
                )

            proxy_tracer = ProxyTracer(
                tracer=tracer_factory(),
                instrumenting_module_name=instrumenting_module_name,
                provider=self,
            )
            self._tracers[proxy_tracer] = tracer_factory
            return proxy_tracer

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        """Force flush all pending spans.

        Returns:
            True if flush succeeded, False otherwise.
        """
        with self._lock:
            if hasattr(self._provider, "force_flush"):
                return self._provider.force_flush(timeout_millis)  # type: ignore[union-attr]
            return True


def build_tracer_provider(config: InitConfig, exporter: SpanExporter, resource: Resource) -> SDKTracerProvider:
    """Build the SDK TracerProvider for ``config``.

    Spans are batched when ``config.trace_batch_config`` is set and exported
    synchronously otherwise.
    """
    provider = SDKTracerProvider(
        sampler=ParentBasedTraceIdRatio(config.sample_rate),
        resource=resource,
    )
    if config.trace_batch_config is not None:
        processor = BatchSpanProcessor(exporter, **config.trace_batch_config.processor_kwargs())
    else:
        processor = SimpleSpanProcessor(exporter)
    provider.add_span_processor(processor)
    return provider


@contextmanager
def use_span_context(span: Span, end_on_exit: bool = False) -> Iterator[Span]:
    """Make ``span`` the current span for the enclosed block.

    Works across ``await`` points since OpenTelemetry context is backed by
    ``contextvars``.
    """
    with otel_trace.use_span(span, end_on_exit=end_on_exit) as current:
        yield current
