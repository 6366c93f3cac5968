"""Context propagation and baggage utilities.

Use these to carry trace context and baggage across service boundaries
(HTTP headers, message queues, etc.) and between tasks.

Example:
    >>> from myotel.propagate import inject_context, extract_context
    >>> headers = inject_context({})  # Add trace context to headers
    >>> # Send request with headers
    >>> context = extract_context(incoming_headers)  # Extract on receiver
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, MutableMapping

from opentelemetry import baggage, propagate
from opentelemetry import context as otel_context
from opentelemetry import trace as otel_trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.trace import Span
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from myotel._internal.main import start_span
from myotel._internal.registry import ProviderRegistry


def install_propagator() -> None:
    """Set the global propagator to W3C trace context plus W3C baggage."""
    propagate.set_global_textmap(
        CompositePropagator(
            [
                TraceContextTextMapPropagator(),
                W3CBaggagePropagator(),
            ]
        )
    )


def inject_context(
    carrier: MutableMapping[str, str],
    context: otel_context.Context | None = None,
) -> MutableMapping[str, str]:
    """Write trace context and baggage into ``carrier``.

    Returns:
        The same carrier, for chaining.
    """
    propagate.inject(carrier, context=context)
    return carrier


def extract_context(carrier: Mapping[str, str]) -> otel_context.Context:
    """Read trace context and baggage from ``carrier``."""
    return propagate.extract(carrier)


def create_context(
    span_name: str = "root_operation",
    baggage_items: Mapping[str, str] | None = None,
    *,
    registry: ProviderRegistry | None = None,
) -> otel_context.Context:
    """Start a span and return a context holding it and ``baggage_items``.

    The span is parented to the current span, if any; the returned context
    derives from the current context.

    The span is left open; end it with
    ``opentelemetry.trace.get_current_span(context).end()``.
    """
    span = start_span(span_name, registry=registry)
    context = otel_trace.set_span_in_context(span)
    for key, value in (baggage_items or {}).items():
        context = baggage.set_baggage(key, value, context=context)
    return context


def create_child_span(
    parent_context: otel_context.Context,
    operation_name: str,
    *,
    registry: ProviderRegistry | None = None,
) -> tuple[Span, otel_context.Context]:
    """Start a child span of the span in ``parent_context``.

    Returns:
        The child span and a context holding it. Baggage from
        ``parent_context`` is carried over.
    """
    child_span = start_span(operation_name, parent=parent_context, registry=registry)
    child_context = otel_trace.set_span_in_context(child_span, parent_context)
    return child_span, child_context


def extract_baggage(
    context: otel_context.Context | None = None,
    keys: Iterable[str] | None = None,
) -> dict[str, str]:
    """Get baggage entries from ``context`` as strings.

    Args:
        context: Context to read. Defaults to the current context.
        keys: Only return these keys. Defaults to every entry.
    """
    entries = baggage.get_all(context)
    if keys is not None:
        wanted = set(keys)
        entries = {key: value for key, value in entries.items() if key in wanted}
    return {key: str(value) for key, value in entries.items()}


def update_baggage(context: otel_context.Context, key: str, value: str) -> otel_context.Context:
    """Return a copy of ``context`` with baggage ``key`` set to ``value``."""
    return baggage.set_baggage(key, value, context=context)


def update_span_attribute(span: Span, key: str, value: str) -> None:
    span.set_attribute(key, value)


__all__ = [
    "create_child_span",
    "create_context",
    "extract_baggage",
    "extract_context",
    "inject_context",
    "install_propagator",
    "update_baggage",
    "update_span_attribute",
]
