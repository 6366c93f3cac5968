"""Test utilities for myotel.

This module provides an exporter factory that captures spans, metrics and
logs in memory, so code instrumented with myotel can be tested without a
collector.

Example:
    >>> from myotel import InitConfig, ProviderRegistry, init_otel
    >>> from myotel.testing import InMemoryExporterFactory
    >>> exporters = InMemoryExporterFactory()
    >>> registry = ProviderRegistry(bind_global=False)
    >>> await init_otel(InitConfig(), registry=registry, exporter_factory=exporters)
    >>> # Code that creates spans
    >>> assert len(exporters.spans()) == 1
"""

from __future__ import annotations

from threading import Lock
from typing import TYPE_CHECKING, Any

from opentelemetry.sdk._logs.export import InMemoryLogExporter
from opentelemetry.sdk.metrics.export import MetricExporter, MetricExportResult
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

if TYPE_CHECKING:
    from opentelemetry.sdk._logs import LogRecord
    from opentelemetry.sdk.metrics.export import MetricsData
    from opentelemetry.sdk.trace import ReadableSpan

    from myotel._internal.config import InitConfig


class CapturingMetricExporter(MetricExporter):
    """Metric exporter keeping every exported batch in memory."""

    def __init__(self) -> None:
        super().__init__()
        self._lock = Lock()
        self._exports: list[MetricsData] = []

    def export(self, metrics_data: MetricsData, timeout_millis: float = 10_000, **kwargs: Any) -> MetricExportResult:
        with self._lock:
            self._exports.append(metrics_data)
        return MetricExportResult.SUCCESS

    def force_flush(self, timeout_millis: float = 10_000) -> bool:
        return True

    def shutdown(self, timeout_millis: float = 30_000, **kwargs: Any) -> None:
        pass

    @property
    def exports(self) -> list[MetricsData]:
        with self._lock:
            return list(self._exports)

    def clear(self) -> None:
        with self._lock:
            self._exports.clear()


class InMemoryExporterFactory:
    """Exporter factory capturing all telemetry in memory.

    The same exporters are handed out on every call. They stop capturing
    once a provider using them is shut down, so use a fresh factory per
    init/shutdown cycle.
    """

    def __init__(self) -> None:
        self.span_exporter_instance = InMemorySpanExporter()
        self.metric_exporter_instance = CapturingMetricExporter()
        self.log_exporter_instance = InMemoryLogExporter()

    def span_exporter(self, config: InitConfig) -> InMemorySpanExporter:
        return self.span_exporter_instance

    def metric_exporter(self, config: InitConfig) -> CapturingMetricExporter:
        return self.metric_exporter_instance

    def log_exporter(self, config: InitConfig) -> InMemoryLogExporter:
        return self.log_exporter_instance

    def spans(self) -> tuple[ReadableSpan, ...]:
        """Finished spans, in end order."""
        return self.span_exporter_instance.get_finished_spans()

    def logs(self) -> list[LogRecord]:
        """Emitted log records, in emission order."""
        return [log_data.log_record for log_data in self.log_exporter_instance.get_finished_logs()]

    def metrics_exports(self) -> list[MetricsData]:
        """Every metrics batch exported so far."""
        return self.metric_exporter_instance.exports

    def latest_data_points(self, metric_name: str) -> list[Any]:
        """Data points of ``metric_name`` in the most recent export containing it."""
        for metrics_data in reversed(self.metrics_exports()):
            points = [
                point
                for resource_metrics in metrics_data.resource_metrics
                for scope_metrics in resource_metrics.scope_metrics
                for metric in scope_metrics.metrics
                if metric.name == metric_name
                for point in metric.data.data_points
            ]
            if points:
                return points
        return []

    def clear(self) -> None:
        self.span_exporter_instance.clear()
        self.metric_exporter_instance.clear()
        self.log_exporter_instance.clear()


__all__ = [
    "CapturingMetricExporter",
    "InMemoryExporterFactory",
]
