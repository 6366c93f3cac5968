"""Stdout exporters, used for local development."""

from __future__ import annotations

from typing import TYPE_CHECKING

from opentelemetry.sdk._logs.export import ConsoleLogExporter
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter
from opentelemetry.sdk.trace.export import ConsoleSpanExporter

if TYPE_CHECKING:
    from myotel._internal.config import InitConfig


class ConsoleExporterFactory:
    """Exporter factory writing every signal to stdout."""

    def span_exporter(self, config: InitConfig) -> ConsoleSpanExporter:
        return ConsoleSpanExporter(service_name=config.service_name)

    def metric_exporter(self, config: InitConfig) -> ConsoleMetricExporter:
        return ConsoleMetricExporter()

    def log_exporter(self, config: InitConfig) -> ConsoleLogExporter:
        return ConsoleLogExporter()
