"""OTLP exporters over HTTP/protobuf or gRPC."""

from __future__ import annotations

from typing import TYPE_CHECKING

from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter as GrpcLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter as GrpcMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as GrpcSpanExporter
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter as HttpLogExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter as HttpMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as HttpSpanExporter

from myotel._internal import constants
from myotel._internal.exporters.base import signal_endpoint

if TYPE_CHECKING:
    from opentelemetry.sdk._logs.export import LogExporter
    from opentelemetry.sdk.metrics.export import MetricExporter
    from opentelemetry.sdk.trace.export import SpanExporter

    from myotel._internal.config import InitConfig


class OtlpExporterFactory:
    """Exporter factory sending every signal to an OTLP collector.

    The transport is picked from ``InitConfig.otlp_protocol``. Connections are
    opened lazily by the exporters on first export.
    """

    def span_exporter(self, config: InitConfig) -> SpanExporter:
        endpoint = signal_endpoint(constants.TRACE, config)
        if config.otlp_protocol == constants.OTLP_GRPC:
            return GrpcSpanExporter(endpoint=endpoint)
        return HttpSpanExporter(endpoint=endpoint)

    def metric_exporter(self, config: InitConfig) -> MetricExporter:
        endpoint = signal_endpoint(constants.METRICS, config)
        if config.otlp_protocol == constants.OTLP_GRPC:
            return GrpcMetricExporter(endpoint=endpoint)
        return HttpMetricExporter(endpoint=endpoint)

    def log_exporter(self, config: InitConfig) -> LogExporter:
        endpoint = signal_endpoint(constants.LOGS, config)
        if config.otlp_protocol == constants.OTLP_GRPC:
            return GrpcLogExporter(endpoint=endpoint)
        return HttpLogExporter(endpoint=endpoint)
