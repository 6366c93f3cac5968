"""Attribute keys and default values used by myotel.

Attribute keys follow the OpenTelemetry semantic conventions.
"""

from __future__ import annotations

from datetime import timedelta

# OTEL Semantic Convention resource attributes
SERVICE_NAME = "service.name"
SERVICE_VERSION = "service.version"
SERVICE_INSTANCE_ID = "service.instance.id"
DEPLOYMENT_ENVIRONMENT = "deployment.environment.name"
TELEMETRY_DISTRO_NAME = "telemetry.distro.name"
TELEMETRY_DISTRO_VERSION = "telemetry.distro.version"
PROCESS_PID = "process.pid"

# Provider kinds, in initialization order
LOGS = "logs"
METRICS = "metrics"
TRACE = "trace"
PROVIDER_KINDS = (LOGS, TRACE, METRICS)

# Defaults
DEFAULT_SERVICE_NAME = "myotel"
# Placeholder the SDK uses when no service name is configured
SDK_DEFAULT_SERVICE_NAME = "unknown_service"
DEFAULT_SHUTDOWN_TIMEOUT = timedelta(seconds=5)
DEFAULT_LOG_LEVEL = "INFO"
INSTRUMENTATION_NAME = "myotel"

# OTLP
OTLP_HTTP = "http/protobuf"
OTLP_GRPC = "grpc"
OTLP_PROTOCOLS = (OTLP_HTTP, OTLP_GRPC)
OTLP_HTTP_PATHS = {
    LOGS: "/v1/logs",
    METRICS: "/v1/metrics",
    TRACE: "/v1/traces",
}

__all__ = [
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_SERVICE_NAME",
    "DEFAULT_SHUTDOWN_TIMEOUT",
    "DEPLOYMENT_ENVIRONMENT",
    "INSTRUMENTATION_NAME",
    "LOGS",
    "METRICS",
    "OTLP_GRPC",
    "OTLP_HTTP",
    "OTLP_HTTP_PATHS",
    "OTLP_PROTOCOLS",
    "PROCESS_PID",
    "PROVIDER_KINDS",
    "SERVICE_INSTANCE_ID",
    "SERVICE_NAME",
    "SDK_DEFAULT_SERVICE_NAME",
    "SERVICE_VERSION",
    "TELEMETRY_DISTRO_NAME",
    "TELEMETRY_DISTRO_VERSION",
    "TRACE",
]
