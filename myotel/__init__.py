"""myotel - best-practice OpenTelemetry bootstrap.

One call at startup wires logs, metrics and traces into OpenTelemetry
exporters; application code then uses structlog, ``logging`` and the
OpenTelemetry API as usual.

Example:
    >>> import myotel
    >>> await myotel.init_otel(myotel.InitConfig(service_name="my-service"))
    >>> myotel.get_logger(__name__).info("order_created", order_id=42)
    >>> counter = myotel.meter("orders").create_counter("orders_total")
    >>> counter.add(1, {"region": "eu"})
    >>> with myotel.tracer().start_as_current_span("checkout"):
    ...     pass
    >>> myotel.shutdown_all_providers()

Configuration:
    The bootstrap can be configured via:
    1. Explicit InitConfig fields
    2. Environment variables through InitConfig.from_environment() (MYOTEL_*, OTEL_*)
    3. Default values, with unset exporter settings resolved by the
       OpenTelemetry SDK from its own OTEL_* variables

    Environment variables:
        MYOTEL_SERVICE_NAME / OTEL_SERVICE_NAME: Service name
        MYOTEL_SERVICE_VERSION / OTEL_SERVICE_VERSION: Service version
        MYOTEL_ENVIRONMENT: Deployment environment
        MYOTEL_OTLP_ENDPOINT / OTEL_EXPORTER_OTLP_ENDPOINT: OTLP endpoint
        MYOTEL_OTLP_PROTOCOL / OTEL_EXPORTER_OTLP_PROTOCOL: OTLP protocol
        MYOTEL_STDOUT_EXPORTER: Export to stdout (true/false)
        MYOTEL_SAMPLE_RATE / OTEL_TRACES_SAMPLER_ARG: Sample rate
        MYOTEL_LOG_LEVEL: Minimum bridged log level
        OTEL_METRIC_EXPORT_INTERVAL / OTEL_METRIC_EXPORT_TIMEOUT: Metric export timing
"""

from myotel._internal.config import BatchConfig, InitConfig
from myotel._internal.errors import (
    AlreadyInitializedError,
    ExporterConstructionError,
    FlushTimeoutError,
    InitError,
    ProviderShutDownError,
)
from myotel._internal.exporters import ConsoleExporterFactory, ExporterFactory, OtlpExporterFactory
from myotel._internal.log_bridge import get_logger
from myotel._internal.main import (
    init_otel,
    logger_provider,
    meter,
    meter_provider,
    shutdown_all_providers,
    shutdown_logger_provider,
    shutdown_meter_provider,
    shutdown_tracer_provider,
    start_span,
    tracer,
    tracer_provider,
)
from myotel._internal.registry import ProviderHandles, ProviderRegistry, SlotState, get_default_registry
from myotel._internal.tracer import use_span_context
from myotel._internal.version import __version__

__all__ = [
    "AlreadyInitializedError",
    "BatchConfig",
    "ConsoleExporterFactory",
    "ExporterConstructionError",
    "ExporterFactory",
    "FlushTimeoutError",
    "InitConfig",
    "InitError",
    "OtlpExporterFactory",
    "ProviderHandles",
    "ProviderRegistry",
    "ProviderShutDownError",
    "SlotState",
    "__version__",
    "get_default_registry",
    "get_logger",
    "init_otel",
    "logger_provider",
    "meter",
    "meter_provider",
    "shutdown_all_providers",
    "shutdown_logger_provider",
    "shutdown_meter_provider",
    "shutdown_tracer_provider",
    "start_span",
    "tracer",
    "tracer_provider",
    "use_span_context",
]
