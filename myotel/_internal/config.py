"""Configuration for the myotel bootstrap.

This module handles configuration from multiple sources:
- Environment variables (MYOTEL_*, OTEL_*)
- Programmatic configuration via InitConfig(...) and merge_with()
- Default values

Configuration follows a priority order:
1. Explicit programmatic configuration (highest)
2. Environment variables
3. Default values (lowest)

Settings left as ``None`` are not defaulted here: the OpenTelemetry SDK
resolves them from its own environment variables (for example
``OTEL_METRIC_EXPORT_INTERVAL`` or ``OTEL_EXPORTER_OTLP_ENDPOINT``).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta
from typing import Any, Literal
from uuid import uuid4

from opentelemetry.sdk.resources import Resource

from myotel._internal import constants
from myotel._internal.version import __version__
from myotel.types import ResourceAttributes

OtlpProtocol = Literal["http/protobuf", "grpc"]


def _get_env(
    *keys: str,
    default: str | None = None,
) -> str | None:
    """Get the first non-empty environment variable from the given keys.

    Args:
        *keys: Environment variable names to check in order.
        default: Default value if none found.

    Returns:
        The first non-empty value found, or the default.
    """
    for key in keys:
        value = os.environ.get(key)
        if value:
            return value
    return default


def _get_env_bool(
    *keys: str,
    default: bool = False,
) -> bool:
    """Get a boolean from environment variables.

    Returns:
        True if value is 'true', '1', 'yes'; False otherwise.
    """
    value = _get_env(*keys)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


def _get_env_float(
    *keys: str,
    default: float = 1.0,
) -> float:
    """Get a float from environment variables, falling back to default if invalid."""
    value = _get_env(*keys)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _to_millis(value: timedelta | None) -> int | None:
    """Convert an optional duration to whole milliseconds for the SDK."""
    if value is None:
        return None
    return int(value.total_seconds() * 1000)


def _check_positive(name: str, value: timedelta | None) -> None:
    if value is not None and value <= timedelta(0):
        raise ValueError(f"{name} must be a positive duration, got {value!r}")


def resolve_log_level(level: str | int) -> int:
    """Translate a configured log level to a ``logging`` constant.

    Raises:
        ValueError: If the level is not a known logging level.
    """
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(level.strip().upper())
    if isinstance(resolved, int):
        return resolved

    raise ValueError(f"Invalid log level: {level!r}")


@dataclass(frozen=True)
class BatchConfig:
    """Batch processor settings for logs or traces.

    Any field left as ``None`` falls back to the SDK default, which itself
    honours ``OTEL_BSP_*`` (spans) and ``OTEL_BLRP_*`` (logs).

    Attributes:
        max_queue_size: Maximum number of records buffered before dropping.
        scheduled_delay: Delay between two consecutive exports.
        max_export_batch_size: Maximum number of records per export.
        export_timeout: Maximum time allowed for one export.
    """

    max_queue_size: int | None = None
    scheduled_delay: timedelta | None = None
    max_export_batch_size: int | None = None
    export_timeout: timedelta | None = None

    def __post_init__(self) -> None:
        _check_positive("scheduled_delay", self.scheduled_delay)
        _check_positive("export_timeout", self.export_timeout)
        if self.max_queue_size is not None and self.max_queue_size <= 0:
            raise ValueError("max_queue_size must be positive")
        if self.max_export_batch_size is not None and self.max_export_batch_size <= 0:
            raise ValueError("max_export_batch_size must be positive")

    def processor_kwargs(self) -> dict[str, int]:
        """Keyword arguments for the SDK batch processors, omitting unset values."""
        kwargs: dict[str, int | None] = {
            "max_queue_size": self.max_queue_size,
            "schedule_delay_millis": _to_millis(self.scheduled_delay),
            "max_export_batch_size": self.max_export_batch_size,
            "export_timeout_millis": _to_millis(self.export_timeout),
        }
        return {key: value for key, value in kwargs.items() if value is not None}


@dataclass(frozen=True)
class InitConfig:
    """Configuration consumed by ``init_otel``.

    Attributes:
        service_name: Name of the service for telemetry identification. None
            lets the SDK resolve it from ``OTEL_SERVICE_NAME`` or
            ``OTEL_RESOURCE_ATTRIBUTES``, falling back to "myotel".
        service_version: Version of the service.
        environment: Deployment environment (dev, staging, prod).
        otlp_endpoint: Base OTLP endpoint URL. None lets the SDK read
            ``OTEL_EXPORTER_OTLP_ENDPOINT``.
        otlp_protocol: OTLP transport, "http/protobuf" or "grpc".
        export_interval: Metric export interval. None lets the SDK read
            ``OTEL_METRIC_EXPORT_INTERVAL``.
        export_timeout: Metric export timeout. None lets the SDK read
            ``OTEL_METRIC_EXPORT_TIMEOUT``.
        resource_attributes: Extra resource attributes, in order.
        logs_batch_config: Batch settings for logs; None exports synchronously.
        trace_batch_config: Batch settings for spans; None exports synchronously.
        stdout_exporter: Export to stdout instead of OTLP.
        sample_rate: Trace sampling ratio (0.0 to 1.0).
        log_level: Minimum level bridged from logging into OpenTelemetry.
        configure_logging: Configure structlog and the stdlib root logger.
        shutdown_timeout: Upper bound for each provider flush on shutdown.
    """

    service_name: str | None = None
    service_version: str | None = None
    environment: str | None = None

    # Exporter settings
    otlp_endpoint: str | None = None
    otlp_protocol: OtlpProtocol = "http/protobuf"
    export_interval: timedelta | None = None
    export_timeout: timedelta | None = None

    resource_attributes: ResourceAttributes = ()

    logs_batch_config: BatchConfig | None = None
    trace_batch_config: BatchConfig | None = None
    stdout_exporter: bool = False

    # Sampling
    sample_rate: float = 1.0

    # Logging
    log_level: str = constants.DEFAULT_LOG_LEVEL
    configure_logging: bool = True

    shutdown_timeout: timedelta = constants.DEFAULT_SHUTDOWN_TIMEOUT

    _instance_id: str = field(default_factory=lambda: uuid4().hex, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.service_name is not None and not self.service_name:
            raise ValueError("service_name must not be empty")
        if self.otlp_protocol not in constants.OTLP_PROTOCOLS:
            raise ValueError(f"Unsupported OTLP protocol: {self.otlp_protocol!r}")
        if not 0.0 <= self.sample_rate <= 1.0:
            raise ValueError(f"sample_rate must be between 0.0 and 1.0, got {self.sample_rate}")
        _check_positive("export_interval", self.export_interval)
        _check_positive("export_timeout", self.export_timeout)
        _check_positive("shutdown_timeout", self.shutdown_timeout)
        resolve_log_level(self.log_level)
        # Accept a mapping or any iterable of pairs but store an immutable tuple
        pairs = self.resource_attributes
        if isinstance(pairs, Mapping):
            pairs = pairs.items()
        object.__setattr__(self, "resource_attributes", tuple((str(key), str(value)) for key, value in pairs))

    @classmethod
    def from_environment(cls) -> InitConfig:
        """Create configuration from environment variables.

        Environment variables (in priority order):
            MYOTEL_SERVICE_NAME / OTEL_SERVICE_NAME: Service name
            MYOTEL_SERVICE_VERSION / OTEL_SERVICE_VERSION: Service version
            MYOTEL_ENVIRONMENT: Deployment environment
            MYOTEL_OTLP_ENDPOINT / OTEL_EXPORTER_OTLP_ENDPOINT: OTLP endpoint
            MYOTEL_OTLP_PROTOCOL / OTEL_EXPORTER_OTLP_PROTOCOL: OTLP protocol
            MYOTEL_STDOUT_EXPORTER: Export to stdout (true/false)
            MYOTEL_SAMPLE_RATE / OTEL_TRACES_SAMPLER_ARG: Sample rate
            MYOTEL_LOG_LEVEL: Minimum bridged log level

        Returns:
            A new InitConfig populated from environment variables.
        """
        protocol_raw = _get_env("MYOTEL_OTLP_PROTOCOL", "OTEL_EXPORTER_OTLP_PROTOCOL", default=constants.OTLP_HTTP)
        protocol: OtlpProtocol = "http/protobuf"
        if protocol_raw in constants.OTLP_PROTOCOLS:
            protocol = protocol_raw  # type: ignore[assignment]

        return cls(
            service_name=_get_env("MYOTEL_SERVICE_NAME", "OTEL_SERVICE_NAME"),
            service_version=_get_env("MYOTEL_SERVICE_VERSION", "OTEL_SERVICE_VERSION"),
            environment=_get_env("MYOTEL_ENVIRONMENT"),
            otlp_endpoint=_get_env("MYOTEL_OTLP_ENDPOINT", "OTEL_EXPORTER_OTLP_ENDPOINT"),
            otlp_protocol=protocol,
            stdout_exporter=_get_env_bool("MYOTEL_STDOUT_EXPORTER", default=False),
            sample_rate=_get_env_float("MYOTEL_SAMPLE_RATE", "OTEL_TRACES_SAMPLER_ARG", default=1.0),
            log_level=_get_env("MYOTEL_LOG_LEVEL", default=constants.DEFAULT_LOG_LEVEL) or constants.DEFAULT_LOG_LEVEL,
        )

    def merge_with(self, **overrides: Any) -> InitConfig:
        """Create a new config by merging explicit values with this config.

        Explicit values (non-None) override existing values.

        Raises:
            TypeError: If an override does not name a config field.
        """
        known = {f.name for f in fields(self) if not f.name.startswith("_")}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown InitConfig fields: {', '.join(sorted(unknown))}")
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    @property
    def log_level_value(self) -> int:
        """Numeric ``logging`` level for ``log_level``."""
        return resolve_log_level(self.log_level)

    @property
    def export_interval_millis(self) -> int | None:
        return _to_millis(self.export_interval)

    @property
    def export_timeout_millis(self) -> int | None:
        return _to_millis(self.export_timeout)

    def create_resource(self) -> Resource:
        """Create an OTEL Resource from this configuration.

        Attributes from ``OTEL_RESOURCE_ATTRIBUTES`` are merged underneath;
        configured values take precedence. Without an explicit
        ``service_name`` the SDK resolves it from the environment, and
        "myotel" replaces the SDK's ``unknown_service`` placeholder.

        Returns:
            A Resource with service attributes.
        """
        attributes: dict[str, str | int] = dict(self.resource_attributes)
        attributes.update(
            {
                constants.SERVICE_INSTANCE_ID: self._instance_id,
                constants.TELEMETRY_DISTRO_NAME: constants.INSTRUMENTATION_NAME,
                constants.TELEMETRY_DISTRO_VERSION: __version__,
                constants.PROCESS_PID: os.getpid(),
            }
        )

        if self.service_name:
            attributes[constants.SERVICE_NAME] = self.service_name

        if self.service_version:
            attributes[constants.SERVICE_VERSION] = self.service_version

        if self.environment:
            attributes[constants.DEPLOYMENT_ENVIRONMENT] = self.environment

        resource = Resource.create(attributes)
        service_name = str(resource.attributes.get(constants.SERVICE_NAME, ""))
        if not service_name or service_name.startswith(constants.SDK_DEFAULT_SERVICE_NAME):
            resource = resource.merge(Resource({constants.SERVICE_NAME: constants.DEFAULT_SERVICE_NAME}))
        return resource
