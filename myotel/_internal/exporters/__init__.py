"""Exporter factories for myotel.

This package contains the exporters wired into each provider:
- OTLP exporter over HTTP/protobuf or gRPC (default)
- Console exporter (for local development)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from myotel._internal.exporters.base import ExporterFactory, signal_endpoint, validate_endpoint
from myotel._internal.exporters.console import ConsoleExporterFactory
from myotel._internal.exporters.otlp import OtlpExporterFactory

if TYPE_CHECKING:
    from myotel._internal.config import InitConfig


def default_exporter_factory(config: InitConfig) -> ExporterFactory:
    """Pick the exporter factory matching ``config.stdout_exporter``."""
    if config.stdout_exporter:
        return ConsoleExporterFactory()
    return OtlpExporterFactory()


__all__ = [
    "ConsoleExporterFactory",
    "ExporterFactory",
    "OtlpExporterFactory",
    "default_exporter_factory",
    "signal_endpoint",
    "validate_endpoint",
]
