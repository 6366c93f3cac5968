"""Internal implementation details for myotel.

WARNING: This module is internal and should not be imported directly.
All public API is exported from the top-level myotel package.

- main.py: init_otel, shutdown functions and accessors
- config.py: InitConfig and BatchConfig
- registry.py: ProviderRegistry and provider slots
- tracer.py / meter.py / logger.py: proxy providers and SDK pipelines
- log_bridge.py: structlog and logging -> OpenTelemetry bridge
- exporters/: exporter factories (OTLP, console)
- errors.py: InitError taxonomy
- constants.py: attribute keys and defaults
"""

from __future__ import annotations

__all__: list[str] = []
