"""Shared fixtures for myotel tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from myotel._internal.registry import ProviderRegistry, set_default_registry
from myotel.testing import InMemoryExporterFactory


@pytest.fixture
def exporters() -> InMemoryExporterFactory:
    """Exporter factory capturing telemetry in memory."""
    return InMemoryExporterFactory()


@pytest.fixture
def registry() -> Iterator[ProviderRegistry]:
    """Registry with private proxies, isolated from the OpenTelemetry globals."""
    registry = ProviderRegistry(bind_global=False)
    yield registry
    registry.shutdown_all(timeout=1.0)


@pytest.fixture
def global_registry() -> Iterator[ProviderRegistry]:
    """Fresh registry bound to the global proxies, installed as the default."""
    registry = ProviderRegistry()
    previous = set_default_registry(registry)
    yield registry
    registry.shutdown_all(timeout=1.0)
    if previous is not None:
        set_default_registry(previous)
