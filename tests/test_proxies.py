"""Tests for the proxy tracer, meter and logger providers.

Tests cover:
- ProxyTracerProvider and ProxyTracer
- ProxyMeterProvider and ProxyMeter
- ProxyLoggerProvider and ProxyLogger
- Provider swaps under concurrent use
"""

from __future__ import annotations

import gc
from threading import Thread
from typing import Any

from opentelemetry._logs import NoOpLogger
from opentelemetry.metrics import CallbackOptions, NoOpCounter, NoOpMeter, Observation
from opentelemetry.sdk._logs import Logger as SDKLogger
from opentelemetry.sdk._logs import LoggerProvider as SDKLoggerProvider
from opentelemetry.sdk.metrics import Counter as SDKCounter
from opentelemetry.sdk.metrics import Meter as SDKMeter
from opentelemetry.sdk.metrics import MeterProvider as SDKMeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import Tracer as SDKTracer
from opentelemetry.sdk.trace import TracerProvider as SDKTracerProvider
from opentelemetry.trace import NoOpTracer, Span

from myotel._internal.logger import NoOpLoggerProvider, ProxyLogger, ProxyLoggerProvider
from myotel._internal.meter import (
    NoOpMeterProvider,
    ProxyCounter,
    ProxyGauge,
    ProxyHistogram,
    ProxyMeter,
    ProxyMeterProvider,
    ProxyObservableGauge,
    ProxyUpDownCounter,
)
from myotel._internal.tracer import NoOpTracerProvider, ProxyTracer, ProxyTracerProvider


class RecordingLogger:
    """Logger delegate remembering how emit was called."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, dict[str, Any]]] = []

    def emit(self, record: Any = None, **kwargs: Any) -> None:
        self.calls.append((record, kwargs))


def _data_points(reader: InMemoryMetricReader, metric_name: str) -> list[Any]:
    metrics_data = reader.get_metrics_data()
    return [
        point
        for resource_metrics in metrics_data.resource_metrics
        for scope_metrics in resource_metrics.scope_metrics
        for metric in scope_metrics.metrics
        if metric.name == metric_name
        for point in metric.data.data_points
    ]


# =============================================================================
# ProxyTracerProvider Tests
# =============================================================================


class TestProxyTracerProvider:
    """Tests for ProxyTracerProvider."""

    def test_initialization_with_noop_provider(self) -> None:
        """Test that proxy starts with NoOpTracerProvider."""
        proxy = ProxyTracerProvider()
        assert isinstance(proxy.provider, NoOpTracerProvider)
        assert not proxy.is_configured

    def test_get_tracer_returns_proxy_tracer(self) -> None:
        proxy = ProxyTracerProvider()
        tracer = proxy.get_tracer("test-module")
        assert isinstance(tracer, ProxyTracer)
        assert tracer.instrumenting_module_name == "test-module"

    def test_set_provider_updates_existing_tracers(self) -> None:
        """Test that setting a provider rebinds tracers handed out before."""
        proxy = ProxyTracerProvider()
        tracer = proxy.get_tracer("test-module")
        assert isinstance(tracer._tracer, NoOpTracer)

        sdk_provider = SDKTracerProvider()
        proxy.set_provider(sdk_provider)

        assert proxy.is_configured
        assert proxy.provider is sdk_provider
        assert isinstance(tracer._tracer, SDKTracer)

    def test_reset_returns_previous_provider(self) -> None:
        """Test that reset detaches the provider and falls back to NoOp."""
        proxy = ProxyTracerProvider()
        tracer = proxy.get_tracer("test-module")
        sdk_provider = SDKTracerProvider()
        proxy.set_provider(sdk_provider)

        assert proxy.reset() is sdk_provider
        assert not proxy.is_configured
        assert isinstance(tracer._tracer, NoOpTracer)

    def test_force_flush(self) -> None:
        """Test force_flush returns True for NoOp provider."""
        assert ProxyTracerProvider().force_flush() is True


class TestProxyTracer:
    """Tests for ProxyTracer."""

    def test_start_span(self) -> None:
        tracer = ProxyTracerProvider().get_tracer("test-module")
        span = tracer.start_span("test-span")
        assert isinstance(span, Span)
        assert not span.is_recording()

    def test_start_as_current_span_with_sdk(self) -> None:
        """Test that spans record once an SDK provider is installed."""
        proxy = ProxyTracerProvider()
        tracer = proxy.get_tracer("test-module")
        proxy.set_provider(SDKTracerProvider())

        with tracer.start_as_current_span("test-span") as span:
            assert span.is_recording()
        assert not span.is_recording()


# =============================================================================
# ProxyMeterProvider Tests
# =============================================================================


class TestProxyMeterProvider:
    """Tests for ProxyMeterProvider."""

    def test_initialization_with_noop_provider(self) -> None:
        proxy = ProxyMeterProvider()
        assert isinstance(proxy.provider, NoOpMeterProvider)
        assert not proxy.is_configured

    def test_get_meter_returns_proxy_meter(self) -> None:
        meter = ProxyMeterProvider().get_meter("test-meter")
        assert isinstance(meter, ProxyMeter)
        assert meter.name == "test-meter"

    def test_set_provider_and_reset(self) -> None:
        """Test that existing meters follow provider swaps."""
        proxy = ProxyMeterProvider()
        meter = proxy.get_meter("test-meter")
        assert isinstance(meter._meter, NoOpMeter)

        sdk_provider = SDKMeterProvider()
        proxy.set_provider(sdk_provider)
        assert isinstance(meter._meter, SDKMeter)

        assert proxy.reset() is sdk_provider
        assert isinstance(meter._meter, NoOpMeter)
        sdk_provider.shutdown()

    def test_instruments_on_noop(self) -> None:
        """Test that every instrument can be created and used before init."""
        meter = ProxyMeterProvider().get_meter("test-meter")
        meter.create_counter("requests").add(1)
        meter.create_up_down_counter("in_flight").add(-1)
        meter.create_histogram("latency", unit="ms").record(12.5)
        meter.create_gauge("temperature").set(21)
        meter.create_observable_counter("cpu", callbacks=[])
        meter.create_observable_up_down_counter("queue", callbacks=[])
        meter.create_observable_gauge("memory", callbacks=[])

    def test_meter_scope(self) -> None:
        meter = ProxyMeterProvider().get_meter("test-meter", version="1.0", schema_url="https://example.com/schema")
        assert meter.version == "1.0"
        assert meter.schema_url == "https://example.com/schema"

    def test_instruments_are_proxies(self) -> None:
        meter = ProxyMeterProvider().get_meter("test-meter")
        assert isinstance(meter.create_counter("requests"), ProxyCounter)
        assert isinstance(meter.create_up_down_counter("in_flight"), ProxyUpDownCounter)
        assert isinstance(meter.create_histogram("latency"), ProxyHistogram)
        assert isinstance(meter.create_gauge("temperature"), ProxyGauge)
        assert isinstance(meter.create_observable_gauge("memory", callbacks=[]), ProxyObservableGauge)

    def test_counter_created_before_provider_records_after_swap(self) -> None:
        """Test that an instrument created on the NoOp meter follows the swap."""
        proxy = ProxyMeterProvider()
        counter = proxy.get_meter("early").create_counter("early_counter")
        assert isinstance(counter._instrument, NoOpCounter)

        reader = InMemoryMetricReader()
        sdk_provider = SDKMeterProvider(metric_readers=[reader])
        proxy.set_provider(sdk_provider)
        assert isinstance(counter._instrument, SDKCounter)

        counter.add(5, {"stage": "after"})
        (point,) = _data_points(reader, "early_counter")
        assert point.value == 5
        assert dict(point.attributes) == {"stage": "after"}

        proxy.reset()
        assert isinstance(counter._instrument, NoOpCounter)
        sdk_provider.shutdown()

    def test_instrument_keeps_its_meter_alive(self) -> None:
        proxy = ProxyMeterProvider()
        counter = proxy.get_meter("chained").create_counter("chained_counter")
        gc.collect()

        reader = InMemoryMetricReader()
        sdk_provider = SDKMeterProvider(metric_readers=[reader])
        proxy.set_provider(sdk_provider)
        counter.add(2)

        assert [point.value for point in _data_points(reader, "chained_counter")] == [2]
        sdk_provider.shutdown()

    def test_observable_callback_survives_swap(self) -> None:
        """Test that callbacks registered before the swap are observed by the new provider."""

        def observe(options: CallbackOptions) -> list[Observation]:
            return [Observation(42)]

        proxy = ProxyMeterProvider()
        proxy.get_meter("early").create_observable_gauge("queue_depth", callbacks=[observe])
        gc.collect()

        reader = InMemoryMetricReader()
        sdk_provider = SDKMeterProvider(metric_readers=[reader])
        proxy.set_provider(sdk_provider)

        assert [point.value for point in _data_points(reader, "queue_depth")] == [42]
        sdk_provider.shutdown()

    def test_force_flush(self) -> None:
        assert ProxyMeterProvider().force_flush() is True


# =============================================================================
# ProxyLoggerProvider Tests
# =============================================================================


class TestProxyLoggerProvider:
    """Tests for ProxyLoggerProvider."""

    def test_initialization_with_noop_provider(self) -> None:
        proxy = ProxyLoggerProvider()
        assert isinstance(proxy.provider, NoOpLoggerProvider)
        assert not proxy.is_configured

    def test_get_logger_is_cached(self) -> None:
        """Test that repeated lookups return the same ProxyLogger."""
        proxy = ProxyLoggerProvider()
        logger = proxy.get_logger("test-logger")
        assert isinstance(logger, ProxyLogger)
        assert logger.name == "test-logger"
        assert proxy.get_logger("test-logger") is logger
        assert proxy.get_logger("test-logger", version="1.0") is not logger

    def test_get_logger_with_attributes_not_cached(self) -> None:
        proxy = ProxyLoggerProvider()
        first = proxy.get_logger("test-logger", attributes={"a": 1})
        assert proxy.get_logger("test-logger", attributes={"a": 1}) is not first

    def test_set_provider_and_reset(self) -> None:
        """Test that loggers follow swaps and expose the SDK resource."""
        proxy = ProxyLoggerProvider()
        logger = proxy.get_logger("test-logger")
        assert isinstance(logger._logger, NoOpLogger)
        assert logger.resource is None

        resource = Resource.create({"service.name": "svc"})
        sdk_provider = SDKLoggerProvider(resource=resource)
        proxy.set_provider(sdk_provider)
        assert isinstance(logger._logger, SDKLogger)
        assert logger.resource.attributes["service.name"] == "svc"

        assert proxy.reset() is sdk_provider
        assert isinstance(logger._logger, NoOpLogger)
        sdk_provider.shutdown()

    def test_emit_accepts_record_or_fields(self) -> None:
        """Test that both LoggingHandler call shapes reach the delegate."""
        delegate = RecordingLogger()
        logger = ProxyLoggerProvider().get_logger("test-logger", version="1.0")
        logger.set_logger(delegate)

        logger.emit("record")
        logger.emit(body="hello", severity_text="INFO")

        assert delegate.calls == [("record", {}), (None, {"body": "hello", "severity_text": "INFO"})]

    def test_force_flush(self) -> None:
        assert ProxyLoggerProvider().force_flush() is True


# =============================================================================
# Concurrency
# =============================================================================


class TestThreadSafety:
    """Thread-safety tests."""

    def test_concurrent_tracer_creation(self) -> None:
        """Test concurrent tracer creation is thread-safe."""
        proxy = ProxyTracerProvider()
        tracers: list[ProxyTracer] = []

        def create_tracers() -> None:
            for i in range(100):
                tracers.append(proxy.get_tracer(f"module-{i}"))

        threads = [Thread(target=create_tracers) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(tracers) == 1000

    def test_concurrent_provider_swap(self) -> None:
        """Test that tracers stay usable while the provider is swapped."""
        proxy = ProxyTracerProvider()
        tracer = proxy.get_tracer("test-module")
        errors: list[BaseException] = []

        def use_tracer() -> None:
            try:
                for _ in range(200):
                    tracer.start_span("span").end()
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        def swap_provider() -> None:
            for _ in range(20):
                proxy.set_provider(SDKTracerProvider())
                proxy.reset()

        threads = [Thread(target=use_tracer) for _ in range(4)] + [Thread(target=swap_provider)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert not proxy.is_configured
