"""Proxy MeterProvider and SDK metrics pipeline.

Similar to ProxyTracerProvider, the proxy is what gets registered in the
OpenTelemetry global API; the SDK MeterProvider behind it is swapped on
init and shutdown:

    ProxyMeterProvider -> SDK MeterProvider -> PeriodicExportingMetricReader -> MetricExporter
                      └-> NoOp when uninitialized or shut down

Instruments are proxies too: a counter created at import time, before
``init_otel``, records into whichever provider is installed when it is used.
"""

from __future__ import annotations

from collections.abc import Callable
from threading import Lock
from typing import TYPE_CHECKING, Any
from weakref import WeakKeyDictionary

from opentelemetry.metrics import (
    Counter,
    Histogram,
    Meter,
    MeterProvider,
    ObservableCounter,
    ObservableGauge,
    ObservableUpDownCounter,
    UpDownCounter,
)
from opentelemetry.metrics import (
    NoOpMeterProvider as OTELNoOpMeterProvider,
)
from opentelemetry.sdk.metrics import MeterProvider as SDKMeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader

if TYPE_CHECKING:
    from opentelemetry.sdk.metrics.export import MetricExporter
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.util.types import Attributes

    from myotel._internal.config import InitConfig


class NoOpMeterProvider(OTELNoOpMeterProvider):
    """NoOp MeterProvider used before init and after shutdown."""

    pass


# =============================================================================
# Proxy instruments
# =============================================================================


class _ProxyInstrument:
    """Holds the instrument currently backing a proxy.

    The proxy keeps its meter alive, since the provider only tracks meters
    weakly and the meter is what rebinds the instrument.
    """

    def __init__(self, instrument: Any, meter: ProxyMeter) -> None:
        self._instrument = instrument
        self._proxy_meter = meter

    def set_instrument(self, instrument: Any) -> None:
        self._instrument = instrument


class ProxyCounter(_ProxyInstrument, Counter):
    def add(self, amount: int | float, attributes: Attributes | None = None, **kwargs: Any) -> None:
        self._instrument.add(amount, attributes, **kwargs)


class ProxyUpDownCounter(_ProxyInstrument, UpDownCounter):
    def add(self, amount: int | float, attributes: Attributes | None = None, **kwargs: Any) -> None:
        self._instrument.add(amount, attributes, **kwargs)


class ProxyHistogram(_ProxyInstrument, Histogram):
    def record(self, amount: int | float, attributes: Attributes | None = None, **kwargs: Any) -> None:
        self._instrument.record(amount, attributes, **kwargs)


class ProxyGauge(_ProxyInstrument):
    def set(self, amount: int | float, attributes: Attributes | None = None, **kwargs: Any) -> None:
        self._instrument.set(amount, attributes, **kwargs)


class ProxyObservableCounter(_ProxyInstrument, ObservableCounter):
    pass


class ProxyObservableUpDownCounter(_ProxyInstrument, ObservableUpDownCounter):
    pass


class ProxyObservableGauge(_ProxyInstrument, ObservableGauge):
    pass


class ProxyMeter(Meter):
    """Proxy meter handing out proxy instruments.

    Each instrument is tracked weakly with a factory, so it is recreated on
    the new meter (callbacks included) whenever the provider is swapped.
    Observable instruments are held strongly: their callbacks must keep
    running even when the caller drops the returned instrument.
    """

    def __init__(
        self,
        meter: Meter,
        name: str,
        provider: ProxyMeterProvider,
        version: str | None = None,
        schema_url: str | None = None,
    ) -> None:
        super().__init__(name, version=version, schema_url=schema_url)
        self._meter = meter
        self._provider = provider
        self._lock = Lock()
        self._instruments: WeakKeyDictionary[_ProxyInstrument, Callable[[Meter], Any]] = WeakKeyDictionary()
        self._observables: list[_ProxyInstrument] = []

    def set_meter(self, meter: Meter) -> None:
        """Update the underlying meter and rebind all existing instruments."""
        with self._lock:
            self._meter = meter
            for proxy_instrument, factory in self._instruments.items():
                proxy_instrument.set_instrument(factory(meter))

    def _track(
        self,
        proxy_cls: type[_ProxyInstrument],
        factory: Callable[[Meter], Any],
        observable: bool = False,
    ) -> Any:
        with self._lock:
            proxy_instrument = proxy_cls(factory(self._meter), self)
            self._instruments[proxy_instrument] = factory
            if observable:
                self._observables.append(proxy_instrument)
        if observable:
            self._provider.retain(self)
        return proxy_instrument

    def create_counter(self, name: str, unit: str = "", description: str = "") -> ProxyCounter:
        return self._track(
            ProxyCounter,
            lambda meter: meter.create_counter(name, unit=unit, description=description),
        )

    def create_up_down_counter(self, name: str, unit: str = "", description: str = "") -> ProxyUpDownCounter:
        return self._track(
            ProxyUpDownCounter,
            lambda meter: meter.create_up_down_counter(name, unit=unit, description=description),
        )

    def create_histogram(self, name: str, unit: str = "", description: str = "", **kwargs: Any) -> ProxyHistogram:
        return self._track(
            ProxyHistogram,
            lambda meter: meter.create_histogram(name, unit=unit, description=description, **kwargs),
        )

    def create_gauge(self, name: str, unit: str = "", description: str = "") -> ProxyGauge:
        return self._track(
            ProxyGauge,
            lambda meter: meter.create_gauge(name, unit=unit, description=description),
        )

    def create_observable_counter(
        self,
        name: str,
        callbacks: Any = None,
        unit: str = "",
        description: str = "",
    ) -> ProxyObservableCounter:
        return self._track(
            ProxyObservableCounter,
            lambda meter: meter.create_observable_counter(
                name, callbacks=callbacks, unit=unit, description=description
            ),
            observable=True,
        )

    def create_observable_up_down_counter(
        self,
        name: str,
        callbacks: Any = None,
        unit: str = "",
        description: str = "",
    ) -> ProxyObservableUpDownCounter:
        return self._track(
            ProxyObservableUpDownCounter,
            lambda meter: meter.create_observable_up_down_counter(
                name, callbacks=callbacks, unit=unit, description=description
            ),
            observable=True,
        )

    def create_observable_gauge(
        self,
        name: str,
        callbacks: Any = None,
        unit: str = "",
        description: str = "",
    ) -> ProxyObservableGauge:
        return self._track(
            ProxyObservableGauge,
            lambda meter: meter.create_observable_gauge(
                name, callbacks=callbacks, unit=unit, description=description
            ),
            observable=True,
        )


class ProxyMeterProvider(MeterProvider):
    """Proxy MeterProvider that wraps the real SDK MeterProvider."""

    def __init__(self, provider: MeterProvider | None = None) -> None:
        self._provider: MeterProvider = provider or NoOpMeterProvider()
        self._lock = Lock()
        self._meters: WeakKeyDictionary[ProxyMeter, Callable[[], Meter]] = WeakKeyDictionary()
        self._retained: set[ProxyMeter] = set()

    @property
    def provider(self) -> MeterProvider:
        """Get the underlying provider."""
        return self._provider

    @property
    def is_configured(self) -> bool:
        """Check if a real provider has been set."""
        return not isinstance(self._provider, NoOpMeterProvider)

    def set_provider(self, provider: MeterProvider) -> None:
        """Set the underlying MeterProvider and rebind all existing meters."""
        with self._lock:
            self._provider = provider
            for proxy_meter, factory in self._meters.items():
                proxy_meter.set_meter(factory())

    def retain(self, meter: ProxyMeter) -> None:
        """Keep a meter owning observable instruments alive for the process."""
        with self._lock:
            self._retained.add(meter)

    def reset(self) -> MeterProvider:
        """Detach the underlying provider, falling back to NoOp.

        Returns:
            The provider that was detached.
        """
        previous = self._provider
        self.set_provider(NoOpMeterProvider())
        return previous

    def get_meter(
        self,
        name: str,
        version: str | None = None,
        schema_url: str | None = None,
        attributes: Attributes | None = None,
    ) -> ProxyMeter:
        """Get a ProxyMeter that follows provider swaps."""
        with self._lock:

            def meter_factory() -> Meter:
                return self._provider.get_meter(name, version, schema_url, attributes)

            proxy_meter = ProxyMeter(
                meter=meter_factory(),
                name=name,
                provider=self,
                version=version,
                schema_url=schema_url,
            )
            self._meters[proxy_meter] = meter_factory
            return proxy_meter

    def force_flush(self, timeout_millis: float = 30000) -> bool:
        """Force flush all pending metrics.

        Returns:
            True if flush succeeded, False otherwise.
        """
        with self._lock:
            if hasattr(self._provider, "force_flush"):
                return self._provider.force_flush(timeout_millis)  # type: ignore[union-attr]
            return True


def build_meter_provider(config: InitConfig, exporter: MetricExporter, resource: Resource) -> SDKMeterProvider:
    """Build the SDK MeterProvider for ``config``.

    Unset export interval/timeout are resolved by the reader from
    ``OTEL_METRIC_EXPORT_INTERVAL`` and ``OTEL_METRIC_EXPORT_TIMEOUT``.
    """
    reader = PeriodicExportingMetricReader(
        exporter,
        export_interval_millis=config.export_interval_millis,
        export_timeout_millis=config.export_timeout_millis,
    )
    return SDKMeterProvider(metric_readers=[reader], resource=resource)
