"""Provider registry: lifecycle of the three provider slots.

Each provider kind (logs, metrics, trace) lives in a ``ProviderSlot`` with
the lifecycle::

    Uninitialized -> Active -> ShutDown

``ShutDown`` is terminal for a slot. A ``ProviderRegistry`` groups the three
slots, builds and installs providers atomically, and is injectable so tests
can run init/shutdown cycles in isolation. Registries bound to the global
proxies (the default) are what the OpenTelemetry API and the logging bridge
see; only one of them can be active per provider kind at a time.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from threading import Lock, Thread
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import _logs as otel_logs
from opentelemetry import metrics as otel_metrics
from opentelemetry import trace as otel_trace

from myotel._internal import constants
from myotel._internal.errors import (
    AlreadyInitializedError,
    ExporterConstructionError,
    FlushTimeoutError,
    InitError,
    ProviderShutDownError,
)
from myotel._internal.log_bridge import attach_log_handler, configure_structlog, detach_log_handler
from myotel._internal.logger import ProxyLoggerProvider, build_logger_provider
from myotel._internal.meter import ProxyMeterProvider, build_meter_provider
from myotel._internal.tracer import ProxyTracerProvider, build_tracer_provider

if TYPE_CHECKING:
    from opentelemetry.sdk._logs import LoggerProvider as SDKLoggerProvider
    from opentelemetry.sdk.metrics import MeterProvider as SDKMeterProvider
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider as SDKTracerProvider

    from myotel._internal.config import InitConfig
    from myotel._internal.exporters import ExporterFactory


logger = structlog.get_logger(__name__)


class SlotState(str, Enum):
    """Lifecycle state of one provider slot."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    SHUT_DOWN = "shut_down"


@dataclass(frozen=True)
class ProviderHandles:
    """The SDK providers installed by one ``init_otel`` call."""

    tracer_provider: SDKTracerProvider
    meter_provider: SDKMeterProvider
    logger_provider: SDKLoggerProvider
    resource: Resource


class ProviderSlot:
    """Holds the active SDK provider for one provider kind.

    The slot drives a proxy provider: installing swaps the SDK provider into
    the proxy, releasing swaps the proxy back to NoOp.
    """

    def __init__(self, kind: str, proxy: Any) -> None:
        self.kind = kind
        self.proxy = proxy
        self._lock = Lock()
        self._state = SlotState.UNINITIALIZED
        self._provider: Any = None
        self._on_release: Callable[[], None] | None = None
        self._shutdown_timeout = constants.DEFAULT_SHUTDOWN_TIMEOUT.total_seconds()

    @property
    def state(self) -> SlotState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SlotState.ACTIVE

    @property
    def provider(self) -> Any:
        """The installed SDK provider, or None when not active."""
        return self._provider

    @property
    def shutdown_timeout(self) -> float:
        """Flush timeout in seconds recorded when the provider was installed."""
        return self._shutdown_timeout

    def install(
        self,
        provider: Any,
        shutdown_timeout: float,
        on_release: Callable[[], None] | None = None,
    ) -> None:
        """Install ``provider`` and mark the slot active.

        Raises:
            AlreadyInitializedError: If the slot, or the proxy it drives, is
                already serving a provider.
            ProviderShutDownError: If the slot was shut down.
        """
        with self._lock:
            if self._state is SlotState.ACTIVE or self.proxy.is_configured:
                raise AlreadyInitializedError([self.kind])
            if self._state is SlotState.SHUT_DOWN:
                raise ProviderShutDownError([self.kind])
            self.proxy.set_provider(provider)
            self._provider = provider
            self._on_release = on_release
            self._shutdown_timeout = shutdown_timeout
            self._state = SlotState.ACTIVE

    def release(self) -> Any:
        """Clear the slot and mark it shut down.

        Returns:
            The SDK provider that was active, or None if the slot was not active.
        """
        with self._lock:
            if self._state is not SlotState.ACTIVE:
                return None
            provider = self._provider
            if self._on_release is not None:
                self._on_release()
            self.proxy.reset()
            self._provider = None
            self._on_release = None
            self._state = SlotState.SHUT_DOWN
            return provider

    def rollback(self) -> None:
        """Undo an ``install`` that is part of a failed activation.

        The slot returns to ``UNINITIALIZED`` so the registry can be activated
        again; the provider itself is shut down by the caller.
        """
        with self._lock:
            if self._state is not SlotState.ACTIVE:
                return
            if self._on_release is not None:
                self._on_release()
            self.proxy.reset()
            self._provider = None
            self._on_release = None
            self._state = SlotState.UNINITIALIZED


def flush_and_shutdown(kind: str, provider: Any, timeout: float) -> bool:
    """Flush and shut ``provider`` down, waiting at most ``timeout`` seconds.

    The work runs in a daemon thread so an unreachable exporter cannot block
    the caller past the timeout. Failures are logged, never raised.

    Returns:
        True if the flush completed and succeeded, False otherwise.
    """
    outcome: dict[str, Any] = {"flushed": False, "error": None}

    def _worker() -> None:
        try:
            outcome["flushed"] = provider.force_flush(int(timeout * 1000)) is not False
            provider.shutdown()
        except Exception as exc:  # noqa: BLE001
            outcome["error"] = exc

    worker = Thread(target=_worker, name=f"myotel-shutdown-{kind}", daemon=True)
    worker.start()
    worker.join(timeout)

    if worker.is_alive() or not outcome["flushed"] or outcome["error"] is not None:
        error = FlushTimeoutError(kind, timeout)
        logger.warning(
            "provider_flush_failed",
            kind=kind,
            timeout=timeout,
            error=str(error),
            cause=repr(outcome["error"]) if outcome["error"] is not None else None,
        )
        return False

    logger.debug("provider_shut_down", kind=kind)
    return True


_global_lock = Lock()
_global_proxies: tuple[ProxyTracerProvider, ProxyMeterProvider, ProxyLoggerProvider] | None = None


def get_global_proxies() -> tuple[ProxyTracerProvider, ProxyMeterProvider, ProxyLoggerProvider]:
    """Get the process-wide proxy providers, registering them on first use.

    The OpenTelemetry API accepts a global provider only once per process;
    if another library set one first, the proxies still work through
    myotel's accessors and a warning is logged.
    """
    global _global_proxies
    with _global_lock:
        if _global_proxies is None:
            tracer_provider = ProxyTracerProvider()
            meter_provider = ProxyMeterProvider()
            logger_provider = ProxyLoggerProvider()

            otel_trace.set_tracer_provider(tracer_provider)
            otel_metrics.set_meter_provider(meter_provider)
            otel_logs.set_logger_provider(logger_provider)

            registered = {
                constants.TRACE: otel_trace.get_tracer_provider() is tracer_provider,
                constants.METRICS: otel_metrics.get_meter_provider() is meter_provider,
                constants.LOGS: otel_logs.get_logger_provider() is logger_provider,
            }
            for kind, ok in registered.items():
                if not ok:
                    logger.warning("global_provider_already_set", kind=kind)

            _global_proxies = (tracer_provider, meter_provider, logger_provider)
        return _global_proxies


class ProviderRegistry:
    """The three provider slots of one bootstrap, guarded by a registry lock.

    Args:
        bind_global: Drive the process-wide proxies registered with the
            OpenTelemetry API. When False the registry owns private proxies,
            which is what isolated tests want.
    """

    def __init__(self, *, bind_global: bool = True) -> None:
        if bind_global:
            tracer_proxy, meter_proxy, logger_proxy = get_global_proxies()
        else:
            tracer_proxy, meter_proxy, logger_proxy = (
                ProxyTracerProvider(),
                ProxyMeterProvider(),
                ProxyLoggerProvider(),
            )
        self.bind_global = bind_global
        self._lock = Lock()
        self._slots: dict[str, ProviderSlot] = {
            constants.LOGS: ProviderSlot(constants.LOGS, logger_proxy),
            constants.TRACE: ProviderSlot(constants.TRACE, tracer_proxy),
            constants.METRICS: ProviderSlot(constants.METRICS, meter_proxy),
        }

    def slot(self, kind: str) -> ProviderSlot:
        """Get the slot for ``kind`` ("logs", "metrics" or "trace")."""
        try:
            return self._slots[kind]
        except KeyError:
            raise ValueError(f"Unknown provider kind: {kind!r}") from None

    @property
    def tracer_provider(self) -> ProxyTracerProvider:
        return self._slots[constants.TRACE].proxy

    @property
    def meter_provider(self) -> ProxyMeterProvider:
        return self._slots[constants.METRICS].proxy

    @property
    def logger_provider(self) -> ProxyLoggerProvider:
        return self._slots[constants.LOGS].proxy

    def states(self) -> dict[str, SlotState]:
        """Current state of every slot, keyed by provider kind."""
        return {kind: slot.state for kind, slot in self._slots.items()}

    @property
    def is_active(self) -> bool:
        """True if any provider kind is active."""
        return any(slot.is_active for slot in self._slots.values())

    def activate(self, config: InitConfig, exporter_factory: ExporterFactory) -> ProviderHandles:
        """Build all three providers and install them.

        Either every slot is installed or none is: providers are built first,
        and on any failure the ones already built are shut down.

        Raises:
            AlreadyInitializedError: If a slot is already active.
            ProviderShutDownError: If the registry was shut down.
            ExporterConstructionError: If an exporter could not be built.
        """
        with self._lock:
            self._check_can_activate()
            handles = self._build(config, exporter_factory)
            self._install(config, handles)
        logger.info(
            "otel_initialized",
            service_name=handles.resource.attributes.get(constants.SERVICE_NAME),
            service_version=config.service_version,
            exporter=type(exporter_factory).__name__,
        )
        return handles

    def _check_can_activate(self) -> None:
        active = [kind for kind, slot in self._slots.items() if slot.is_active or slot.proxy.is_configured]
        if active:
            raise AlreadyInitializedError(active)
        shut_down = [kind for kind, slot in self._slots.items() if slot.state is SlotState.SHUT_DOWN]
        if shut_down:
            raise ProviderShutDownError(shut_down)

    def _build(self, config: InitConfig, exporter_factory: ExporterFactory) -> ProviderHandles:
        resource = config.create_resource()
        builders = {
            constants.LOGS: (exporter_factory.log_exporter, build_logger_provider),
            constants.TRACE: (exporter_factory.span_exporter, build_tracer_provider),
            constants.METRICS: (exporter_factory.metric_exporter, build_meter_provider),
        }
        built: dict[str, Any] = {}
        try:
            for kind, (make_exporter, build_provider) in builders.items():
                try:
                    exporter = make_exporter(config)
                except InitError:
                    raise
                except Exception as exc:
                    raise ExporterConstructionError(kind, str(exc) or type(exc).__name__) from exc
                built[kind] = build_provider(config, exporter, resource)
        except Exception:
            for provider in built.values():
                provider.shutdown()
            raise

        return ProviderHandles(
            tracer_provider=built[constants.TRACE],
            meter_provider=built[constants.METRICS],
            logger_provider=built[constants.LOGS],
            resource=resource,
        )

    def _install(self, config: InitConfig, handles: ProviderHandles) -> None:
        timeout = config.shutdown_timeout.total_seconds()
        providers = {
            constants.LOGS: handles.logger_provider,
            constants.TRACE: handles.tracer_provider,
            constants.METRICS: handles.meter_provider,
        }
        installed: list[ProviderSlot] = []
        try:
            for kind, provider in providers.items():
                slot = self._slots[kind]
                on_release = None
                if kind == constants.LOGS:
                    on_release = self._attach_logging(config, slot)
                try:
                    slot.install(provider, timeout, on_release=on_release)
                except InitError:
                    if on_release is not None:
                        on_release()
                    raise
                installed.append(slot)
        except InitError:
            # Another registry grabbed a global proxy in the meantime
            for slot in installed:
                slot.rollback()
            for provider in providers.values():
                provider.shutdown()
            raise

    def _attach_logging(self, config: InitConfig, slot: ProviderSlot) -> Callable[[], None]:
        if config.configure_logging:
            configure_structlog(config.log_level_value)
        handler = attach_log_handler(slot.proxy, config.log_level_value)
        return lambda: detach_log_handler(handler)

    def shutdown(self, kind: str, timeout: float | None = None) -> bool:
        """Flush and shut down one provider kind.

        The slot is cleared before flushing, so local cleanup happens even if
        the exporter is unreachable.

        Returns:
            True if the flush succeeded or there was nothing to shut down.
        """
        slot = self.slot(kind)
        effective_timeout = slot.shutdown_timeout if timeout is None else timeout
        provider = slot.release()
        if provider is None:
            return True
        return flush_and_shutdown(kind, provider, effective_timeout)

    def shutdown_all(self, timeout: float | None = None) -> bool:
        """Shut down every provider kind. Returns True if all flushes succeeded."""
        results = [self.shutdown(kind, timeout) for kind in constants.PROVIDER_KINDS]
        return all(results)


_default_registry: ProviderRegistry | None = None
_default_registry_lock = Lock()


def get_default_registry() -> ProviderRegistry:
    """Get the process-wide registry used when none is passed explicitly."""
    global _default_registry
    with _default_registry_lock:
        if _default_registry is None:
            _default_registry = ProviderRegistry()
        return _default_registry


def set_default_registry(registry: ProviderRegistry) -> ProviderRegistry | None:
    """Replace the process-wide registry.

    Returns:
        The previous default registry, if one was created.
    """
    global _default_registry
    with _default_registry_lock:
        previous = _default_registry
        _default_registry = registry
        return previous
