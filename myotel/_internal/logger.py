"""Proxy LoggerProvider and SDK logs pipeline.

Similar to ProxyTracerProvider, it wraps the SDK LoggerProvider so the
global registration survives init/shutdown cycles:

    ProxyLoggerProvider -> SDK LoggerProvider -> LogRecordProcessor -> LogExporter
                       └-> NoOp when uninitialized or shut down
"""

from __future__ import annotations

from collections.abc import Callable
from threading import Lock
from typing import TYPE_CHECKING, Any
from weakref import WeakKeyDictionary

from opentelemetry._logs import (
    Logger,
    LoggerProvider,
)
from opentelemetry._logs import (
    NoOpLoggerProvider as OTELNoOpLoggerProvider,
)
from opentelemetry.sdk._logs import LoggerProvider as SDKLoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor, SimpleLogRecordProcessor

if TYPE_CHECKING:
    from opentelemetry.sdk._logs.export import LogExporter
    from opentelemetry.sdk.resources import Resource

    from myotel._internal.config import InitConfig


class NoOpLoggerProvider(OTELNoOpLoggerProvider):
    """NoOp LoggerProvider used before init and after shutdown."""

    pass


class ProxyLogger(Logger):
    """Proxy logger that delegates to a real logger.

    Loggers handed out stay valid across provider swaps: the delegate is
    replaced in place when the provider changes.
    """

    def __init__(
        self,
        logger: Logger,
        name: str,
        provider: ProxyLoggerProvider,
        version: str | None = None,
        schema_url: str | None = None,
        attributes: Any = None,
    ) -> None:
        super().__init__(name, version=version, schema_url=schema_url, attributes=attributes)
        self._logger = logger
        self._name = name
        self._provider = provider

    @property
    def name(self) -> str:
        """Get the logger name."""
        return self._name

    @property
    def resource(self) -> Any:
        """Resource of the underlying SDK logger, read by the bridge handler."""
        return getattr(self._logger, "resource", None)

    def set_logger(self, logger: Logger) -> None:
        """Update the underlying logger."""
        self._logger = logger

    def emit(self, record: Any = None, **kwargs: Any) -> None:
        """Emit a log record.

        Accepts a ``LogRecord`` or, as newer ``LoggingHandler`` versions pass
        them, the record fields as keyword arguments.
        """
        if record is None:
            self._logger.emit(**kwargs)
        else:
            self._logger.emit(record, **kwargs)


class ProxyLoggerProvider(LoggerProvider):
    """Proxy LoggerProvider that wraps the real SDK LoggerProvider."""

    def __init__(self, provider: LoggerProvider | None = None) -> None:
        self._provider: LoggerProvider = provider or NoOpLoggerProvider()
        self._lock = Lock()
        self._loggers: WeakKeyDictionary[ProxyLogger, Callable[[], Logger]] = WeakKeyDictionary()
        # The bridge handler asks for a logger on every record
        self._cache: dict[tuple[str, str | None, str | None], ProxyLogger] = {}

    @property
    def provider(self) -> LoggerProvider:
        """Get the underlying provider."""
        return self._provider

    @property
    def is_configured(self) -> bool:
        """Check if a real provider has been set."""
        return not isinstance(self._provider, NoOpLoggerProvider)

    def set_provider(self, provider: LoggerProvider) -> None:
        """Set the underlying LoggerProvider and rebind all existing loggers."""
        with self._lock:
            self._provider = provider
            for proxy_logger, factory in self._loggers.items():
                proxy_logger.set_logger(factory())

    def reset(self) -> LoggerProvider:
        """Detach the underlying provider, falling back to NoOp.

        Returns:
            The provider that was detached.
        """
        previous = self._provider
        self.set_provider(NoOpLoggerProvider())
        return previous

    def get_logger(
        self,
        name: str,
        version: str | None = None,
        schema_url: str | None = None,
        attributes: Any = None,
    ) -> ProxyLogger:
        """Get a ProxyLogger that follows provider swaps."""
        key = (name, version or None, schema_url)
        with self._lock:
            if attributes is None and key in self._cache:
                return self._cache[key]

            def logger_factory() -> Logger:
                return self._provider.get_logger(
                    name,
                    version=version,
                    schema_url=schema_url,
                    attributes=attributes,
                )

            proxy_logger = ProxyLogger(
                logger=logger_factory(),
                name=name,
                provider=self,
                version=version,
                schema_url=schema_url,
                attributes=attributes,
            )
            self._loggers[proxy_logger] = logger_factory
            if attributes is None:
                self._cache[key] = proxy_logger
            return proxy_logger

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        """Force flush all pending log records.

        Returns:
            True if flush succeeded, False otherwise.
        """
        with self._lock:
            if hasattr(self._provider, "force_flush"):
                return self._provider.force_flush(timeout_millis)  # type: ignore[union-attr]
            return True


def build_logger_provider(config: InitConfig, exporter: LogExporter, resource: Resource) -> SDKLoggerProvider:
    """Build the SDK LoggerProvider for ``config``.

    Records are batched when ``config.logs_batch_config`` is set and exported
    synchronously otherwise.
    """
    provider = SDKLoggerProvider(resource=resource)
    if config.logs_batch_config is not None:
        processor = BatchLogRecordProcessor(exporter, **config.logs_batch_config.processor_kwargs())
    else:
        processor = SimpleLogRecordProcessor(exporter)
    provider.add_log_record_processor(processor)
    return provider
