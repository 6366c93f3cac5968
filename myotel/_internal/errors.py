"""Error types raised by the myotel bootstrap.

Initialization errors are raised to the caller of ``init_otel``.
``FlushTimeoutError`` is only ever logged: shutdown always completes.
"""

from __future__ import annotations

from collections.abc import Iterable


class InitError(Exception):
    """Base class for errors raised while initializing telemetry."""


class ExporterConstructionError(InitError):
    """An exporter for one provider kind could not be built.

    Attributes:
        kind: The provider kind that failed ("logs", "metrics" or "trace").
        reason: Human readable description of the failure.
    """

    def __init__(self, kind: str, reason: str) -> None:
        self.kind = kind
        self.reason = reason
        super().__init__(f"Failed to construct {kind} exporter: {reason}")


class AlreadyInitializedError(InitError):
    """``init_otel`` was called while providers are still active."""

    def __init__(self, kinds: Iterable[str]) -> None:
        self.kinds = tuple(kinds)
        super().__init__(
            f"Telemetry providers already initialized: {', '.join(self.kinds)}. "
            "Shut them down before initializing again."
        )


class ProviderShutDownError(InitError):
    """The registry was shut down and cannot be activated again."""

    def __init__(self, kinds: Iterable[str]) -> None:
        self.kinds = tuple(kinds)
        super().__init__(
            f"Telemetry providers already shut down: {', '.join(self.kinds)}. "
            "Use a new ProviderRegistry to initialize again."
        )


class FlushTimeoutError(Exception):
    """Flushing a provider during shutdown failed or did not finish in time."""

    def __init__(self, kind: str, timeout: float) -> None:
        self.kind = kind
        self.timeout = timeout
        super().__init__(f"Flushing {kind} provider did not complete within {timeout:.3f}s")


__all__ = [
    "AlreadyInitializedError",
    "ExporterConstructionError",
    "FlushTimeoutError",
    "InitError",
    "ProviderShutDownError",
]
