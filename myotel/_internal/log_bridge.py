"""Structured logging and the logging -> OpenTelemetry bridge.

Application code logs through structlog (or plain ``logging``). structlog
renders each event into a stdlib ``LogRecord`` whose extra keys become
OpenTelemetry log attributes; the SDK ``LoggingHandler`` attached to the root
logger forwards the record to the proxy LoggerProvider.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from opentelemetry.sdk._logs import LoggingHandler

if TYPE_CHECKING:
    from opentelemetry._logs import LoggerProvider


class _ExcludeOpenTelemetry(logging.Filter):
    """Keep the SDK's own diagnostics out of the export pipeline."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith("opentelemetry")


def configure_structlog(log_level: int = logging.INFO) -> None:
    """Configure structlog to render events as stdlib log records.

    Also configures the standard library root logger: a stdout handler when
    none is present, and the root level, so records at ``log_level`` reach
    the bridge handler.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.render_to_log_kwargs,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    logging.getLogger().setLevel(log_level)


def attach_log_handler(logger_provider: LoggerProvider, log_level: int = logging.NOTSET) -> LoggingHandler:
    """Attach a LoggingHandler bound to ``logger_provider`` to the root logger.

    Returns:
        The attached handler, to be passed to ``detach_log_handler`` later.
    """
    handler = LoggingHandler(level=log_level, logger_provider=logger_provider)
    handler.addFilter(_ExcludeOpenTelemetry())
    logging.getLogger().addHandler(handler)
    return handler


def detach_log_handler(handler: LoggingHandler) -> None:
    """Remove a handler installed by ``attach_log_handler``."""
    logging.getLogger().removeHandler(handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger.

    Args:
        name: Logger name (optional, defaults to the calling module).

    Returns:
        Configured structlog logger instance.
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name)
