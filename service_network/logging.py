"""Structured logging for topology synthesis.

Three sinks, picked from ``Settings``:

- ``engine`` (default): events are rendered as key=value lines and handed to
  the Pulumi engine log, so they show up as diagnostics under ``pulumi up``
  / ``pulumi preview`` next to the resources being planned.
- ``console``: structlog's colorized console output, for running the
  builders outside a Pulumi program (scripts, tests, a REPL).
- JSON through Python's standard logging whenever
  ``SERVICE_NETWORK_APP_MODE=production``, for CI log collection.
"""

from __future__ import annotations

import logging
import sys
from functools import lru_cache
from typing import TYPE_CHECKING

import pulumi
import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "silent": logging.CRITICAL,
}


class PulumiEngineLogger:
    """structlog logger that writes rendered events to the Pulumi engine log.

    Outside a running program ``pulumi.log`` falls back to stderr.
    """

    def debug(self, message: str) -> None:
        pulumi.log.debug(message)

    def info(self, message: str) -> None:
        pulumi.log.info(message)

    def warning(self, message: str) -> None:
        pulumi.log.warn(message)

    def error(self, message: str) -> None:
        pulumi.log.error(message)

    msg = info
    warn = warning
    critical = fatal = exception = error


class PulumiEngineLoggerFactory:
    def __call__(self, *args: object) -> PulumiEngineLogger:
        return PulumiEngineLogger()


def _get_production_processors() -> list[structlog.types.Processor]:
    """Processors for CI runs: everything ends up in stdlib logging as JSON."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]


def _get_engine_processors() -> list[structlog.types.Processor]:
    # The engine adds its own severity and timestamps
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.format_exc_info,
        structlog.processors.KeyValueRenderer(key_order=["event", "service"], drop_missing=True),
    ]


def _get_console_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ]


def _configure_stdlib_logging(log_level: int) -> None:
    """Send stdlib logging (and structlog through it) to stdout as JSON."""
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        # Records from third-party stdlib loggers get the same fields
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    # A CI runner may already have attached its own handler
    if not any(isinstance(h, logging.StreamHandler) for h in root_logger.handlers):
        root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


@lru_cache(maxsize=1)
def _configure_logging(*, is_production: bool, sink: str, level: str) -> None:
    """Configure structlog once per process.

    Args:
        is_production: JSON through stdlib logging, regardless of ``sink``.
        sink: ``engine`` or ``console``.
        level: One of debug, info, warning, error, silent.
    """
    min_level = _LEVELS.get(level.lower(), logging.INFO)

    if is_production:
        _configure_stdlib_logging(min_level)
        structlog.configure(
            processors=_get_production_processors(),
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        return

    if sink.lower() == "console":
        processors = _get_console_processors()
        logger_factory = structlog.PrintLoggerFactory()
    else:
        processors = _get_engine_processors()
        logger_factory = PulumiEngineLoggerFactory()

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=True,
    )


def configure_logging() -> None:
    """Apply logging configuration from ``Settings``."""
    from service_network.settings import get_settings

    settings = get_settings()
    _configure_logging(is_production=settings.is_production, sink=settings.log_sink, level=settings.log_level)


def get_logger(name: str) -> FilteringBoundLogger:
    """Get a logger bound to a module/component name.

    Example:
        >>> log = get_logger("service_network.components.traffic_control")
        >>> log.info("subnets_planned", zones=3)
    """
    configure_logging()
    return structlog.get_logger(service=name)
