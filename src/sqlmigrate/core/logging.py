"""
Structured logging for sqlmigrate.

Every component logs through structlog with dotted event names
(``migration.applied``, ``sql.exec``) and key-value fields, so a run can be
followed in a terminal during development and shipped as JSON in CI.

Manifesto:
    - **Structured:** Events are names plus fields, never formatted prose
    - **Flexible:** Colored console output on a tty, JSON otherwise
    - **Correlated:** ``LogContext`` binds direction and run metadata once

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="sqlmigrate")
              │
              ▼
        processor chain:
          1. TimeStamper(iso)
          2. merge_contextvars
          3. add_log_level, then the bound logger name
          4. add_service_metadata
          5. JSONRenderer  (or ConsoleRenderer on a tty)

        logger = get_logger(__name__)
        logger.info("migration.applied", migration_id="001_init.sql", direction="up")

Events:
    ============================  =====  ======================================
    Event                         Level  Fields
    ============================  =====  ======================================
    ``migration.plan``            info   direction, steps, catch_up
    ``migration.applied``         info   migration_id, step_direction, catch_up
    ``migration.skipped``         info   migration_id, step_direction, catch_up
    ``migration.failed``          error  migration_id, step_direction, error
    ``migration.rollback_failed`` error  migration_id, error
    ``migration.interrupted``     error  migration_id, step_direction, applied
    ``sql.exec``                  debug  statement, args, elapsed_ms, tx
    ``repository.table_ensured``  debug  table
    ============================  =====  ======================================

Tags:
    logging, structlog, observability, json-logging, sqlmigrate

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "sqlmigrate"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename fields to ECS names for JSON output."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    if "logger_name" in event_dict:
        event_dict["log.logger"] = event_dict.pop("logger_name")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "sqlmigrate",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the process.

    Log output goes to stderr so that command output on stdout (tables,
    JSON) stays machine readable.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). DEBUG turns on
            SQL tracing.
        json_format: True for JSON, False for console, None for auto
            (JSON when stderr is not a tty)
        service: Service name included in every event
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if json_format is None:
        json_format = not sys.stderr.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(_elasticsearch_compatible)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger, usually ``get_logger(__name__)``.

    The name is also bound as ``logger_name``, since ``PrintLogger`` has no
    name of its own. The proxy stays lazy so later ``configure`` calls apply.
    """
    if name:
        return structlog.get_logger(name, logger_name=name)
    return structlog.get_logger()


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(direction="up", table="migrations"):
            executor.execute(Direction.UP)
        # direction and table unbound here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
