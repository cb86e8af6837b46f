"""
hl7spine logging - structured logging for the inbound message pipeline.

Every module logs through ``get_logger(__name__)`` with event-style messages
and key/value fields::

    logger.info("queue_entry.archived", queue_id=12, source="remote-lab")

Configuration Flow:
    ::

        configure_logging(level="INFO", json_format=None, service="hl7spine")
            ↓
        structlog processor chain:
          1. TimeStamper (iso)
          2. merge_contextvars      ← LogContext / bind_context
          3. add_log_level / add_logger_name
          4. add_service_metadata
          5. JSONRenderer (non-tty) or ConsoleRenderer (tty)

Tags:
    logging, structlog, observability, json-logging, hl7spine
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "hl7spine"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "hl7spine",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stderr.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        # Resolved per call: CLI commands keep stdout for their own output
        logger_factory=lambda *args: structlog.PrintLogger(sys.stderr),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(queue_id=entry.id, source=entry.source_name):
            logger.info("queue_entry.claimed")
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())


@contextmanager
def log_step(event: str, logger: Any = None, **fields: Any) -> Iterator[dict[str, Any]]:
    """Log ``<event>.start`` at debug and ``<event>.end`` with ``duration_ms``.

    The yielded dict collects extra fields for the end event. On error an
    ``<event>.error`` entry is logged and the exception propagates.
    """
    log = logger or get_logger(__name__)
    metrics: dict[str, Any] = {}
    started = time.perf_counter()
    log.debug(f"{event}.start", **fields)
    try:
        yield metrics
    except Exception as e:
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        log.warning(
            f"{event}.error",
            duration_ms=duration_ms,
            error_type=type(e).__name__,
            **fields,
        )
        raise
    duration_ms = round((time.perf_counter() - started) * 1000, 2)
    log.info(f"{event}.end", duration_ms=duration_ms, **fields, **metrics)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "LogContext",
    "log_step",
]
