"""
Structured logging for fleet services.

:func:`configure_logging` is called once by the application factory; every
module then takes a logger from :func:`get_logger` and logs event names
with bound fields::

    logger.info("session_superseded", session_id=old.id, network_id=old.network_id)

Fields bound with :class:`LogContext` (the HTTP layer binds ``request_id``)
are merged into every event logged inside the block.  JSON output uses ECS
key names (``@timestamp``, ``log.level``) so it can be shipped as is.

Tags:
    logging, structlog, observability, fleet-core
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "fleet-core"


def _add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _ecs_keys(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for src, dst in (("timestamp", "@timestamp"), ("level", "log.level")):
        if src in event_dict:
            event_dict[dst] = event_dict.pop(src)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "fleet-core",
) -> None:
    """Install the structlog processor chain.

    Args:
        level: Minimum level name, e.g. ``"DEBUG"``.
        json_format: JSON lines when True, coloured console when False;
            when None, JSON unless stdout is a terminal.
        service: Value of the ``service.name`` field.
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service
    numeric_level = getattr(logging, level.upper())

    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service,
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            _ecs_keys,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # uvicorn and other stdlib loggers share the stream
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


class LogContext:
    """Bind fields for the duration of a ``with`` or ``async with`` block.

    Example:
        async with LogContext(request_id="abc123"):
            logger.info("heartbeat_received")
    """

    def __init__(self, **fields: Any):
        self._fields = fields

    def __enter__(self) -> LogContext:
        structlog.contextvars.bind_contextvars(**self._fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self._fields)

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


__all__ = ["configure_logging", "get_logger", "LogContext"]
