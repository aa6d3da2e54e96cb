"""Structured logging configuration using structlog.

Every record, whether emitted through structlog or through the standard
library (uvicorn, aiohttp), is rendered by the same processor chain so the
server writes one consistent stream. Request-scoped values such as the
correlation ID travel through structlog contextvars.
"""

import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.types import EventDict, Processor

APP_NAME = "flashcard-api"

# Loggers that install their own handlers; route them through ours instead.
FOREIGN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "aiohttp.client")


class AppContext:
    """Processor stamping the app, service and environment onto each entry."""

    def __init__(self, service_name: Optional[str] = None, environment: Optional[str] = None):
        self.static = {"app": APP_NAME}
        if service_name:
            self.static["service"] = service_name
        if environment:
            self.static["environment"] = environment

    def __call__(self, logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in self.static.items():
            event_dict.setdefault(key, value)
        return event_dict


def shared_processors(
    service_name: Optional[str] = None,
    environment: Optional[str] = None,
) -> List[Processor]:
    """Processors applied to structlog and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        AppContext(service_name, environment),
    ]


def select_renderer(json_logs: bool) -> Processor:
    """JSON for machines, console colours for humans.

    Japanese text is written as-is rather than as ``\\u`` escapes.
    """
    if json_logs:
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    service_name: Optional[str] = None,
    environment: Optional[str] = None,
) -> None:
    """Configure structured logging for the process.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output logs in JSON format
        service_name: Name of the service for log tagging
        environment: Deployment environment for log tagging
    """
    pre_chain = shared_processors(service_name, environment)

    structlog.configure(
        processors=pre_chain + [
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=select_renderer(json_logs),
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, log_level.upper()))

    for name in FOREIGN_LOGGERS:
        foreign = logging.getLogger(name)
        foreign.handlers = []
        foreign.propagate = True


def bind_context(**kwargs: Any) -> None:
    """Bind values to every log entry emitted in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove previously bound context values."""
    structlog.contextvars.unbind_contextvars(*keys)
