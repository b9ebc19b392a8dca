"""Structured logging with structlog.

Stdlib logging is routed through structlog so uvicorn's own records and our
event logs share one format: JSON in production, console output otherwise.
"""

import logging
import sys

import structlog
from structlog.types import EventDict, WrappedLogger


def add_service_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    event_dict["service"] = "thecrew-api"
    return event_dict


def configure_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """Configure stdlib logging and structlog.

    Args:
        log_level: Minimum level to output (DEBUG, INFO, WARNING, ERROR).
        json_format: Emit JSON lines instead of the coloured console renderer.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_service_info,
        structlog.processors.format_exc_info,
    ]
    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structured logger for ``name``, usually the calling module's ``__name__``."""
    return structlog.get_logger(name)
