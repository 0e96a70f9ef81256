"""
Logging Configuration

Structured logging setup using structlog so scoring runs emit parseable events.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from config.settings import settings

SERVICE_NAME = "compliance_engine"


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add application context to all log entries.
    """
    event_dict["environment"] = settings.environment
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> structlog.BoundLogger:
    """
    Configure structured logging for the application.

    Args:
        log_level: Overrides ``settings.log_level`` when given
        log_format: ``"json"`` or ``"console"``; overrides ``settings.log_format``

    Returns:
        Configured structlog logger instance
    """
    level_name = (log_level or settings.log_level).upper()
    output_format = log_format or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]

    if output_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.processors.ExceptionRenderer())
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger(SERVICE_NAME)


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def bind_run_context(**values: Any) -> None:
    """Bind values (e.g. ``run_id``, ``evaluated_at``) to every event logged in this context."""
    structlog.contextvars.bind_contextvars(**values)


def clear_run_context() -> None:
    """Drop values bound with :func:`bind_run_context`."""
    structlog.contextvars.clear_contextvars()
