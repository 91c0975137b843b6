"""Logging configuration."""

import logging
import sys
from typing import Any

import structlog

from healthdb.config import Settings, get_settings


def _app_context(settings: Settings) -> structlog.types.Processor:
    """Processor stamping every event with the application name and environment."""

    def add_app_context(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("app", settings.app_name)
        event_dict.setdefault("environment", settings.environment)
        return event_dict

    return add_app_context


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure structured logging for the store, the analytics service and scripts.

    Events go to stderr so that report output on stdout stays machine readable.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper())

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _app_context(settings),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    # Production always logs JSON
    if settings.log_format == "json" or settings.is_production:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    # SQL statements only with DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )
