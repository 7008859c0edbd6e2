"""
structlog setup for opshealth.

Engine modules call ``structlog.get_logger()`` directly; this module decides
how their events are rendered. Deployed instances write one JSON object per
line to stdout, local runs and tests get the console renderer. Every event
carries the service name, an upper-case severity and the request id bound by
the HTTP middleware.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from opshealth.config import Settings, get_settings

SERVICE_NAME = "opshealth"


def stamp_service(_: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag an event with the service name and its severity."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict["severity"] = method_name.upper()
    return event_dict


def shared_processors() -> list[Processor]:
    """Processor chain run before rendering, in order."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        stamp_service,
    ]


def select_renderer(settings: Settings) -> Processor:
    # dev_mode wins over log_format so local runs stay readable
    if settings.log_format == "json" and not settings.dev_mode:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=not settings.testing)


def resolve_level(name: str) -> int:
    """Map a level name such as "info" to its stdlib value, INFO if unknown."""
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Route structlog through stdlib logging on stdout at the configured level."""
    settings = settings or get_settings()
    level = resolve_level(settings.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)

    structlog.configure(
        processors=[*shared_processors(), select_renderer(settings)],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = SERVICE_NAME) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
