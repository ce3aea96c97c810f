"""Structured logging for hydration events.

Events are uppercased, capped at ``MAX_EVENT_LENGTH`` characters and tagged
with a ``LogIcon``. Request context (``request_id``, ``method``, ``path``) is
bound through ``structlog.contextvars`` and merged into every event logged
while a request is being hydrated.
"""

import logging
from dataclasses import dataclass, field
from enum import StrEnum

import orjson
import structlog
from beartype import beartype

from hydrator.core.settings import settings

MAX_EVENT_LENGTH = 80
CONTEXT_KEYS = ("request_id", "method", "path")


class LoggerError(Exception):
    """Exception for logger related issues."""


class LogLevel(StrEnum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogIcon(StrEnum):
    """Icons per hydration stage."""

    DEFAULT = "📋"
    ERROR = "❌"
    WARNING = "⚠️"
    COMPLETE = "✨"

    # Decoders
    QUERY = "🔍"
    JSON = "📝"
    FORM = "🧾"
    UPLOAD = "📤"


@dataclass
class LoggerConfig:
    """Logger configuration; defaults come from settings."""

    debug: bool = field(default_factory=lambda: settings.DEBUG)
    log_level: LogLevel = field(default_factory=lambda: LogLevel(settings.log_level))


class EventFormatter:
    """
    Normalize the event text of every log call.

    - The event is uppercased and cut to ``MAX_EVENT_LENGTH`` characters.
    - The ``icon`` kwarg must be a ``LogIcon`` member and is consumed.
    - In debug mode the icon is prefixed to the event.
    """

    def __init__(self, debug: bool) -> None:
        self.debug = debug

    @beartype
    def __call__(self, logger, name: str, event_dict: dict) -> dict:
        try:
            icon = LogIcon(event_dict.pop("icon", LogIcon.DEFAULT))
        except ValueError as err:
            raise LoggerError("Wrong Icon chosen, please choose a valid LogIcon enum member") from err

        event = str(event_dict.get("event", ""))[:MAX_EVENT_LENGTH].upper()
        event_dict["event"] = f"{icon.value} {event}" if self.debug else event
        return event_dict


def render_dev_line(logger, name: str, event_dict: dict) -> str:
    """Render ``timestamp | LEVEL | EVENT | context | kwargs | file:line``."""
    fields = dict(event_dict)
    timestamp = fields.pop("timestamp", "")
    level = str(fields.pop("level", LogLevel.INFO.value)).upper()
    event = fields.pop("event", "")
    filename = fields.pop("filename", "")
    lineno = fields.pop("lineno", "")

    context = " ".join(f"{key}={fields.pop(key)}" for key in CONTEXT_KEYS if key in fields)
    extra = " | ".join(f"{key}={value}" for key, value in fields.items())
    location = f"{filename}:{lineno}" if filename else ""

    return " | ".join(filter(None, [timestamp, level, event, context, extra, location]))


def build_processors(config: LoggerConfig) -> list:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
            additional_ignores=["logger"],
        ),
        EventFormatter(debug=config.debug),
    ]
    if config.debug:
        return [*processors, render_dev_line]
    return [
        *processors,
        structlog.processors.dict_tracebacks,
        structlog.processors.JSONRenderer(serializer=orjson.dumps),
    ]


def setup_logging(config: LoggerConfig) -> None:
    """Configure structlog: readable lines on stdout in debug mode, JSON bytes otherwise."""
    structlog.configure(
        processors=build_processors(config),
        logger_factory=structlog.PrintLoggerFactory() if config.debug else structlog.BytesLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelNamesMapping()[config.log_level.value]),
        cache_logger_on_first_use=True,
    )


_default_config = LoggerConfig()
setup_logging(_default_config)

logger = structlog.get_logger()
