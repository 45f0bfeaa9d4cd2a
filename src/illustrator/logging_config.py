"""
structlog setup for applications embedding the generation client.

The client modules only call `structlog.get_logger`; an application calls
`setup_structlog(settings)` once at startup to route those events through
stdlib logging with the renderer and level from its GenerationSettings.
"""

import logging
import logging.config

import structlog
from opentelemetry import trace
from structlog.types import EventDict, Processor

from illustrator.config import GenerationSettings

REDACTED_KEYS = ("authorization", "api_key")
QUIET_LOGGERS = ("httpx", "httpcore")


def add_opentelemetry_ids(_, __, event_dict: EventDict) -> EventDict:
    """Adds trace_id and span_id when a span is active."""
    context = trace.get_current_span().get_span_context()
    if context.is_valid:
        event_dict["trace_id"] = trace.format_trace_id(context.trace_id)
        event_dict["span_id"] = trace.format_span_id(context.span_id)
    return event_dict


def redact_api_key(_, __, event_dict: EventDict) -> EventDict:
    for key in REDACTED_KEYS:
        if key in event_dict:
            event_dict[key] = "***"
    return event_dict


def service_info(settings: GenerationSettings) -> Processor:
    """Builds a processor stamping every event with the service and environment."""

    def add_service_info(_, __, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", settings.service_name)
        event_dict.setdefault("env", settings.environment)
        return event_dict

    return add_service_info


def build_processors(settings: GenerationSettings) -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        service_info(settings),
        add_opentelemetry_ids,
        redact_api_key,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def setup_structlog(settings: GenerationSettings) -> None:
    """Configures structlog and the stdlib root logger from the settings."""
    level = settings.log_level.upper()
    shared_processors = build_processors(settings)
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "illustrator": {
                    "()": "structlog.stdlib.ProcessorFormatter",
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                    "foreign_pre_chain": shared_processors,
                },
            },
            "handlers": {
                "console": {
                    "level": level,
                    "class": "logging.StreamHandler",
                    "formatter": "illustrator",
                },
            },
            "root": {"handlers": ["console"], "level": level},
            "loggers": {
                name: {"level": "WARNING", "propagate": True}
                for name in QUIET_LOGGERS
            },
        }
    )

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
