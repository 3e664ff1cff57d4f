"""structlog setup for the Action Center API.

Every entry, ours and stdlib's, goes through one ProcessorFormatter so the
log stream is uniform. Each entry carries:
- ``service`` so the stream can be filtered in a shared aggregator
- ``correlation_id`` of the request being served (asgi-correlation-id)
- a structured traceback when logged with ``exc_info`` (e.g.
  ``action_item_commit_failed``)

JSON in production, ConsoleRenderer when running with ``debug``.
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

from action_center.core.config import Settings

SERVICE_NAME = "action-center"

# Loggers whose INFO output is per-request noise. The webhook redeliverer's
# httpx client logs every POST at INFO.
QUIET_LOGGERS = ("httpx",)


def add_service_name(logger, method, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def add_correlation_id(logger, method, event_dict):
    """Attach the current request's X-Request-ID, when there is one."""
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def resolve_log_level(settings: Settings) -> str:
    if settings.log_level:
        return settings.log_level.upper()
    return "DEBUG" if settings.debug else "INFO"


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Route structlog and stdlib logging through one JSON (or console) handler.

    Call this BEFORE any other action_center imports that create loggers
    (structlog caches the processor chain on first use).
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_name,
        add_correlation_id,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        final_processors = [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        final_processors = [structlog.dev.ConsoleRenderer()]

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    *final_processors,
                ],
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["default"], "level": log_level},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    })

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
