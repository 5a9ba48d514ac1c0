"""Structured logging configuration with structlog.

Generated content never reaches log output: values under content-like
keys are replaced by their length before rendering.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Keys that may carry user-supplied or generated content
REDACTED_KEYS = frozenset({"text", "prompt", "lyrics", "content", "audio", "inputs", "words"})

# Client libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "azure.core.pipeline.policies.http_logging_policy")


def get_correlation_id() -> str | None:
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id_var.set(correlation_id)


def add_correlation_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def redact_content(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace content-like values with ``<redacted len=N>``."""
    for key in REDACTED_KEYS.intersection(event_dict):
        value = event_dict[key]
        if isinstance(value, (str, bytes, list, tuple)):
            event_dict[key] = f"<redacted len={len(value)}>"
    return event_dict


class ServiceInfo:
    """Processor stamping the service name and version on every event."""

    def __init__(self, name: str, version: str):
        self.name = name
        self.version = version

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", self.name)
        event_dict.setdefault("version", self.version)
        return event_dict


def build_processors(json_format: bool, service: ServiceInfo) -> list[Processor]:
    """Processor chain shared by every logger in the process."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_id,
        service,
        redact_content,
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "voiceforge",
    service_version: str = "0.1.0",
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: JSON lines when True, coloured console output otherwise.
        service_name: Value of the ``service`` field on every event.
        service_version: Value of the ``version`` field on every event.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=build_processors(json_format, ServiceInfo(service_name, service_version)),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, usually with ``__name__``."""
    return structlog.get_logger(name)


class LogContext:
    """Bind request-scoped values (feature, user id) for the duration of a block."""

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self._context)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self._context)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
