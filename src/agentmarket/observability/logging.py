"""structlog configuration for the marketplace.

Every event carries the request's correlation id when one is bound, and any
``headers`` mapping attached to an event is redacted before rendering, so
webhook credentials never reach the log stream.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any, Mapping, Optional, TextIO

import structlog

_correlation_id: ContextVar[Optional[str]] = ContextVar("marketplace_correlation_id", default=None)

# Header names whose values never reach the logs
SENSITIVE_HEADERS = frozenset({"authorization", "x-api-key", "api-key", "proxy-authorization"})

REDACTED = "***"


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of ``headers`` that is safe to log.

    Example:
        >>> redact_headers({"Authorization": "Bearer abc", "Accept": "*/*"})
        {'Authorization': '***', 'Accept': '*/*'}
    """
    return {
        key: REDACTED if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def inject_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor adding the bound correlation id."""
    correlation_id = _correlation_id.get()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def redact_event_headers(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor masking credentials in a ``headers`` field."""
    headers = event_dict.get("headers")
    if isinstance(headers, Mapping):
        event_dict["headers"] = redact_headers(headers)
    return event_dict


def _renderers(json_logs: bool) -> list[Any]:
    if json_logs:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.processors.ExceptionPrettyPrinter(), structlog.dev.ConsoleRenderer()]


def setup_logging(
    log_level: str = "INFO", json_logs: bool = True, stream: Optional[TextIO] = None
) -> None:
    """Route structlog through stdlib logging.

    Args:
        log_level: Level name such as ``INFO`` or ``DEBUG``
        json_logs: JSON lines for production; human-readable console output otherwise
        stream: Destination of the stdlib handler, stdout when None

    Example:
        >>> setup_logging(log_level="DEBUG", json_logs=False)
        >>> get_logger(__name__).info("marketplace_started", storage="memory")
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        inject_correlation_id,
        redact_event_headers,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=processors + _renderers(json_logs),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation id to the current context."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()
