"""Structured logging configuration for Mail Relay."""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor


# Event keys whose values must never reach the log output
SECRET_KEYS = frozenset({
    "api_key",
    "x_api_key",
    "password",
    "email_password",
    "authorization",
})
REDACTED = "[REDACTED]"

# Loggers of the libraries the relay drives, kept quiet below WARNING
QUIET_LOGGERS = ("aiosmtplib", "httpx", "uvicorn", "uvicorn.error")


def add_log_level(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add upper-cased log level to event dict."""
    if method_name == "warn":
        method_name = "warning"
    event_dict["level"] = method_name.upper()
    return event_dict


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace credential values (SMTP password, API key) with a placeholder."""
    for key in event_dict.keys() & SECRET_KEYS:
        event_dict[key] = REDACTED
    return event_dict


def build_processors(log_format: str = "json") -> list[Processor]:
    """Return the structlog processor chain ending in the chosen renderer.

    Args:
        log_format: ``json`` for one JSON object per line, anything else for
            the human-readable console renderer
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structured logging for the relay.

    Request handlers bind ``request_id`` and ``client_ip`` through
    ``structlog.contextvars``; every event logged while serving a request
    carries them.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format (json or console)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=build_processors(log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
