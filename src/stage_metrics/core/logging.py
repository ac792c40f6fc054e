"""Structured logging setup via structlog."""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import Any, TextIO

import structlog

REDACTED = "***"

# Event keys that may carry collector credentials.
SECRET_KEYS = frozenset({"password", "auth", "authorization"})


def redact_secrets(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def build_processors(*, json_output: bool = False) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def setup_logging(
    *, json_output: bool = False, level: str = "INFO", stream: TextIO | None = None
) -> None:
    """Route structlog and stdlib logging to *stream* (stderr by default).

    stdout stays free for the CLI's JSON payload output.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    stream = stream or sys.stderr
    structlog.configure(
        processors=build_processors(json_output=json_output),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=numeric_level, stream=stream)
