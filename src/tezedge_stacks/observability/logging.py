"""
tezedge_stacks.observability.logging

Structured logging shared by the CLI and the API.

Responsibilities:
- Configure `structlog` on top of stdlib logging (JSON by default, a plain
  console renderer for interactive CLI use).
- Keep per-request chatter from the probe HTTP client out of the log.
- Provide a small wrapper for obtaining bound loggers.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Literal, TextIO

import structlog

LogFormat = Literal["json", "console"]

# Readiness polling issues one request per endpoint per interval.
_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(
    *,
    service_name: str,
    level: str,
    stream: TextIO | None = None,
    log_format: LogFormat = "json",
) -> None:
    """
    Safe to call more than once (the CLI and tests reconfigure per invocation).
    The CLI passes stderr so rendered compose output on stdout stays pipeable.
    """

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer: Any = (
        structlog.dev.ConsoleRenderer(colors=False)
        if log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Request metadata is bound via contextvars in `observability.middleware`; the CLI
# binds `command` and `stack` the same way, so service-layer events carry them too.
