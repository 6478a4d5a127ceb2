"""
Structured logging setup for StreamAtlas.

Configures structlog for JSON-formatted structured logging across all
services. Every log line includes timestamp, level, service name, and
event. Per-session context (session_key, mode) is bound at processing time.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def _add_service(service: str) -> Any:
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def configure_logging(service: str, level: str = "INFO", *, json_output: bool = True) -> None:
    """Install the structlog processor chain for *service*.

    Args:
        service: Service name stamped on every log line.
        level: Minimum level name (``DEBUG`` ... ``CRITICAL``).
        json_output: Render JSON lines; otherwise use the console renderer.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service(service),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
