"""Structured logging setup.

Modules get their logger with ``structlog.get_logger("fouille.<module>")``
and log events with key/value context. The CLI calls ``configure_logging``
once at startup; logs go to stderr so they never mix with command output
such as ``--format json``.
"""

import logging
import sys

import structlog
from structlog.stdlib import LoggerFactory, add_logger_name


def configure_logging(log_level: str = "WARNING", log_format: str = "console") -> None:
    """Configure structlog for the process.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR (case-insensitive).
        log_format: "console" for humans, "json" for machines.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_logger_name,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )
