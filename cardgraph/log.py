"""Structlog configuration for cardgraph.

Colored console output when attached to a terminal (or FORCE_COLOR is
set), JSON lines otherwise. Modules obtain loggers with get_logger() and
log snake_case events with keyword fields:

    logger = get_logger(__name__)
    logger.info("features_filtered", significant=4, excluded=7)

Importing this module installs a WARNING-level stderr default when
structlog has not been configured yet; call configure_logging() to change
level or format.
"""

from __future__ import annotations

import logging
import os
import sys

import structlog


def _stderr_logger(*args):
    # sys.stderr looked up per call, not at configure time
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(level: str = "INFO", fmt: str = "auto") -> None:
    """Configure structlog processors and the minimum log level.

    Args:
        level: Standard level name (DEBUG, INFO, WARNING, ERROR).
        fmt: "console", "json", or "auto" (console in a TTY or when
            FORCE_COLOR is truthy, JSON otherwise).

    Raises:
        ValueError: If ``level`` or ``fmt`` is not recognized.
    """
    min_level = logging.getLevelName(level.upper())
    if not isinstance(min_level, int):
        raise ValueError(f"Unknown log level: {level!r}")
    if fmt not in ("auto", "console", "json"):
        raise ValueError(f"Unknown log format: {fmt!r}")

    if fmt == "auto":
        force_color = os.environ.get("FORCE_COLOR", "").lower() in ("1", "true", "yes")
        use_console = force_color or sys.stderr.isatty()
    else:
        use_console = fmt == "console"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if use_console:
        processors: list[structlog.types.Processor] = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    # Logs go to stderr so CLI output on stdout stays machine-readable.
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None):
    """Return a structlog logger bound to the calling module's name."""
    if name:
        return structlog.get_logger(module=name)
    return structlog.get_logger()


def configure_default_logging() -> bool:
    """Route cardgraph logs to stderr at WARNING unless structlog is already set up.

    Runs on import so library callers that never call configure_logging()
    do not get info events on stdout. An application that configures
    structlog first, or calls configure_logging() later, takes precedence.

    Returns:
        True if this call installed the default configuration.
    """
    if structlog.is_configured():
        return False
    configure_logging("WARNING", "auto")
    return True


configure_default_logging()
