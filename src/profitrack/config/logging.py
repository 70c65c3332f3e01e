"""Structured logging configuration for profitrack."""

import logging
import sys
from typing import Literal

import structlog

from profitrack.config.settings import ProfitrackSettings, get_settings


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
    settings: ProfitrackSettings | None = None,
) -> None:
    """Route structlog events through the stdlib root logger on stderr.

    Stdout is left to command output so JSON reports stay parseable.

    Args:
        level: Log level. Defaults to the settings' log_level.
        format: "json" or "console". Defaults to the settings' log_format.
        settings: Settings to read defaults from. Defaults to get_settings().
    """
    settings = settings or get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level or settings.log_level),
        force=True,
    )

    if (format or settings.log_format) == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=False, exception_formatter=structlog.dev.plain_traceback
        )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
