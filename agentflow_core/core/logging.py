"""
Standardized Logging Configuration

Structured logging for the agentflow core and CLI. JSON output for
production, human-readable console output for development.
"""

import logging
import sys
from typing import Any, Optional, Union

import structlog

from agentflow_core.config import LogFormat, get_settings


def _renderer(fmt: LogFormat) -> Any:
    if fmt == LogFormat.JSON:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: Optional[str] = None,
    fmt: Optional[Union[LogFormat, str]] = None,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name; defaults to the LOG_LEVEL setting
        fmt: ``json`` or ``pretty``; defaults to the LOG_FORMAT setting
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    log_format = LogFormat(fmt) if fmt is not None else settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level_name, logging.INFO),
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _renderer(log_format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger."""
    return structlog.get_logger(name)
