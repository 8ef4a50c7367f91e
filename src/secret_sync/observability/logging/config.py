"""Logging configuration and setup."""

import logging
import sys
from enum import Enum

import structlog
from structlog.stdlib import LoggerFactory

from secret_sync.config.settings import LogLevel, ObservabilitySettings

from .context import ReconcileIDProcessor
from .formatters import ConsoleFormatter, JSONFormatter, StructuredFormatter


class LogFormat(str, Enum):
    """Logging formats."""

    JSON = "json"
    CONSOLE = "console"
    STRUCTURED = "structured"


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    format_type: LogFormat = LogFormat.JSON,
    log_file: str | None = None,
    enable_colors: bool = True,
    include_timestamps: bool = True,
) -> None:
    """Setup structured logging configuration."""

    handler: logging.Handler = (
        logging.FileHandler(log_file) if log_file else logging.StreamHandler(sys.stdout)
    )
    logging.basicConfig(
        level=getattr(logging, level.value),
        format="%(message)s",
        handlers=[handler],
        force=True,
    )

    # The cloud SDKs are chatty at DEBUG
    for noisy in ("botocore", "boto3", "urllib3", "httpx", "httpcore", "google"):
        logging.getLogger(noisy).setLevel(max(logging.INFO, logging.root.level))

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        ReconcileIDProcessor(),
    ]

    if include_timestamps:
        processors.append(structlog.processors.TimeStamper(fmt="ISO"))

    if format_type == LogFormat.JSON:
        processors.append(JSONFormatter())
    elif format_type == LogFormat.CONSOLE:
        processors.append(ConsoleFormatter(colors=enable_colors))
    elif format_type == LogFormat.STRUCTURED:
        processors.append(StructuredFormatter())

    structlog.configure(
        processors=processors,  # type: ignore[arg-type]
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_logging_from_settings(settings: ObservabilitySettings) -> None:
    """Setup logging from observability settings."""
    setup_logging(
        level=settings.log_level,
        format_type=LogFormat(settings.log_format),
        log_file=settings.log_file,
    )
