"""Structured logging configuration and utilities."""

from .config import LogFormat, setup_logging, setup_logging_from_settings
from .context import ReconcileContext, get_reconcile_id
from .formatters import ConsoleFormatter, JSONFormatter, StructuredFormatter

__all__ = [
    "LogFormat",
    "setup_logging",
    "setup_logging_from_settings",
    "ReconcileContext",
    "get_reconcile_id",
    "ConsoleFormatter",
    "JSONFormatter",
    "StructuredFormatter",
]
