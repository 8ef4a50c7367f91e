"""Custom log formatters for structured logging."""

import json
from datetime import UTC, datetime
from typing import Any

from colorama import Fore, Back, Style, init

# Initialize colorama for cross-platform color support
init(autoreset=True)

_RESERVED_FIELDS = ("timestamp", "level", "logger", "reconcile_id", "event")


class JSONFormatter:
    """JSON formatter for structured logs."""

    def __init__(self, ensure_ascii: bool = False, indent: int | None = None):
        self.ensure_ascii = ensure_ascii
        self.indent = indent

    def __call__(
        self, logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> str:
        """Format log event as JSON."""
        if "timestamp" not in event_dict:
            event_dict["timestamp"] = datetime.now(UTC).isoformat()

        event_dict["level"] = method_name.upper()

        if "logger" not in event_dict and logger is not None:
            event_dict["logger"] = getattr(logger, "name", None)

        return json.dumps(
            event_dict, ensure_ascii=self.ensure_ascii, indent=self.indent, default=str
        )


class ConsoleFormatter:
    """Console formatter with colors and human-readable output."""

    def __init__(self, colors: bool = True, show_timestamp: bool = True):
        self.colors = colors
        self.show_timestamp = show_timestamp

        self.level_colors = {
            "debug": Fore.CYAN,
            "info": Fore.GREEN,
            "warning": Fore.YELLOW,
            "error": Fore.RED,
            "critical": Fore.RED + Back.WHITE + Style.BRIGHT,
        }

    def _paint(self, text: str, color: str) -> str:
        if not self.colors:
            return text
        return f"{color}{text}{Style.RESET_ALL}"

    def __call__(
        self, logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> str:
        """Format log event for console output."""
        parts = []

        if self.show_timestamp and "timestamp" in event_dict:
            timestamp = event_dict["timestamp"]
            if isinstance(timestamp, datetime):
                timestamp = timestamp.isoformat()
            parts.append(f"[{timestamp}]")

        level = method_name.upper()
        parts.append(self._paint(level, self.level_colors.get(level.lower(), "")))

        if "logger" in event_dict:
            parts.append(self._paint(f"[{event_dict['logger']}]", Fore.BLUE))

        if "reconcile_id" in event_dict:
            parts.append(self._paint(f"[{event_dict['reconcile_id']}]", Fore.MAGENTA))

        message = event_dict.get("event", "")
        if message:
            parts.append(str(message))

        additional_fields = []
        for key, value in event_dict.items():
            if key not in _RESERVED_FIELDS:
                if isinstance(value, dict | list):
                    value = json.dumps(value, default=str)
                additional_fields.append(f"{key}={value}")

        if additional_fields:
            parts.append(self._paint(", ".join(additional_fields), Fore.WHITE))

        return " ".join(parts)


class StructuredFormatter:
    """Structured formatter with key-value pairs."""

    def __init__(self, separator: str = " | ", key_value_separator: str = "="):
        self.separator = separator
        self.key_value_separator = key_value_separator

    def __call__(
        self, logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> str:
        """Format log event as structured key-value pairs."""
        kv = self.key_value_separator
        parts = []

        if "timestamp" in event_dict:
            timestamp = event_dict["timestamp"]
            if isinstance(timestamp, datetime):
                timestamp = timestamp.isoformat()
            parts.append(f"timestamp{kv}{timestamp}")

        parts.append(f"level{kv}{method_name.upper()}")

        if "logger" in event_dict:
            parts.append(f"logger{kv}{event_dict['logger']}")

        if "reconcile_id" in event_dict:
            parts.append(f"reconcile_id{kv}{event_dict['reconcile_id']}")

        if "event" in event_dict:
            parts.append(f"message{kv}{event_dict['event']}")

        for key, value in event_dict.items():
            if key not in _RESERVED_FIELDS:
                if isinstance(value, dict | list):
                    value = json.dumps(value, default=str)
                parts.append(f"{key}{kv}{value}")

        return self.separator.join(parts)
