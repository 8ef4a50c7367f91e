"""Reconcile ID management for log correlation."""

import contextvars
import uuid
from typing import Any

# Context variable for the reconcile ID
reconcile_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "reconcile_id", default=None
)


class ReconcileIDProcessor:
    """Processor to add the current reconcile ID to log events."""

    def __init__(self, reconcile_id_key: str = "reconcile_id"):
        self.reconcile_id_key = reconcile_id_key

    def __call__(
        self, logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        """Add reconcile ID to log event."""
        reconcile_id = get_reconcile_id()
        if reconcile_id:
            event_dict.setdefault(self.reconcile_id_key, reconcile_id)
        return event_dict


def get_reconcile_id() -> str | None:
    """Get current reconcile ID from context."""
    return reconcile_id_var.get()


def generate_reconcile_id() -> str:
    """Generate a new reconcile ID."""
    return str(uuid.uuid4())


class ReconcileContext:
    """Context manager scoping a reconcile ID to one reconcile invocation."""

    def __init__(self, reconcile_id: str | None = None):
        self.reconcile_id = reconcile_id or generate_reconcile_id()
        self.token: contextvars.Token[str | None] | None = None

    def __enter__(self) -> "ReconcileContext":
        """Enter context and set reconcile ID."""
        self.token = reconcile_id_var.set(self.reconcile_id)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context and restore previous reconcile ID."""
        if self.token:
            reconcile_id_var.reset(self.token)
