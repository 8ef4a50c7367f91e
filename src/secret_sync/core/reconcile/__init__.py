"""Reconcile engine and template overlay."""

from .service import ReconcileEngine
from .template import SecretTemplate, apply_template, parse_template

__all__ = ["ReconcileEngine", "SecretTemplate", "apply_template", "parse_template"]
