"""Configuration for the secret synchronization controller."""

from .settings import (
    AWSSettings,
    Environment,
    GCPSettings,
    KubernetesSettings,
    LogLevel,
    ObservabilitySettings,
    ReconcileSettings,
    Settings,
    VaultSettings,
    get_settings,
)

__all__ = [
    "AWSSettings",
    "Environment",
    "GCPSettings",
    "KubernetesSettings",
    "LogLevel",
    "ObservabilitySettings",
    "ReconcileSettings",
    "Settings",
    "VaultSettings",
    "get_settings",
]
