"""
Configuration management for the secret synchronization controller.

This module implements environment-specific configuration with validation
and a factory selecting the configuration for the current environment.
"""

import os
from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environments."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ReconcileSettings(BaseSettings):
    """Reconcile loop configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RECONCILE_", env_file=".env", extra="ignore"
    )

    # Delay before a failed reconcile is re-invoked
    requeue_after: float = 30.0

    # Deadline for one reconcile; None disables it
    timeout: float | None = None

    @field_validator("requeue_after")
    @classmethod
    def validate_requeue_after(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("requeue_after must be positive")
        return v


class VaultSettings(BaseSettings):
    """Vault backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="VAULT_", env_file=".env", extra="ignore"
    )

    request_timeout: float = 10.0

    # Service account token used for Kubernetes auth without a secretRef
    kubernetes_token_path: str = "/var/run/secrets/kubernetes.io/serviceaccount/token"


class AWSSettings(BaseSettings):
    """AWS Secrets Manager backend configuration."""

    model_config = SettingsConfigDict(env_prefix="AWS_", env_file=".env", extra="ignore")

    # Endpoint overrides, e.g. for localstack
    secretsmanager_endpoint: str | None = None
    sts_endpoint: str | None = None

    role_session_name: str = "secret-sync"
    max_attempts: int = 3

    # Socket waits in seconds, also bounding calls left behind by cancellation
    connect_timeout: float = 5.0
    read_timeout: float = 15.0


class GCPSettings(BaseSettings):
    """GCP Secret Manager backend configuration."""

    model_config = SettingsConfigDict(env_prefix="GCP_", env_file=".env", extra="ignore")

    # Deadline for each Secret Manager call, in seconds
    request_timeout: float = 30.0


class KubernetesSettings(BaseSettings):
    """Cluster API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="KUBE_", env_file=".env", extra="ignore"
    )

    kubeconfig: str | None = None
    in_cluster: bool = True
    field_manager: str = "secret-sync"

    # Passed as _request_timeout on every API call
    request_timeout: float = 30.0


class ObservabilitySettings(BaseSettings):
    """Observability configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OBSERVABILITY_", env_file=".env", extra="ignore"
    )

    log_level: LogLevel = LogLevel.INFO
    log_format: str = "json"
    log_file: str | None = None

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ("json", "console", "structured"):
            raise ValueError(f"Unsupported log format: {v}")
        return v


class Settings(BaseSettings):
    """Main controller settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    app_name: str = "secret-sync"
    environment: Environment = Environment.DEVELOPMENT

    reconcile: ReconcileSettings = Field(default_factory=ReconcileSettings)
    vault: VaultSettings = Field(default_factory=VaultSettings)
    aws: AWSSettings = Field(default_factory=AWSSettings)
    gcp: GCPSettings = Field(default_factory=GCPSettings)
    kubernetes: KubernetesSettings = Field(default_factory=KubernetesSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == Environment.PRODUCTION


# Environment-specific configurations
class DevelopmentSettings(Settings):
    """Development environment settings."""

    environment: Environment = Environment.DEVELOPMENT

    kubernetes: KubernetesSettings = Field(
        default_factory=lambda: KubernetesSettings(in_cluster=False)
    )
    observability: ObservabilitySettings = Field(
        default_factory=lambda: ObservabilitySettings(
            log_level=LogLevel.DEBUG, log_format="console"
        )
    )


class TestingSettings(Settings):
    """Testing environment settings."""

    environment: Environment = Environment.TESTING

    kubernetes: KubernetesSettings = Field(
        default_factory=lambda: KubernetesSettings(in_cluster=False)
    )
    observability: ObservabilitySettings = Field(
        default_factory=lambda: ObservabilitySettings(
            log_level=LogLevel.WARNING, log_format="structured"
        )
    )


class ProductionSettings(Settings):
    """Production environment settings."""

    environment: Environment = Environment.PRODUCTION

    observability: ObservabilitySettings = Field(
        default_factory=lambda: ObservabilitySettings(log_level=LogLevel.INFO)
    )


def get_settings() -> Settings:
    """Get settings based on environment."""
    environment = os.getenv("ENVIRONMENT", "development").lower()

    if environment == "development":
        return DevelopmentSettings()
    elif environment == "production":
        return ProductionSettings()
    elif environment == "testing":
        return TestingSettings()
    else:
        return Settings()
