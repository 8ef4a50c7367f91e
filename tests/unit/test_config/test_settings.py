"""Unit tests for configuration management."""

import pytest
from pydantic import ValidationError

from secret_sync.config import settings as settings_module
from secret_sync.config.settings import (
    AWSSettings,
    Environment,
    GCPSettings,
    KubernetesSettings,
    LogLevel,
    ObservabilitySettings,
    ReconcileSettings,
    VaultSettings,
    get_settings,
)


class TestReconcileSettings:
    """Test reconcile loop configuration."""

    def test_default_values(self):
        """Test default configuration values."""
        config = ReconcileSettings()

        assert config.requeue_after == 30.0
        assert config.timeout is None

    def test_env_override(self, monkeypatch):
        """Test values are read from prefixed environment variables."""
        monkeypatch.setenv("RECONCILE_REQUEUE_AFTER", "5")
        monkeypatch.setenv("RECONCILE_TIMEOUT", "2.5")

        config = ReconcileSettings()

        assert config.requeue_after == 5.0
        assert config.timeout == 2.5

    @pytest.mark.parametrize("value", [0, -1.0])
    def test_requeue_after_must_be_positive(self, value):
        """Test non-positive requeue delays are rejected."""
        with pytest.raises(ValidationError, match="requeue_after must be positive"):
            ReconcileSettings(requeue_after=value)


class TestBackendSettings:
    """Test backend configuration sections."""

    def test_vault_defaults(self):
        """Test Vault defaults."""
        config = VaultSettings()

        assert config.request_timeout == 10.0
        assert config.kubernetes_token_path.endswith("serviceaccount/token")

    def test_aws_endpoint_override(self, monkeypatch):
        """Test AWS endpoints can be pointed elsewhere."""
        monkeypatch.setenv("AWS_SECRETSMANAGER_ENDPOINT", "http://localhost:4566")

        config = AWSSettings()

        assert config.secretsmanager_endpoint == "http://localhost:4566"
        assert config.sts_endpoint is None
        assert config.role_session_name == "secret-sync"
        assert (config.connect_timeout, config.read_timeout) == (5.0, 15.0)

    def test_gcp_request_timeout(self, monkeypatch):
        """Test the GCP call deadline is configurable."""
        monkeypatch.setenv("GCP_REQUEST_TIMEOUT", "12")

        assert GCPSettings().request_timeout == 12.0

    def test_kubernetes_env(self, monkeypatch):
        """Test cluster settings from the environment."""
        monkeypatch.setenv("KUBE_IN_CLUSTER", "false")
        monkeypatch.setenv("KUBE_KUBECONFIG", "/tmp/kubeconfig")

        config = KubernetesSettings()

        assert config.in_cluster is False
        assert config.kubeconfig == "/tmp/kubeconfig"


class TestObservabilitySettings:
    """Test observability configuration."""

    def test_unsupported_log_format(self):
        """Test unknown log formats are rejected."""
        with pytest.raises(ValidationError, match="Unsupported log format"):
            ObservabilitySettings(log_format="xml")

    def test_log_level_from_env(self, monkeypatch):
        """Test the log level is parsed into the enum."""
        monkeypatch.setenv("OBSERVABILITY_LOG_LEVEL", "ERROR")

        assert ObservabilitySettings().log_level == LogLevel.ERROR


class TestGetSettings:
    """Test environment-specific settings selection."""

    @pytest.mark.parametrize(
        "environment, expected",
        [
            ("development", "DevelopmentSettings"),
            ("testing", "TestingSettings"),
            ("production", "ProductionSettings"),
            ("staging", "Settings"),
        ],
    )
    def test_selects_by_environment(self, monkeypatch, environment, expected):
        """Test the ENVIRONMENT variable selects the settings class."""
        monkeypatch.setenv("ENVIRONMENT", environment)

        config = get_settings()

        assert type(config) is getattr(settings_module, expected)

    def test_development_defaults(self, monkeypatch):
        """Test development runs out of cluster with console logs."""
        monkeypatch.setenv("ENVIRONMENT", "development")

        config = get_settings()

        assert config.kubernetes.in_cluster is False
        assert config.observability.log_format == "console"
        assert config.observability.log_level == LogLevel.DEBUG

    def test_production(self, monkeypatch):
        """Test production settings."""
        monkeypatch.setenv("ENVIRONMENT", "PRODUCTION")

        config = get_settings()

        assert config.environment == Environment.PRODUCTION
        assert config.is_production
        assert config.kubernetes.in_cluster is True
