"""Process wiring for the secret synchronization controller."""

import structlog

from secret_sync.config.settings import Settings, get_settings
from secret_sync.core.reconcile.service import ReconcileEngine
from secret_sync.domain.models import StoreBackend
from secret_sync.infrastructure.cluster.base import ClusterClient
from secret_sync.infrastructure.cluster.kubernetes import KubernetesClusterClient
from secret_sync.infrastructure.secret_management.aws_secrets import AWSSecretsClient
from secret_sync.infrastructure.secret_management.gcp_secrets import GCPSecretsClient
from secret_sync.infrastructure.secret_management.registry import StoreRegistry
from secret_sync.infrastructure.secret_management.vault_kv import VaultKVClientFactory
from secret_sync.observability.logging import setup_logging_from_settings

logger = structlog.get_logger()


def create_registry() -> StoreRegistry:
    """Create a registry with every built-in backend registered."""
    registry = StoreRegistry()
    registry.register(StoreBackend.VAULT, VaultKVClientFactory())
    registry.register(StoreBackend.AWS, AWSSecretsClient)
    registry.register(StoreBackend.GCP, GCPSecretsClient)
    return registry


def create_cluster_client(settings: Settings) -> ClusterClient:
    """Create the Kubernetes cluster client from settings."""
    return KubernetesClusterClient.from_settings(settings.kubernetes)


def create_engine(
    settings: Settings | None = None,
    cluster: ClusterClient | None = None,
    registry: StoreRegistry | None = None,
) -> ReconcileEngine:
    """Wire settings, logging, cluster client and registry into an engine."""
    settings = settings or get_settings()
    setup_logging_from_settings(settings.observability)

    if cluster is None:
        cluster = create_cluster_client(settings)
    if registry is None:
        registry = create_registry()

    logger.info(
        "Reconcile engine created",
        environment=settings.environment.value,
        backends=[backend.value for backend in registry.backends()],
    )
    return ReconcileEngine(cluster, registry, settings)
