"""Test configuration and fixtures."""

import os

import pytest

# Set required environment variables for tests
os.environ["ENVIRONMENT"] = "testing"

from secret_sync.config.settings import TestingSettings
from secret_sync.core.reconcile.service import ReconcileEngine
from secret_sync.domain.exceptions import BackendReadError
from secret_sync.domain.models import (
    ExternalSecret,
    ExternalSecretSpec,
    GeneratedSecret,
    KeyReference,
    ObjectMeta,
    RemoteReference,
    SecretKeySelector,
    SecretStore,
    StoreBackend,
    StoreConfig,
    StoreRef,
    VaultAuth,
    VaultStore,
)
from secret_sync.infrastructure.cluster.memory import InMemoryClusterClient
from secret_sync.infrastructure.secret_management.base import (
    StoreClient,
    select_property,
)
from secret_sync.infrastructure.secret_management.registry import StoreRegistry


class FakeStoreClient(StoreClient):
    """Store client serving fixed maps keyed by locator."""

    backend = StoreBackend.VAULT

    def __init__(
        self,
        maps: dict[str, dict[str, bytes]] | None = None,
        errors: dict[str, Exception] | None = None,
    ):
        self.maps = maps or {}
        self.errors = errors or {}
        self.requested: list[str] = []
        self.closed = False

    async def get_secret_map(self, ref: RemoteReference) -> dict[str, bytes]:
        self.requested.append(ref.name)
        if ref.name in self.errors:
            raise self.errors[ref.name]
        if ref.name not in self.maps:
            raise BackendReadError(ref.name, "secret not found")
        return dict(self.maps[ref.name])

    async def get_secret(self, ref: RemoteReference) -> bytes:
        return select_property(await self.get_secret_map(ref), ref)

    async def close(self) -> None:
        self.closed = True


class FakeStoreFactory:
    """Factory handing out a prepared client, or failing setup."""

    def __init__(
        self, client: StoreClient | None = None, error: Exception | None = None
    ):
        self.client = client or FakeStoreClient()
        self.error = error
        self.created = 0

    async def create(self, store, cluster, namespace, settings) -> StoreClient:
        self.created += 1
        if self.error is not None:
            raise self.error
        return self.client


@pytest.fixture
def settings():
    """Testing settings."""
    return TestingSettings()


@pytest.fixture
def cluster():
    """Empty in-memory cluster."""
    return InMemoryClusterClient()


@pytest.fixture
def fake_client():
    """Store client with a couple of secrets."""
    return FakeStoreClient(
        maps={
            "app/db": {"username": b"admin", "password": b"hunter2"},
            "app/api": {"key": b"this-is-a-secret"},
        }
    )


@pytest.fixture
def fake_factory(fake_client):
    """Factory returning the fake client."""
    return FakeStoreFactory(fake_client)


@pytest.fixture
def registry(fake_factory):
    """Registry serving the vault backend from the fake factory."""
    registry = StoreRegistry()
    registry.register(StoreBackend.VAULT, fake_factory)
    return registry


@pytest.fixture
def engine(cluster, registry, settings):
    """Reconcile engine over the in-memory cluster."""
    return ReconcileEngine(cluster, registry, settings)


@pytest.fixture
def vault_store():
    """Namespaced Vault store using token auth."""
    return SecretStore(
        kind="SecretStore",
        metadata=ObjectMeta(name="vault", namespace="default"),
        spec=StoreConfig(
            vault=VaultStore(
                server="https://vault.example.com",
                path="secret",
                auth=VaultAuth(
                    token_secret_ref=SecretKeySelector(name="vault-token", key="token")
                ),
            )
        ),
    )


@pytest.fixture
def vault_token_secret():
    """Cluster secret holding the Vault token."""
    return GeneratedSecret(
        name="vault-token", namespace="default", data={"token": b"s.root\n"}
    )


@pytest.fixture
def external_secret():
    """ExternalSecret mapping one explicit key from the Vault store."""
    return ExternalSecret(
        metadata=ObjectMeta(
            name="app-credentials",
            namespace="default",
            uid="0b7c4d8e-uid",
            labels={"app": "web"},
            annotations={"team": "platform"},
        ),
        spec=ExternalSecretSpec(
            store_ref=StoreRef(name="vault"),
            data=[
                KeyReference(
                    secret_key="key",
                    remote_ref=RemoteReference(name="app/api", property="key"),
                )
            ],
        ),
    )
