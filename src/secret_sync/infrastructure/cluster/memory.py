"""
In-memory cluster client for development and testing.

Resources live in dictionaries keyed by namespace and name. Returned objects
are deep copies so callers never mutate stored state by accident.
"""

import asyncio

from secret_sync.domain.models import (
    CLUSTER_SECRET_STORE_KIND,
    ExternalSecret,
    GeneratedSecret,
    OperationResult,
    SecretStore,
)

_Key = tuple[str | None, str]


class InMemoryClusterClient:
    """In-memory cluster state."""

    def __init__(self) -> None:
        self._external_secrets: dict[_Key, ExternalSecret] = {}
        self._stores: dict[_Key, SecretStore] = {}
        self._cluster_stores: dict[str, SecretStore] = {}
        self._secrets: dict[_Key, GeneratedSecret] = {}

        # Write counters, useful to assert idempotence
        self.secret_writes = 0
        self.status_writes = 0

        self._lock = asyncio.Lock()

    # Seeding helpers
    def add_external_secret(self, external_secret: ExternalSecret) -> None:
        key = (external_secret.metadata.namespace, external_secret.metadata.name)
        self._external_secrets[key] = external_secret.model_copy(deep=True)

    def delete_external_secret(self, namespace: str, name: str) -> None:
        self._external_secrets.pop((namespace, name), None)
        # Owner-reference cascade normally done by the cluster garbage collector
        for key, secret in list(self._secrets.items()):
            if key[0] == namespace and any(
                ref.name == name for ref in secret.owner_references
            ):
                del self._secrets[key]

    def add_store(self, store: SecretStore) -> None:
        if store.kind == CLUSTER_SECRET_STORE_KIND:
            self._cluster_stores[store.metadata.name] = store.model_copy(deep=True)
        else:
            key = (store.metadata.namespace, store.metadata.name)
            self._stores[key] = store.model_copy(deep=True)

    def add_secret(self, secret: GeneratedSecret) -> None:
        self._secrets[(secret.namespace, secret.name)] = secret.model_copy(deep=True)

    # ClusterClient
    async def get_external_secret(
        self, namespace: str, name: str
    ) -> ExternalSecret | None:
        external_secret = self._external_secrets.get((namespace, name))
        return external_secret.model_copy(deep=True) if external_secret else None

    async def get_store(
        self, kind: str, name: str, namespace: str | None = None
    ) -> SecretStore | None:
        if kind == CLUSTER_SECRET_STORE_KIND:
            store = self._cluster_stores.get(name)
        else:
            store = self._stores.get((namespace, name))
        return store.model_copy(deep=True) if store else None

    async def get_secret(self, namespace: str, name: str) -> GeneratedSecret | None:
        secret = self._secrets.get((namespace, name))
        return secret.model_copy(deep=True) if secret else None

    async def apply_secret(self, secret: GeneratedSecret) -> OperationResult:
        async with self._lock:
            key = (secret.namespace, secret.name)
            existing = self._secrets.get(key)
            if existing == secret:
                return OperationResult.UNCHANGED

            self._secrets[key] = secret.model_copy(deep=True)
            self.secret_writes += 1
            if existing is None:
                return OperationResult.CREATED
            return OperationResult.UPDATED

    async def update_external_secret_status(
        self, external_secret: ExternalSecret
    ) -> None:
        async with self._lock:
            key = (external_secret.metadata.namespace, external_secret.metadata.name)
            stored = self._external_secrets.get(key)
            if stored is None:
                return
            stored.status = external_secret.status.model_copy(deep=True)
            self.status_writes += 1
