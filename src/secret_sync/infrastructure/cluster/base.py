"""
Cluster API interface.

This module defines the operations the reconciler and the store backends need
from the cluster: reading desired-state resources, stores and referenced
secrets, upserting generated secrets and writing status back.
"""

from typing import Protocol

from secret_sync.domain.models import (
    ExternalSecret,
    GeneratedSecret,
    OperationResult,
    SecretStore,
)


class ClusterClient(Protocol):
    """Cluster API operations used by the reconciler."""

    async def get_external_secret(
        self, namespace: str, name: str
    ) -> ExternalSecret | None:
        """Get an ExternalSecret, or None if it does not exist."""
        ...

    async def get_store(
        self, kind: str, name: str, namespace: str | None = None
    ) -> SecretStore | None:
        """Get a SecretStore (namespaced) or ClusterSecretStore by kind."""
        ...

    async def get_secret(self, namespace: str, name: str) -> GeneratedSecret | None:
        """Get a cluster secret with decoded data, or None if missing."""
        ...

    async def apply_secret(self, secret: GeneratedSecret) -> OperationResult:
        """Create or update a secret in one atomic call."""
        ...

    async def update_external_secret_status(
        self, external_secret: ExternalSecret
    ) -> None:
        """Write the status of an ExternalSecret."""
        ...
