"""Base store client interface and common functionality."""

from abc import ABC, abstractmethod
from typing import Any, Protocol

import structlog

from secret_sync.config.settings import Settings
from secret_sync.domain.exceptions import (
    BackendReadError,
    PropertyNotFoundError,
    StoreSetupError,
)
from secret_sync.domain.models import (
    RemoteReference,
    SecretKeySelector,
    SecretStore,
    StoreBackend,
)
from secret_sync.infrastructure.cluster.base import ClusterClient

logger = structlog.get_logger()


class StoreClient(ABC):
    """Abstract base class for clients of an external secret store.

    A client is authenticated when constructed and is used for a single
    reconcile. Both read operations are coroutines, so cancelling the calling
    task aborts any in-flight request.
    """

    backend: StoreBackend

    @abstractmethod
    async def get_secret(self, ref: RemoteReference) -> bytes:
        """Fetch a single value, selecting ``ref.property`` when set."""
        pass

    @abstractmethod
    async def get_secret_map(self, ref: RemoteReference) -> dict[str, bytes]:
        """Fetch every key/value pair stored at the locator."""
        pass

    async def close(self) -> None:
        """Release resources held by the client."""
        pass

    async def __aenter__(self) -> "StoreClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class StoreClientFactory(Protocol):
    """Builds an authenticated store client for one store configuration."""

    async def create(
        self,
        store: SecretStore,
        cluster: ClusterClient,
        namespace: str,
        settings: Settings,
    ) -> StoreClient:
        """Authenticate and return a ready client.

        Raises:
            StoreSetupError: credentials could not be resolved or
                authentication was rejected.
        """
        ...


async def resolve_secret_key_ref(
    cluster: ClusterClient,
    store: SecretStore,
    namespace: str,
    selector: SecretKeySelector,
) -> str:
    """Read one key of a cluster secret referenced by store credentials.

    The selector's namespace is honoured only for cluster-scoped stores;
    namespaced stores always read from the ExternalSecret's namespace. The
    value is returned with surrounding whitespace trimmed.
    """
    ref_namespace = namespace
    if store.cluster_scoped and selector.namespace:
        ref_namespace = selector.namespace

    secret = await cluster.get_secret(ref_namespace, selector.name)
    if secret is None:
        raise StoreSetupError(
            f"failed to get secret {ref_namespace}/{selector.name}: not found"
        )

    value = secret.data.get(selector.key)
    if value is None:
        raise StoreSetupError(
            f"key {selector.key!r} not found in secret {ref_namespace}/{selector.name}"
        )

    try:
        return value.decode("utf-8").strip()
    except UnicodeDecodeError:
        raise StoreSetupError(
            f"key {selector.key!r} in secret {ref_namespace}/{selector.name} "
            "is not valid UTF-8"
        )


def decode_string_map(name: str, payload: Any) -> dict[str, bytes]:
    """Convert a decoded JSON object with string values into a byte map."""
    if not isinstance(payload, dict):
        raise BackendReadError(name, "secret payload is not a JSON object")

    result: dict[str, bytes] = {}
    for key, value in payload.items():
        if not isinstance(value, str):
            raise BackendReadError(
                name,
                f"value of key {key!r} is a {type(value).__name__}, expected a string",
            )
        result[key] = value.encode("utf-8")
    return result


def select_property(secret_map: dict[str, bytes], ref: RemoteReference) -> bytes:
    """Pick ``ref.property`` out of a fetched map.

    A reference without a property selects the empty key, which is only
    present in unusual payloads.
    """
    property_name = ref.property or ""
    if property_name not in secret_map:
        raise PropertyNotFoundError(property_name)
    return secret_map[property_name]
