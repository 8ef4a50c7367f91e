"""Google Cloud Secret Manager integration."""

import asyncio
import json
from typing import Any

import structlog
from google.api_core import exceptions as gcp_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import secretmanager
from google.oauth2 import service_account

from secret_sync.config.settings import Settings
from secret_sync.domain.exceptions import BackendReadError, StoreSetupError
from secret_sync.domain.models import (
    DEFAULT_GCP_SECRET_VERSION,
    GCPStore,
    RemoteReference,
    SecretStore,
    StoreBackend,
)
from secret_sync.infrastructure.cluster.base import ClusterClient

from .base import StoreClient, resolve_secret_key_ref

logger = structlog.get_logger()


def secret_version_name(
    locator: str, project_id: str | None, version: str | None = None
) -> str:
    """Expand a locator into a full secret version resource name."""
    version = version or DEFAULT_GCP_SECRET_VERSION
    if locator.startswith("projects/"):
        if "/versions/" in locator:
            return locator
        return f"{locator}/versions/{version}"

    if not project_id:
        raise BackendReadError(
            locator, "projectID is required to resolve a bare secret name"
        )
    return f"projects/{project_id}/secrets/{locator}/versions/{version}"


class GCPSecretsClient(StoreClient):
    """Reads secret versions from Google Cloud Secret Manager.

    A version payload is opaque, so the map form holds a single entry keyed
    by the locator and no property selection is applied. Requests go through
    the asyncio gRPC client, so cancelling the caller cancels the call.
    """

    backend = StoreBackend.GCP

    def __init__(
        self, client: Any, config: GCPStore, request_timeout: float | None = None
    ):
        self._client = client
        self.config = config
        self.request_timeout = request_timeout

    @classmethod
    async def create(
        cls,
        store: SecretStore,
        cluster: ClusterClient,
        namespace: str,
        settings: Settings,
    ) -> "GCPSecretsClient":
        config = store.spec.gcp
        if config is None:
            raise StoreSetupError("store has no gcp configuration", StoreBackend.GCP)

        auth = config.auth_secret_ref
        if auth is not None and auth.json_key is not None and auth.file is not None:
            raise StoreSetupError(
                "multiple authentication methods configured", StoreBackend.GCP
            )

        credentials_json = None
        if auth is not None and auth.json_key is not None:
            credentials_json = await resolve_secret_key_ref(
                cluster, store, namespace, auth.json_key
            )
        credentials_path = auth.file if auth is not None else None

        def load_credentials() -> Any:
            if credentials_json is not None:
                return service_account.Credentials.from_service_account_info(
                    json.loads(credentials_json)
                )
            if credentials_path is not None:
                return service_account.Credentials.from_service_account_file(
                    credentials_path
                )
            return None

        try:
            credentials = await asyncio.to_thread(load_credentials)
            if credentials is None:
                # Application default credentials
                client = secretmanager.SecretManagerServiceAsyncClient()
            else:
                client = secretmanager.SecretManagerServiceAsyncClient(
                    credentials=credentials
                )
        except (ValueError, OSError, auth_exceptions.GoogleAuthError) as e:
            raise StoreSetupError(
                f"failed to create GCP Secret Manager client: {e}", StoreBackend.GCP
            )

        if credentials_json is not None:
            auth_method = "json"
        elif credentials_path is not None:
            auth_method = "file"
        else:
            auth_method = "default"
        logger.debug(
            "Created GCP Secret Manager client",
            project_id=config.project_id,
            auth_method=auth_method,
        )
        return cls(client, config, settings.gcp.request_timeout)

    async def get_secret(self, ref: RemoteReference) -> bytes:
        return (await self._read_secret(ref))[ref.name]

    async def get_secret_map(self, ref: RemoteReference) -> dict[str, bytes]:
        return await self._read_secret(ref)

    async def _read_secret(self, ref: RemoteReference) -> dict[str, bytes]:
        name = secret_version_name(ref.name, self.config.project_id, ref.version)

        try:
            response = await self._client.access_secret_version(
                request={"name": name}, timeout=self.request_timeout
            )
        except gcp_exceptions.NotFound:
            raise BackendReadError(ref.name, f"secret version {name!r} not found")
        except gcp_exceptions.GoogleAPIError as e:
            raise BackendReadError(ref.name, f"error accessing secret version: {e}")

        return {ref.name: bytes(response.payload.data)}

    async def close(self) -> None:
        transport = getattr(self._client, "transport", None)
        if transport is not None:
            await transport.close()
