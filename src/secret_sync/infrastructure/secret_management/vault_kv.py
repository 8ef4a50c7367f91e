"""HashiCorp Vault KV secret engine integration."""

import asyncio
import base64
import binascii
import ssl
from pathlib import Path
from typing import Any

import httpx
import structlog

from secret_sync.config.settings import Settings
from secret_sync.domain.exceptions import BackendReadError, StoreSetupError
from secret_sync.domain.models import (
    DEFAULT_KUBERNETES_TOKEN_KEY,
    RemoteReference,
    SecretStore,
    StoreBackend,
    VaultAppRole,
    VaultKubernetesAuth,
    VaultKVVersion,
    VaultStore,
)
from secret_sync.infrastructure.cluster.base import ClusterClient

from .base import (
    StoreClient,
    decode_string_map,
    resolve_secret_key_ref,
    select_property,
)

logger = structlog.get_logger()

TOKEN_HEADER = "X-Vault-Token"
NAMESPACE_HEADER = "X-Vault-Namespace"


def build_ssl_context(ca_bundle: str | None) -> ssl.SSLContext | bool:
    """Build the TLS trust configuration for a Vault server.

    ``ca_bundle`` is PEM text, or the base64 encoding of it as found in
    resource manifests. Without a bundle the system trust store is used.
    """
    if not ca_bundle:
        return True

    pem = ca_bundle
    if "-----BEGIN" not in pem:
        try:
            pem = base64.b64decode(pem, validate=True).decode("ascii")
        except (binascii.Error, UnicodeDecodeError):
            raise StoreSetupError("error loading Vault CA bundle", StoreBackend.VAULT)

    try:
        return ssl.create_default_context(cadata=pem)
    except (ssl.SSLError, ValueError) as e:
        raise StoreSetupError(
            f"error loading Vault CA bundle: {e}", StoreBackend.VAULT
        )


def _error_detail(response: httpx.Response) -> str:
    """Extract Vault's error list from a response body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    errors = body.get("errors") if isinstance(body, dict) else None
    if errors:
        return "; ".join(str(error) for error in errors)
    return response.reason_phrase or f"HTTP {response.status_code}"


class VaultKVClient(StoreClient):
    """Reads secrets from a Vault KV v1 or v2 engine over HTTP."""

    backend = StoreBackend.VAULT

    def __init__(self, http: httpx.AsyncClient, config: VaultStore):
        self._http = http
        self.config = config

    @classmethod
    async def create(
        cls,
        store: SecretStore,
        cluster: ClusterClient,
        namespace: str,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "VaultKVClient":
        """Authenticate against Vault and return a client holding the token."""
        config = store.spec.vault
        if config is None:
            raise StoreSetupError("store has no vault configuration", StoreBackend.VAULT)

        headers = {}
        if config.namespace:
            headers[NAMESPACE_HEADER] = config.namespace

        http = httpx.AsyncClient(
            base_url=config.server,
            headers=headers,
            timeout=settings.vault.request_timeout,
            verify=build_ssl_context(config.ca_bundle),
            transport=transport,
        )

        try:
            token = await cls._authenticate(http, config, store, cluster, namespace, settings)
        except BaseException:
            await http.aclose()
            raise

        http.headers[TOKEN_HEADER] = token
        logger.debug("Authenticated to Vault", server=config.server)
        return cls(http, config)

    @classmethod
    async def _authenticate(
        cls,
        http: httpx.AsyncClient,
        config: VaultStore,
        store: SecretStore,
        cluster: ClusterClient,
        namespace: str,
        settings: Settings,
    ) -> str:
        auth = config.auth

        if auth.token_secret_ref is not None:
            token = await resolve_secret_key_ref(
                cluster, store, namespace, auth.token_secret_ref
            )
            if not token:
                raise StoreSetupError("no token returned", StoreBackend.VAULT)
            return token

        if auth.app_role is not None:
            return await cls._login_app_role(http, auth.app_role, store, cluster, namespace)

        if auth.kubernetes is not None:
            return await cls._login_kubernetes(
                http, auth.kubernetes, store, cluster, namespace, settings
            )

        raise StoreSetupError(
            "error initializing Vault client: tokenSecretRef, appRole or "
            "kubernetes auth not set",
            StoreBackend.VAULT,
        )

    @classmethod
    async def _login_app_role(
        cls,
        http: httpx.AsyncClient,
        app_role: VaultAppRole,
        store: SecretStore,
        cluster: ClusterClient,
        namespace: str,
    ) -> str:
        secret_id = await resolve_secret_key_ref(
            cluster, store, namespace, app_role.secret_ref
        )
        return await cls._login(
            http,
            app_role.path,
            {"role_id": app_role.role_id.strip(), "secret_id": secret_id},
        )

    @classmethod
    async def _login_kubernetes(
        cls,
        http: httpx.AsyncClient,
        kubernetes: VaultKubernetesAuth,
        store: SecretStore,
        cluster: ClusterClient,
        namespace: str,
        settings: Settings,
    ) -> str:
        if kubernetes.secret_ref is not None:
            selector = kubernetes.secret_ref
            if not selector.key:
                selector = selector.model_copy(update={"key": DEFAULT_KUBERNETES_TOKEN_KEY})
            jwt = await resolve_secret_key_ref(cluster, store, namespace, selector)
        else:
            token_path = Path(settings.vault.kubernetes_token_path)
            try:
                jwt = (await asyncio.to_thread(token_path.read_text)).strip()
            except OSError as e:
                raise StoreSetupError(
                    f"error reading Kubernetes service account token: {e}",
                    StoreBackend.VAULT,
                )

        return await cls._login(http, kubernetes.path, {"role": kubernetes.role, "jwt": jwt})

    @staticmethod
    async def _login(http: httpx.AsyncClient, mount_path: str, payload: dict[str, str]) -> str:
        url = f"/v1/auth/{mount_path.strip('/')}/login"
        try:
            response = await http.post(url, json=payload)
        except httpx.HTTPError as e:
            raise StoreSetupError(
                f"error logging in to Vault server: {e}", StoreBackend.VAULT
            )

        if response.is_error:
            raise StoreSetupError(
                f"error logging in to Vault server: {_error_detail(response)}",
                StoreBackend.VAULT,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise StoreSetupError(
                f"unable to decode JSON payload: {e}", StoreBackend.VAULT
            )

        auth = body.get("auth") if isinstance(body, dict) else None
        token = auth.get("client_token") if isinstance(auth, dict) else None
        if not token:
            raise StoreSetupError("no token returned", StoreBackend.VAULT)
        return str(token)

    async def get_secret(self, ref: RemoteReference) -> bytes:
        return select_property(await self._read_secret(ref), ref)

    async def get_secret_map(self, ref: RemoteReference) -> dict[str, bytes]:
        return await self._read_secret(ref)

    def _secret_url(self, path: str) -> str:
        mount = self.config.path.strip("/")
        if self.config.version == VaultKVVersion.V2 and not mount.endswith("/data"):
            mount = f"{mount}/data"
        return f"/v1/{mount}/{path.lstrip('/')}"

    async def _read_secret(self, ref: RemoteReference) -> dict[str, bytes]:
        params: dict[str, Any] = {}
        if ref.version and self.config.version == VaultKVVersion.V2:
            params["version"] = ref.version

        try:
            response = await self._http.get(self._secret_url(ref.name), params=params)
        except httpx.HTTPError as e:
            raise BackendReadError(ref.name, f"error reading secret: {e}")

        if response.status_code == 404:
            raise BackendReadError(ref.name, "secret not found")
        if response.is_error:
            raise BackendReadError(ref.name, _error_detail(response))

        try:
            body = response.json()
        except ValueError as e:
            raise BackendReadError(ref.name, f"unable to decode JSON payload: {e}")

        data = body.get("data") if isinstance(body, dict) else None
        if self.config.version == VaultKVVersion.V2:
            if not isinstance(data, dict) or "data" not in data:
                raise BackendReadError(ref.name, "unexpected secret data response")
            data = data["data"]
            if not isinstance(data, dict):
                raise BackendReadError(ref.name, "unexpected secret data format")
        elif not isinstance(data, dict):
            raise BackendReadError(ref.name, "unexpected secret data response")

        return decode_string_map(ref.name, data)

    async def close(self) -> None:
        await self._http.aclose()


class VaultKVClientFactory:
    """Factory registered for the vault backend."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self.transport = transport

    async def create(
        self,
        store: SecretStore,
        cluster: ClusterClient,
        namespace: str,
        settings: Settings,
    ) -> VaultKVClient:
        return await VaultKVClient.create(
            store, cluster, namespace, settings, transport=self.transport
        )
