"""Kubernetes cluster client built on the official kubernetes client."""

import asyncio
import base64
from typing import Any

import structlog
import urllib3
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from pydantic import ValidationError

from secret_sync.config.settings import KubernetesSettings
from secret_sync.domain.exceptions import ClusterAPIError, StoreSetupError
from secret_sync.domain.models import (
    API_GROUP,
    CLUSTER_SECRET_STORE_KIND,
    ExternalSecret,
    GeneratedSecret,
    ObjectMeta,
    OperationResult,
    OwnerReference,
    SecretStore,
)

logger = structlog.get_logger()

CRD_VERSION = "v1alpha1"

PLURALS = {
    "ExternalSecret": "externalsecrets",
    "SecretStore": "secretstores",
    CLUSTER_SECRET_STORE_KIND: "clustersecretstores",
}


def _is_not_found(error: ApiException) -> bool:
    return error.status == 404


class KubernetesClusterClient:
    """Cluster client talking to the Kubernetes API server.

    The kubernetes client is synchronous, so every call runs in a worker
    thread. Secret ``data`` is base64-encoded only here, when serializing for
    the API server.
    """

    def __init__(
        self,
        api_client: client.ApiClient,
        field_manager: str = "secret-sync",
        request_timeout: float | None = None,
    ):
        self._core = client.CoreV1Api(api_client)
        self._custom = client.CustomObjectsApi(api_client)
        self.field_manager = field_manager
        self.request_timeout = request_timeout

    @classmethod
    def from_settings(cls, settings: KubernetesSettings) -> "KubernetesClusterClient":
        """Load cluster credentials and create a client."""
        if settings.in_cluster:
            config.load_incluster_config()
        else:
            config.load_kube_config(config_file=settings.kubeconfig)
        return cls(
            client.ApiClient(),
            field_manager=settings.field_manager,
            request_timeout=settings.request_timeout,
        )

    async def _call(self, operation: str, method: Any, *args: Any, **kwargs: Any) -> Any:
        """Run a blocking API method in a worker thread.

        ``ApiException`` is left to the caller; transport failures become
        ``ClusterAPIError``.
        """
        if self.request_timeout is not None:
            kwargs["_request_timeout"] = self.request_timeout
        try:
            return await asyncio.to_thread(method, *args, **kwargs)
        except urllib3.exceptions.HTTPError as e:
            raise ClusterAPIError(operation, str(e))

    async def get_external_secret(
        self, namespace: str, name: str
    ) -> ExternalSecret | None:
        try:
            obj = await self._call(
                "get ExternalSecret",
                self._custom.get_namespaced_custom_object,
                API_GROUP,
                CRD_VERSION,
                namespace,
                PLURALS["ExternalSecret"],
                name,
            )
        except ApiException as e:
            if _is_not_found(e):
                return None
            raise ClusterAPIError("get ExternalSecret", str(e.reason), e.status)

        try:
            return ExternalSecret.model_validate(obj)
        except ValidationError as e:
            raise ClusterAPIError(
                "get ExternalSecret", f"invalid ExternalSecret {name!r}: {e}"
            )

    async def get_store(
        self, kind: str, name: str, namespace: str | None = None
    ) -> SecretStore | None:
        try:
            if kind == CLUSTER_SECRET_STORE_KIND:
                obj = await self._call(
                    f"get {kind}",
                    self._custom.get_cluster_custom_object,
                    API_GROUP,
                    CRD_VERSION,
                    PLURALS[kind],
                    name,
                )
            else:
                obj = await self._call(
                    f"get {kind}",
                    self._custom.get_namespaced_custom_object,
                    API_GROUP,
                    CRD_VERSION,
                    namespace,
                    PLURALS["SecretStore"],
                    name,
                )
        except ApiException as e:
            if _is_not_found(e):
                return None
            raise ClusterAPIError(f"get {kind}", str(e.reason), e.status)

        try:
            return SecretStore.model_validate(
                {"kind": kind, "metadata": obj["metadata"], "spec": obj.get("spec", {})}
            )
        except ValidationError as e:
            raise StoreSetupError(f"invalid {kind} {name!r}: {e}")

    async def get_secret(self, namespace: str, name: str) -> GeneratedSecret | None:
        try:
            secret = await self._call(
                "get Secret", self._core.read_namespaced_secret, name, namespace
            )
        except ApiException as e:
            if _is_not_found(e):
                return None
            raise ClusterAPIError("get Secret", str(e.reason), e.status)

        return self._from_v1_secret(secret)

    async def apply_secret(self, secret: GeneratedSecret) -> OperationResult:
        body = self._to_v1_secret(secret)
        try:
            existing = await self._call(
                "get Secret",
                self._core.read_namespaced_secret,
                secret.name,
                secret.namespace,
            )
        except ApiException as e:
            if not _is_not_found(e):
                raise ClusterAPIError("get Secret", str(e.reason), e.status)
            existing = None

        try:
            if existing is None:
                await self._call(
                    "apply Secret",
                    self._core.create_namespaced_secret,
                    secret.namespace,
                    body,
                    field_manager=self.field_manager,
                )
                return OperationResult.CREATED

            if self._from_v1_secret(existing) == secret:
                return OperationResult.UNCHANGED

            logger.debug(
                "Replacing secret",
                name=secret.name,
                namespace=secret.namespace,
                keys=sorted(secret.data),
            )

            # resourceVersion makes the replace fail on concurrent writers
            body.metadata.resource_version = existing.metadata.resource_version
            await self._call(
                "apply Secret",
                self._core.replace_namespaced_secret,
                secret.name,
                secret.namespace,
                body,
                field_manager=self.field_manager,
            )
            return OperationResult.UPDATED
        except ApiException as e:
            raise ClusterAPIError("apply Secret", str(e.reason), e.status)

    async def update_external_secret_status(
        self, external_secret: ExternalSecret
    ) -> None:
        body = {
            "status": external_secret.status.model_dump(by_alias=True, mode="json")
        }
        try:
            await self._call(
                "update ExternalSecret status",
                self._custom.patch_namespaced_custom_object_status,
                API_GROUP,
                CRD_VERSION,
                external_secret.metadata.namespace,
                PLURALS["ExternalSecret"],
                external_secret.metadata.name,
                body,
            )
        except ApiException as e:
            raise ClusterAPIError("update ExternalSecret status", str(e.reason), e.status)

    @staticmethod
    def _to_v1_secret(secret: GeneratedSecret) -> client.V1Secret:
        owner_references = [
            client.V1OwnerReference(
                api_version=ref.api_version,
                kind=ref.kind,
                name=ref.name,
                uid=ref.uid,
                controller=ref.controller,
                block_owner_deletion=ref.block_owner_deletion,
            )
            for ref in secret.owner_references
        ]
        return client.V1Secret(
            api_version="v1",
            kind="Secret",
            metadata=client.V1ObjectMeta(
                name=secret.name,
                namespace=secret.namespace,
                labels=secret.labels or None,
                annotations=secret.annotations or None,
                owner_references=owner_references or None,
            ),
            type=secret.type,
            data={
                key: base64.b64encode(value).decode("ascii")
                for key, value in sorted(secret.data.items())
            },
        )

    @staticmethod
    def _from_v1_secret(secret: Any) -> GeneratedSecret:
        metadata = ObjectMeta(
            name=secret.metadata.name,
            namespace=secret.metadata.namespace,
            labels=secret.metadata.labels or {},
            annotations=secret.metadata.annotations or {},
        )
        owner_references = [
            OwnerReference(
                api_version=ref.api_version,
                kind=ref.kind,
                name=ref.name,
                uid=ref.uid,
                controller=bool(ref.controller),
                block_owner_deletion=bool(ref.block_owner_deletion),
            )
            for ref in secret.metadata.owner_references or []
        ]
        return GeneratedSecret(
            name=metadata.name,
            namespace=metadata.namespace or "",
            type=secret.type or "Opaque",
            labels=metadata.labels,
            annotations=metadata.annotations,
            data={
                key: base64.b64decode(value) for key, value in (secret.data or {}).items()
            },
            owner_references=owner_references,
        )
