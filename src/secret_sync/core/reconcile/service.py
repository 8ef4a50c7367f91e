"""Reconcile service turning ExternalSecrets into generated secrets."""

import asyncio

import structlog

from secret_sync.config.settings import Settings
from secret_sync.domain.exceptions import (
    BackendConfigError,
    BackendReadError,
    ClusterAPIError,
    ReconcileCancelledError,
    SecretApplyError,
    SecretSyncError,
    StoreNotFoundError,
    StoreSetupError,
)
from secret_sync.domain.models import (
    CLUSTER_SECRET_STORE_KIND,
    ConditionStatus,
    ConditionType,
    ExternalSecret,
    GeneratedSecret,
    OperationResult,
    OwnerReference,
    ReconcileResult,
    ResourceKey,
    SecretStore,
    StatusCondition,
)
from secret_sync.infrastructure.cluster.base import ClusterClient
from secret_sync.infrastructure.secret_management.base import StoreClient
from secret_sync.infrastructure.secret_management.registry import StoreRegistry
from secret_sync.observability.logging import ReconcileContext

from .template import apply_template

logger = structlog.get_logger()

REASON_AVAILABLE = "Available"
REASON_UNAVAILABLE = "Unavailable"


class ReconcileEngine:
    """Drives one ExternalSecret towards its desired state per invocation.

    The engine keeps no state between invocations apart from the registry,
    so different keys may be reconciled concurrently. Retries are expressed
    only through ``ReconcileResult.requeue_after``.
    """

    def __init__(
        self,
        cluster: ClusterClient,
        registry: StoreRegistry,
        settings: Settings | None = None,
    ):
        self.cluster = cluster
        self.registry = registry
        self.settings = settings or Settings()

    async def reconcile(
        self, key: ResourceKey, timeout: float | None = None
    ) -> ReconcileResult:
        """Reconcile the ExternalSecret identified by ``key``.

        Domain errors never escape: they are written to the ``Ready``
        condition and turned into a delayed requeue. Cancellation of the
        calling task propagates unchanged.
        """
        with ReconcileContext():
            log = logger.bind(external_secret=str(key))

            try:
                external_secret = await self.cluster.get_external_secret(
                    key.namespace, key.name
                )
            except ClusterAPIError as e:
                log.error("Unable to get ExternalSecret", error=e.message)
                return ReconcileResult(
                    requeue_after=self.settings.reconcile.requeue_after, error=e
                )

            if external_secret is None:
                log.debug("ExternalSecret not found, nothing to do")
                return ReconcileResult()

            if timeout is None:
                timeout = self.settings.reconcile.timeout

            error: SecretSyncError | None = None
            operation: OperationResult | None = None
            try:
                if timeout:
                    async with asyncio.timeout(timeout):
                        operation = await self._sync(external_secret)
                else:
                    operation = await self._sync(external_secret)
            except TimeoutError:
                if not timeout:
                    raise
                error = ReconcileCancelledError(timeout)
            except SecretSyncError as e:
                error = e

            if error is not None:
                log.warning(
                    "Error while reconciling ExternalSecret",
                    error=error.message,
                    error_code=error.error_code.value,
                )
                await self._set_ready(
                    external_secret, ConditionStatus.FALSE, REASON_UNAVAILABLE, error.message
                )
                return ReconcileResult(
                    requeue_after=self.settings.reconcile.requeue_after, error=error
                )

            log.info("Successfully reconciled ExternalSecret", operation=operation.value)
            await self._set_ready(external_secret, ConditionStatus.TRUE, REASON_AVAILABLE, "")
            return ReconcileResult(operation=operation)

    async def reconcile_all(
        self, keys: list[ResourceKey]
    ) -> dict[ResourceKey, ReconcileResult]:
        """Reconcile several keys concurrently; failures stay per key."""
        results = await asyncio.gather(*(self.reconcile(key) for key in keys))
        return dict(zip(keys, results))

    async def _sync(self, external_secret: ExternalSecret) -> OperationResult:
        namespace = external_secret.metadata.namespace or ""

        store = await self._get_store(external_secret)
        client = await self._create_client(store, namespace)
        async with client:
            data = await self._fetch_data(client, external_secret)

        secret = self._build_secret(external_secret, data)
        if external_secret.spec.template is not None:
            secret = apply_template(secret, external_secret.spec.template)

        try:
            return await self.cluster.apply_secret(secret)
        except ClusterAPIError as e:
            raise SecretApplyError(secret.name, secret.namespace, e.message)

    async def _get_store(self, external_secret: ExternalSecret) -> SecretStore:
        store_ref = external_secret.spec.store_ref
        namespace = None
        if store_ref.kind != CLUSTER_SECRET_STORE_KIND:
            namespace = external_secret.metadata.namespace

        try:
            store = await self.cluster.get_store(store_ref.kind, store_ref.name, namespace)
        except BackendConfigError as e:
            raise StoreSetupError(e.message)

        if store is None:
            raise StoreNotFoundError(store_ref.kind, store_ref.name, namespace)
        return store

    async def _create_client(self, store: SecretStore, namespace: str) -> StoreClient:
        try:
            factory = self.registry.resolve(store.spec)
            return await factory.create(store, self.cluster, namespace, self.settings)
        except StoreSetupError:
            raise
        except SecretSyncError as e:
            raise StoreSetupError(e.message)
        except Exception as e:
            raise StoreSetupError(str(e) or type(e).__name__)

    async def _fetch_data(
        self, client: StoreClient, external_secret: ExternalSecret
    ) -> dict[str, bytes]:
        data: dict[str, bytes] = {}

        # Aggregates merge left to right, later references win
        for ref in external_secret.spec.data_from:
            try:
                data.update(await client.get_secret_map(ref))
            except Exception as e:
                raise BackendReadError.for_reference(ref, e)

        # Explicit keys overwrite aggregated ones
        for entry in external_secret.spec.data:
            try:
                data[entry.secret_key] = await client.get_secret(entry.remote_ref)
            except Exception as e:
                raise BackendReadError.for_reference(entry.remote_ref, e)

        return data

    @staticmethod
    def _build_secret(
        external_secret: ExternalSecret, data: dict[str, bytes]
    ) -> GeneratedSecret:
        metadata = external_secret.metadata
        return GeneratedSecret(
            name=metadata.name,
            namespace=metadata.namespace or "",
            labels=dict(metadata.labels),
            annotations=dict(metadata.annotations),
            data=data,
            owner_references=[OwnerReference(name=metadata.name, uid=metadata.uid)],
        )

    async def _set_ready(
        self,
        external_secret: ExternalSecret,
        status: ConditionStatus,
        reason: str,
        message: str,
    ) -> None:
        changed = external_secret.status.set_condition(
            StatusCondition(
                type=ConditionType.READY, status=status, reason=reason, message=message
            )
        )
        if not changed:
            return

        try:
            await self.cluster.update_external_secret_status(external_secret)
        except Exception as e:
            logger.warning(
                "Failed to update ExternalSecret status",
                name=external_secret.metadata.name,
                namespace=external_secret.metadata.namespace,
                error=str(e),
            )
