"""Domain models for secret synchronization.

The resource shapes mirror the ``secret-manager.itscontained.io/v1alpha1``
custom resources. Field aliases carry the camelCase wire names so documents
read from the cluster API validate directly, while Python code uses
snake_case attributes.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

API_GROUP = "secret-manager.itscontained.io"
API_VERSION = f"{API_GROUP}/v1alpha1"

EXTERNAL_SECRET_KIND = "ExternalSecret"
SECRET_STORE_KIND = "SecretStore"
CLUSTER_SECRET_STORE_KIND = "ClusterSecretStore"

DEFAULT_VAULT_APPROLE_MOUNT_PATH = "approle"
DEFAULT_VAULT_KUBERNETES_MOUNT_PATH = "kubernetes"
DEFAULT_KUBERNETES_TOKEN_KEY = "token"
DEFAULT_GCP_SECRET_VERSION = "latest"


class ErrorCode(str, Enum):
    """Standardized error codes."""

    BACKEND_UNCONFIGURED = "backend_unconfigured"
    BACKEND_AMBIGUOUS = "backend_ambiguous"
    BACKEND_UNREGISTERED = "backend_unregistered"
    BACKEND_ALREADY_REGISTERED = "backend_already_registered"
    STORE_NOT_FOUND = "store_not_found"
    STORE_SETUP_FAILED = "store_setup_failed"
    BACKEND_READ_FAILED = "backend_read_failed"
    PROPERTY_NOT_FOUND = "property_not_found"
    TEMPLATE_INVALID = "template_invalid"
    SECRET_APPLY_FAILED = "secret_apply_failed"
    CLUSTER_API_ERROR = "cluster_api_error"
    CANCELLED = "cancelled"


class StoreBackend(str, Enum):
    """Backend discriminators of a store configuration."""

    VAULT = "vault"
    AWS = "aws"
    GCP = "gcp"


class VaultKVVersion(str, Enum):
    """Vault KV secret engine versions."""

    V1 = "v1"
    V2 = "v2"


class ConditionStatus(str, Enum):
    """Status values of a resource condition."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionType(str, Enum):
    """Known condition types."""

    READY = "Ready"


class OperationResult(str, Enum):
    """Outcome of a create-or-update call."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


# Base Models
class ResourceModel(BaseModel):
    """Base model for resources exchanged with the cluster API."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )


class SecretKeySelector(ResourceModel):
    """Selects one key of a cluster secret."""

    name: str
    key: str
    namespace: str | None = None


class ServiceAccountTokenSelector(SecretKeySelector):
    """Selects a service-account token; the key defaults to ``token``."""

    key: str = DEFAULT_KUBERNETES_TOKEN_KEY


class ObjectMeta(ResourceModel):
    """Subset of object metadata used by the reconciler."""

    name: str
    namespace: str | None = None
    uid: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


# Store configuration
class VaultAppRole(ResourceModel):
    """Vault AppRole authentication."""

    path: str = DEFAULT_VAULT_APPROLE_MOUNT_PATH
    role_id: str = Field(alias="roleId")
    secret_ref: SecretKeySelector = Field(alias="secretRef")


class VaultKubernetesAuth(ResourceModel):
    """Vault Kubernetes service-account authentication."""

    path: str = Field(default=DEFAULT_VAULT_KUBERNETES_MOUNT_PATH, alias="mountPath")
    role: str
    secret_ref: ServiceAccountTokenSelector | None = Field(default=None, alias="secretRef")


class VaultAuth(ResourceModel):
    """Vault authentication. Exactly one method must be configured."""

    token_secret_ref: SecretKeySelector | None = Field(
        default=None, alias="tokenSecretRef"
    )
    app_role: VaultAppRole | None = Field(default=None, alias="appRole")
    kubernetes: VaultKubernetesAuth | None = None

    @model_validator(mode="after")
    def validate_single_method(self) -> "VaultAuth":
        methods = [
            name
            for name, value in (
                ("tokenSecretRef", self.token_secret_ref),
                ("appRole", self.app_role),
                ("kubernetes", self.kubernetes),
            )
            if value is not None
        ]
        if len(methods) != 1:
            raise ValueError(
                "exactly one of tokenSecretRef, appRole or kubernetes must be set, "
                f"found {len(methods)}: {methods}"
            )
        return self


class VaultStore(ResourceModel):
    """Vault KV store configuration."""

    server: str
    path: str
    version: VaultKVVersion = VaultKVVersion.V2
    namespace: str | None = None
    ca_bundle: str | None = Field(default=None, alias="caBundle")
    auth: VaultAuth


class AWSSecretRef(ResourceModel):
    """Static AWS credentials stored in cluster secrets."""

    access_key_id: SecretKeySelector | None = Field(default=None, alias="accessKeyID")
    secret_access_key: SecretKeySelector | None = Field(
        default=None, alias="secretAccessKey"
    )


class AWSAuth(ResourceModel):
    """AWS authentication."""

    secret_ref: AWSSecretRef | None = Field(default=None, alias="secretRef")
    role: str | None = None


class AWSStore(ResourceModel):
    """AWS Secrets Manager store configuration."""

    region: str | None = None
    auth: AWSAuth | None = None


class GCPAuth(ResourceModel):
    """GCP authentication. At most one of json or file may be set."""

    json_key: SecretKeySelector | None = Field(default=None, alias="json")
    file: str | None = None


class GCPStore(ResourceModel):
    """GCP Secret Manager store configuration."""

    project_id: str | None = Field(default=None, alias="projectID")
    auth_secret_ref: GCPAuth | None = Field(default=None, alias="authSecretRef")


class StoreConfig(ResourceModel):
    """Store configuration holding exactly one backend variant."""

    vault: VaultStore | None = None
    aws: AWSStore | None = None
    gcp: GCPStore | None = None

    @model_validator(mode="after")
    def validate_single_backend(self) -> "StoreConfig":
        _ = self.backend
        return self

    @property
    def populated_backends(self) -> list[StoreBackend]:
        """Backends with a populated variant, in declaration order."""
        return [
            backend
            for backend in StoreBackend
            if getattr(self, backend.value, None) is not None
        ]

    @property
    def backend(self) -> StoreBackend:
        """The single configured backend."""
        from .exceptions import BackendAmbiguousError, BackendUnconfiguredError

        backends = self.populated_backends
        if not backends:
            raise BackendUnconfiguredError()
        if len(backends) > 1:
            raise BackendAmbiguousError(backends)
        return backends[0]


class SecretStore(ResourceModel):
    """A namespaced SecretStore or a ClusterSecretStore."""

    kind: str = SECRET_STORE_KIND
    metadata: ObjectMeta
    spec: StoreConfig

    @property
    def cluster_scoped(self) -> bool:
        return self.kind == CLUSTER_SECRET_STORE_KIND


# Desired state
class RemoteReference(ResourceModel):
    """Locator of a secret in the external store.

    The locator is accepted as either ``name`` or ``path`` on the wire.
    """

    name: str = Field(validation_alias=AliasChoices("name", "path"))
    property: str | None = None
    version: str | None = None


class KeyReference(ResourceModel):
    """Maps one fetched value to a key of the generated secret."""

    secret_key: str = Field(alias="secretKey")
    remote_ref: RemoteReference = Field(alias="remoteRef")


class StoreRef(ResourceModel):
    """Reference to the store serving an ExternalSecret."""

    name: str
    kind: str = SECRET_STORE_KIND


class ExternalSecretSpec(ResourceModel):
    """Desired state of an ExternalSecret."""

    store_ref: StoreRef = Field(alias="storeRef")
    data: list[KeyReference] = Field(default_factory=list)
    data_from: list[RemoteReference] = Field(default_factory=list, alias="dataFrom")
    template: dict[str, Any] | str | bytes | None = None


class StatusCondition(ResourceModel):
    """A single status condition."""

    type: ConditionType = ConditionType.READY
    status: ConditionStatus = ConditionStatus.UNKNOWN
    reason: str = ""
    message: str = ""
    last_transition_time: datetime = Field(
        default_factory=lambda: datetime.now(UTC), alias="lastTransitionTime"
    )


class ExternalSecretStatus(ResourceModel):
    """Observed state of an ExternalSecret."""

    conditions: list[StatusCondition] = Field(default_factory=list)

    def get_condition(self, condition_type: ConditionType) -> StatusCondition | None:
        for condition in self.conditions:
            if condition.type == condition_type:
                return condition
        return None

    def set_condition(self, condition: StatusCondition) -> bool:
        """Set a condition, returning whether anything changed.

        The transition time of an existing condition is kept when its status
        value does not change.
        """
        existing = self.get_condition(condition.type)
        if existing is None:
            self.conditions.append(condition)
            return True

        if (
            existing.status == condition.status
            and existing.reason == condition.reason
            and existing.message == condition.message
        ):
            return False

        if existing.status == condition.status:
            condition = condition.model_copy(
                update={"last_transition_time": existing.last_transition_time}
            )
        self.conditions = [
            condition if c.type == condition.type else c for c in self.conditions
        ]
        return True


class ExternalSecret(ResourceModel):
    """Desired-state resource describing which secrets to sync."""

    metadata: ObjectMeta
    spec: ExternalSecretSpec
    status: ExternalSecretStatus = Field(default_factory=ExternalSecretStatus)


# Generated output
class OwnerReference(ResourceModel):
    """Owner reference placed on the generated secret."""

    api_version: str = Field(default=API_VERSION, alias="apiVersion")
    kind: str = EXTERNAL_SECRET_KIND
    name: str
    uid: str | None = None
    controller: bool = True
    block_owner_deletion: bool = Field(default=True, alias="blockOwnerDeletion")


class GeneratedSecret(ResourceModel):
    """The native secret materialized from an ExternalSecret.

    ``data`` holds raw bytes; encoding for transport is left to the cluster
    client.
    """

    name: str
    namespace: str
    type: str = "Opaque"
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    data: dict[str, bytes] = Field(default_factory=dict)
    owner_references: list[OwnerReference] = Field(
        default_factory=list, alias="ownerReferences"
    )


class ResourceKey(BaseModel):
    """Namespaced name of an ExternalSecret."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class ReconcileResult:
    """Outcome of one reconcile invocation."""

    requeue_after: float | None = None
    operation: OperationResult | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
