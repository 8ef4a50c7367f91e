"""Domain layer for secret synchronization.

This module contains the resource models and the error taxonomy shared by the
store backends and the reconcile engine.
"""

from .exceptions import (
    BackendAlreadyRegisteredError,
    BackendAmbiguousError,
    BackendConfigError,
    BackendReadError,
    BackendUnconfiguredError,
    BackendUnregisteredError,
    ClusterAPIError,
    PropertyNotFoundError,
    ReconcileCancelledError,
    SecretApplyError,
    SecretSyncError,
    StoreNotFoundError,
    StoreSetupError,
    TemplateInvalidError,
)
from .models import (
    ConditionStatus,
    ConditionType,
    ErrorCode,
    ExternalSecret,
    ExternalSecretSpec,
    GeneratedSecret,
    KeyReference,
    ObjectMeta,
    OperationResult,
    OwnerReference,
    ReconcileResult,
    RemoteReference,
    ResourceKey,
    SecretKeySelector,
    ServiceAccountTokenSelector,
    SecretStore,
    StatusCondition,
    StoreBackend,
    StoreConfig,
    StoreRef,
)

__all__ = [
    # Models
    "ConditionStatus",
    "ConditionType",
    "ErrorCode",
    "ExternalSecret",
    "ExternalSecretSpec",
    "GeneratedSecret",
    "KeyReference",
    "ObjectMeta",
    "OperationResult",
    "OwnerReference",
    "ReconcileResult",
    "RemoteReference",
    "ResourceKey",
    "SecretKeySelector",
    "ServiceAccountTokenSelector",
    "SecretStore",
    "StatusCondition",
    "StoreBackend",
    "StoreConfig",
    "StoreRef",
    # Exceptions
    "BackendAlreadyRegisteredError",
    "BackendAmbiguousError",
    "BackendConfigError",
    "BackendReadError",
    "BackendUnconfiguredError",
    "BackendUnregisteredError",
    "ClusterAPIError",
    "PropertyNotFoundError",
    "ReconcileCancelledError",
    "SecretApplyError",
    "SecretSyncError",
    "StoreNotFoundError",
    "StoreSetupError",
    "TemplateInvalidError",
]
