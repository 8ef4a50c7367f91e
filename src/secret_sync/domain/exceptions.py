"""Exception hierarchy for secret synchronization."""

from typing import Any

from .models import ErrorCode, RemoteReference, StoreBackend


class SecretSyncError(Exception):
    """Base exception for secret synchronization errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class BackendConfigError(SecretSyncError):
    """Store configuration does not select exactly one usable backend."""


class BackendUnconfiguredError(BackendConfigError):
    """No backend variant is populated in the store configuration."""

    def __init__(self) -> None:
        super().__init__(
            "secret stores must have exactly one backend specified, found 0",
            ErrorCode.BACKEND_UNCONFIGURED,
        )


class BackendAmbiguousError(BackendConfigError):
    """More than one backend variant is populated."""

    def __init__(self, backends: list[StoreBackend]):
        names = ", ".join(backend.value for backend in backends)
        super().__init__(
            f"secret stores must have exactly one backend specified, "
            f"found {len(backends)} ({names})",
            ErrorCode.BACKEND_AMBIGUOUS,
            {"backends": [backend.value for backend in backends]},
        )


class BackendUnregisteredError(BackendConfigError):
    """The populated backend has no registered factory."""

    def __init__(self, backend: StoreBackend):
        super().__init__(
            f"failed to find registered store backend for type: {backend.value}",
            ErrorCode.BACKEND_UNREGISTERED,
            {"backend": backend.value},
        )
        self.backend = backend


class BackendAlreadyRegisteredError(SecretSyncError):
    """A factory is already registered for the backend."""

    def __init__(self, backend: StoreBackend):
        super().__init__(
            f"store {backend.value!r} already registered",
            ErrorCode.BACKEND_ALREADY_REGISTERED,
            {"backend": backend.value},
        )


class StoreNotFoundError(SecretSyncError):
    """The referenced SecretStore or ClusterSecretStore does not exist."""

    def __init__(self, kind: str, name: str, namespace: str | None = None):
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(
            f"cannot get store reference: {kind} {location!r} not found",
            ErrorCode.STORE_NOT_FOUND,
            {"kind": kind, "name": name, "namespace": namespace},
        )


class StoreSetupError(SecretSyncError):
    """Authentication or credential resolution failed for a store."""

    def __init__(self, reason: str, backend: StoreBackend | None = None):
        super().__init__(
            f"cannot setup store client: {reason}",
            ErrorCode.STORE_SETUP_FAILED,
            {"backend": backend.value if backend else None, "reason": reason},
        )
        self.reason = reason


class BackendReadError(SecretSyncError):
    """Fetching a referenced secret from the backend failed."""

    def __init__(self, name: str, reason: str):
        super().__init__(
            f"cannot get ExternalSecret data from store: name {name!r}: {reason}",
            ErrorCode.BACKEND_READ_FAILED,
            {"name": name, "reason": reason},
        )
        self.name = name
        self.reason = reason

    @classmethod
    def for_reference(cls, ref: RemoteReference, error: Exception) -> "BackendReadError":
        """Wrap any fetch failure for the reference that caused it."""
        if isinstance(error, BackendReadError):
            return error
        reason = error.message if isinstance(error, SecretSyncError) else str(error)
        return cls(ref.name, reason or type(error).__name__)


class PropertyNotFoundError(SecretSyncError):
    """The fetched payload does not contain the requested property."""

    def __init__(self, property_name: str):
        super().__init__(
            f"property {property_name!r} not found in secret response",
            ErrorCode.PROPERTY_NOT_FOUND,
            {"property": property_name},
        )


class TemplateInvalidError(SecretSyncError):
    """The template overlay is malformed or does not fit a secret."""

    def __init__(self, reason: str):
        super().__init__(
            f"failed to merge secret with template field: {reason}",
            ErrorCode.TEMPLATE_INVALID,
            {"reason": reason},
        )


class SecretApplyError(SecretSyncError):
    """Creating or updating the generated secret failed."""

    def __init__(self, name: str, namespace: str, reason: str):
        super().__init__(
            f"cannot apply generated secret {namespace}/{name}: {reason}",
            ErrorCode.SECRET_APPLY_FAILED,
            {"name": name, "namespace": namespace},
        )


class ReconcileCancelledError(SecretSyncError):
    """The reconcile deadline expired before the work completed."""

    def __init__(self, timeout: float):
        super().__init__(
            f"reconcile cancelled: deadline of {timeout:g}s exceeded",
            ErrorCode.CANCELLED,
            {"timeout": timeout},
        )


class ClusterAPIError(SecretSyncError):
    """The cluster API rejected or failed a request."""

    def __init__(self, operation: str, reason: str, status: int | None = None):
        super().__init__(
            f"cluster API {operation} failed: {reason}",
            ErrorCode.CLUSTER_API_ERROR,
            {"operation": operation, "status": status},
        )
        self.status = status
