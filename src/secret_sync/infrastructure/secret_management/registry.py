"""Registry mapping store configurations to backend factories."""

import threading

import structlog

from secret_sync.domain.exceptions import (
    BackendAlreadyRegisteredError,
    BackendUnregisteredError,
)
from secret_sync.domain.models import StoreBackend, StoreConfig

from .base import StoreClientFactory

logger = structlog.get_logger()


class StoreRegistry:
    """Write-once, read-many mapping from backend to client factory.

    Registration happens while the process starts up; afterwards the registry
    is only read, possibly from many concurrent reconciles.
    """

    def __init__(self) -> None:
        self._factories: dict[StoreBackend, StoreClientFactory] = {}
        self._lock = threading.Lock()

    def register(self, backend: StoreBackend, factory: StoreClientFactory) -> None:
        """Register the factory serving a backend.

        Raises:
            BackendAlreadyRegisteredError: a factory already serves ``backend``.
        """
        with self._lock:
            if backend in self._factories:
                raise BackendAlreadyRegisteredError(backend)
            self._factories[backend] = factory

        logger.debug("Registered store backend", backend=backend.value)

    def resolve(self, config: StoreConfig) -> StoreClientFactory:
        """Return the factory for the single backend populated in ``config``.

        Raises:
            BackendUnconfiguredError: no backend variant is populated.
            BackendAmbiguousError: more than one variant is populated.
            BackendUnregisteredError: the variant has no registered factory.
        """
        backend = config.backend

        with self._lock:
            factory = self._factories.get(backend)

        if factory is None:
            raise BackendUnregisteredError(backend)
        return factory

    def backends(self) -> list[StoreBackend]:
        """List registered backends."""
        with self._lock:
            return list(self._factories)
