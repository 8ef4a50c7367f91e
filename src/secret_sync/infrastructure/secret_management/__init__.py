"""External secret store backends."""

from .aws_secrets import AWSSecretsClient
from .base import StoreClient, StoreClientFactory, resolve_secret_key_ref
from .gcp_secrets import GCPSecretsClient
from .registry import StoreRegistry
from .vault_kv import VaultKVClient, VaultKVClientFactory

__all__ = [
    "StoreClient",
    "StoreClientFactory",
    "StoreRegistry",
    "resolve_secret_key_ref",
    "AWSSecretsClient",
    "GCPSecretsClient",
    "VaultKVClient",
    "VaultKVClientFactory",
]
