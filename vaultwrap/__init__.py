"""
Vaultwrap: convenience layer over the Azure Key Vault SDK.

Existence checks, idempotent sets, soft-delete/purge lifecycle helpers, bulk
operations and object deserialization for Key Vault secrets and keys.
"""

__version__ = "0.1.0"

from .core.config_manager import ConfigManager, VaultConfig, VaultwrapConfig
from .core.errors import RequestFailureKind, classify_request_failure, is_not_deleted, is_not_found
from .core.exceptions import ArgumentError, ArgumentNullError, KeyVaultError
from .core.uri import build_vault_uri
from .services.keys import KeyNotFoundError, KeyVaultKeyClient
from .services.secrets import (
    BulkFetchMode,
    DeserializeOptions,
    KeyVaultSecretClient,
    KeyVaultSecretSerializer,
    SecretIgnore,
    SecretName,
    SecretNotFoundError,
)

__all__ = [
    "__version__",
    "ArgumentError",
    "ArgumentNullError",
    "BulkFetchMode",
    "ConfigManager",
    "DeserializeOptions",
    "KeyNotFoundError",
    "KeyVaultError",
    "KeyVaultKeyClient",
    "KeyVaultSecretClient",
    "KeyVaultSecretSerializer",
    "RequestFailureKind",
    "SecretIgnore",
    "SecretName",
    "SecretNotFoundError",
    "VaultConfig",
    "VaultwrapConfig",
    "build_vault_uri",
    "classify_request_failure",
    "is_not_deleted",
    "is_not_found",
]
