"""
Azure Key Vault secrets.

Secret client, object deserializer and the related options and errors.
"""

from .client import KeyVaultSecretClient, create_section_prefix
from .exceptions import SecretNotFoundError
from .models import (
    BulkFetchMode,
    DeserializeOptions,
    PropertySecretName,
    SecretIgnore,
    SecretName,
)
from .serializer import KeyVaultSecretSerializer, resolve_secret_name

__all__ = [
    # Client
    "KeyVaultSecretClient",
    "create_section_prefix",
    # Serialization
    "KeyVaultSecretSerializer",
    "resolve_secret_name",
    # Models
    "BulkFetchMode",
    "DeserializeOptions",
    "PropertySecretName",
    "SecretIgnore",
    "SecretName",
    # Exceptions
    "SecretNotFoundError",
]
