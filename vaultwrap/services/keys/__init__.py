"""
Azure Key Vault keys.

Key client with lifecycle helpers and pass-through cryptographic operations.
"""

from .client import KeyVaultKeyClient
from .exceptions import KeyNotFoundError

__all__ = [
    "KeyVaultKeyClient",
    "KeyNotFoundError",
]
