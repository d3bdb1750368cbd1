"""
Vault endpoint helpers.

Builds and validates the canonical Azure Key Vault endpoint URI.
"""

from typing import Optional
from urllib.parse import urlparse

from .exceptions import ArgumentError

VAULT_HOST_SUFFIX = "vault.azure.net"


def build_vault_uri(vault_name: Optional[str]) -> str:
    """
    Build the endpoint URI for a vault from its short name.

    Args:
        vault_name: Short vault name, e.g. "my-vault"

    Returns:
        URI in the form https://<name>.vault.azure.net/

    Raises:
        ArgumentError: If vault_name is None or empty
    """
    if not vault_name:
        raise ArgumentError("Key vault name cannot be null or empty.", "vault_name")

    return f"https://{vault_name}.{VAULT_HOST_SUFFIX}/"


def normalize_vault_uri(vault_uri: Optional[str]) -> str:
    """
    Validate a caller supplied vault URI.

    Args:
        vault_uri: Full vault URI

    Returns:
        The URI unchanged

    Raises:
        ArgumentError: If the URI is empty or not absolute
    """
    if not vault_uri:
        raise ArgumentError("Key vault URI cannot be null or empty.", "vault_uri")

    parsed = urlparse(str(vault_uri))
    if not parsed.scheme or not parsed.netloc:
        raise ArgumentError(f"Key vault URI '{vault_uri}' is not a valid absolute URI.", "vault_uri")

    return str(vault_uri)
