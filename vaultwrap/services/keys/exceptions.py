"""
Key Exceptions.

Raised by the key client when a named key cannot be found.
"""

from typing import Optional

from ...core.exceptions import KeyVaultError


class KeyNotFoundError(KeyVaultError):
    """Raised when a key (or its soft-deleted copy) does not exist."""

    DEFAULT_MESSAGE = "Key could not be found."

    def __init__(self, message: Optional[str] = None, key_name: Optional[str] = None):
        """Initialize key not found error.

        Args:
            message: Error message, defaults to DEFAULT_MESSAGE
            key_name: Name of the key (optional)
        """
        if message is None and key_name:
            message = f"Key '{key_name}' could not be found."
        super().__init__(message or self.DEFAULT_MESSAGE, error_code="KeyNotFound")
        self.key_name = key_name
