"""
Secret Exceptions.

Raised by the secret client when a named secret cannot be found.
"""

from typing import Optional

from ...core.exceptions import KeyVaultError


class SecretNotFoundError(KeyVaultError):
    """Raised when a secret (or its soft-deleted copy) does not exist."""

    DEFAULT_MESSAGE = "Secret could not be found."

    def __init__(self, message: Optional[str] = None, secret_name: Optional[str] = None):
        """Initialize secret not found error.

        Args:
            message: Error message, defaults to DEFAULT_MESSAGE
            secret_name: Name of the secret (optional)
        """
        if message is None and secret_name:
            message = f"Secret '{secret_name}' could not be found."
        super().__init__(message or self.DEFAULT_MESSAGE, error_code="SecretNotFound")
        self.secret_name = secret_name
