"""
Vaultwrap Exceptions.

Base exception types shared by the secret and key clients.
"""

from typing import Optional


class KeyVaultError(Exception):
    """Base exception for Key Vault facade errors."""

    def __init__(self, message: str, error_code: str = "InternalError"):
        """Initialize Key Vault error.

        Args:
            message: Error message
            error_code: Azure style error code
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ArgumentError(KeyVaultError, ValueError):
    """Raised when an argument fails validation before any remote call."""

    def __init__(self, message: str, argument_name: Optional[str] = None):
        """Initialize argument error.

        Args:
            message: Error message
            argument_name: Name of the offending argument (optional)
        """
        super().__init__(message, error_code="BadParameter")
        self.argument_name = argument_name


class ArgumentNullError(ArgumentError):
    """Raised when a required argument is None."""

    def __init__(self, argument_name: str):
        super().__init__(f"Argument '{argument_name}' cannot be None.", argument_name)


def validate_name(name: Optional[str], kind: str = "Secret") -> None:
    """Ensure a secret or key name is a non-empty string.

    Args:
        name: Name to validate
        kind: Resource kind used in the error message

    Raises:
        ArgumentError: If name is None or empty
    """
    if not name:
        raise ArgumentError(f"{kind} name cannot be null or empty.", "name")
