"""Core module initialization."""

from .config_manager import ConfigManager, LoggingConfig, VaultConfig, VaultwrapConfig
from .errors import RequestFailureKind, classify_request_failure, is_not_deleted, is_not_found
from .exceptions import ArgumentError, ArgumentNullError, KeyVaultError
from .logging_config import setup_logging, setup_logging_from_config, get_logger
from .uri import build_vault_uri, normalize_vault_uri

__all__ = [
    "ConfigManager",
    "LoggingConfig",
    "VaultConfig",
    "VaultwrapConfig",
    "RequestFailureKind",
    "classify_request_failure",
    "is_not_deleted",
    "is_not_found",
    "ArgumentError",
    "ArgumentNullError",
    "KeyVaultError",
    "setup_logging",
    "setup_logging_from_config",
    "get_logger",
    "build_vault_uri",
    "normalize_vault_uri",
]
