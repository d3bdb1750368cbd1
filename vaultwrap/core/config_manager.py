"""
Configuration management for Vaultwrap.

Configuration is assembled from layers, lowest precedence first:

1. Model defaults
2. Configuration file (YAML or JSON)
3. Environment variables (see ``ENV_SETTINGS``)
4. Explicit overrides

Environment variables are only consulted here and in ``VaultConfig.from_env``,
never inside client constructors.
"""

import json
import logging
import os
from enum import Enum
from functools import reduce
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ArgumentError
from .uri import build_vault_uri, normalize_vault_uri

logger = logging.getLogger(__name__)

ENDPOINT_ENV_VAR = "KEYVAULT_ENDPOINT"
NAME_ENV_VAR = "KEYVAULT_NAME"

# Environment variable -> (section, field, normalizer)
ENV_SETTINGS: Dict[str, Tuple[str, str, Callable[[str], str]]] = {
    ENDPOINT_ENV_VAR: ("vault", "endpoint", str.strip),
    NAME_ENV_VAR: ("vault", "name", str.strip),
    "VAULTWRAP_LOG_LEVEL": ("logging", "level", str.upper),
    "VAULTWRAP_LOG_FORMAT": ("logging", "format", str.lower),
    "VAULTWRAP_LOG_FILE": ("logging", "file", str.strip),
    "VAULTWRAP_SDK_LOG_LEVEL": ("logging", "sdk_level", str.upper),
}

_FILE_LOADERS = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.load,
}


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging configuration consumed by ``setup_logging_from_config``.

    Attributes:
        level: Level of the vaultwrap loggers
        format: "json" or "text"
        file: Log file, console when unset
        sdk_level: Level of the Azure SDK loggers
    """
    level: LogLevel = LogLevel.INFO
    format: str = "json"
    file: Optional[str] = None
    sdk_level: LogLevel = LogLevel.WARNING

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Only json and text output are supported."""
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v


class VaultConfig(BaseModel):
    """Vault endpoint configuration.

    Attributes:
        endpoint: Full vault URI, takes precedence over name
        name: Short vault name, expanded to https://<name>.vault.azure.net/
    """
    endpoint: Optional[str] = None
    name: Optional[str] = None

    def resolve_uri(self) -> str:
        """
        Resolve the vault URI from the configured fields.

        Returns:
            Vault URI

        Raises:
            ArgumentError: If neither endpoint nor name is configured
        """
        if self.endpoint:
            return normalize_vault_uri(self.endpoint)
        if self.name:
            return build_vault_uri(self.name)
        raise ArgumentError(
            f"No vault configured. Set vault.endpoint, vault.name or {ENDPOINT_ENV_VAR}.",
            "vault"
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VaultConfig":
        """Build a vault configuration from KEYVAULT_ENDPOINT / KEYVAULT_NAME."""
        return cls(**environment_layer(environ).get("vault", {}))


class VaultwrapConfig(BaseModel):
    """Root Vaultwrap configuration."""

    vault: VaultConfig = Field(default_factory=VaultConfig)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(use_enum_values=True)


def read_config_file(config_file: str) -> Dict[str, Any]:
    """
    Read a YAML or JSON configuration file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the suffix is unsupported or the document is not a mapping
    """
    path = Path(config_file)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    loader = _FILE_LOADERS.get(path.suffix.lower())
    if loader is None:
        raise ValueError(f"Unsupported config file format: {path.suffix}")

    with open(path, "r", encoding="utf-8") as f:
        document = loader(f)

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ValueError(f"Configuration file must contain a mapping: {config_file}")
    return document


def environment_layer(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect the configuration values set through ``ENV_SETTINGS`` variables."""
    environ = os.environ if environ is None else environ
    layer: Dict[str, Any] = {}

    for variable, (section, field, normalize) in ENV_SETTINGS.items():
        value = environ.get(variable)
        if value:
            layer.setdefault(section, {})[field] = normalize(value)

    return layer


def merge_layers(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return base deep-merged with override, leaving both unchanged."""
    merged = dict(base)

    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = merge_layers(merged[key], value)
        else:
            merged[key] = value

    return merged


class ConfigManager:
    """
    Loads and validates Vaultwrap configuration.

    Args:
        environ: Environment mapping, ``os.environ`` when omitted
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ
        self._config: Optional[VaultwrapConfig] = None
        self._config_file: Optional[str] = None
        self._overrides: Optional[Dict[str, Any]] = None

    def load(
        self,
        config_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None
    ) -> VaultwrapConfig:
        """
        Load and validate configuration.

        Args:
            config_file: Path to a YAML or JSON configuration file
            overrides: Nested mapping applied last

        Returns:
            Validated VaultwrapConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the config file format is unsupported
        """
        layers = {
            "file": read_config_file(config_file) if config_file else {},
            "environment": environment_layer(self._environ),
            "overrides": overrides or {},
        }
        applied = [name for name, layer in layers.items() if layer]
        logger.debug(f"Loading configuration from layers: {applied or ['defaults']}")

        try:
            config = VaultwrapConfig(**reduce(merge_layers, layers.values(), {}))
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

        self._config = config
        self._config_file = config_file
        self._overrides = overrides
        return config

    def get_config(self) -> VaultwrapConfig:
        """
        Return the loaded configuration.

        Raises:
            RuntimeError: If configuration hasn't been loaded
        """
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load() first.")
        return self._config

    def reload(self) -> VaultwrapConfig:
        """Load again from the same file and overrides, picking up changes."""
        return self.load(config_file=self._config_file, overrides=self._overrides)
