"""
Secret Models.

Options and field directives used by the secret client and the object
deserializer. Secrets themselves are the SDK's own KeyVaultSecret and
DeletedSecret types.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BulkFetchMode(str, Enum):
    """How get_values_if_exists issues its remote calls.

    SEQUENTIAL awaits each get before issuing the next one.
    CONCURRENT issues every get at once and joins them.
    """
    SEQUENTIAL = "sequential"
    CONCURRENT = "concurrent"


@dataclass(frozen=True)
class SecretName:
    """Field directive mapping a property to an explicit secret name.

    The name is used literally, no prefix is applied::

        class Settings:
            api_key: Annotated[str, SecretName("Payments--ApiKey")] = None
    """
    name: str


@dataclass(frozen=True)
class SecretIgnore:
    """Field directive excluding a property from deserialization.

    Takes precedence over SecretName when both are present.
    """


@dataclass(frozen=True)
class PropertySecretName:
    """Pairs a target property with the secret it is populated from."""
    property_name: str
    secret_name: str


class DeserializeOptions(BaseModel):
    """Options for KeyVaultSecretSerializer.

    Attributes:
        secret_name_prefix: Prefix applied to default secret names
        secret_names: Explicit property name -> secret name table
        ignore: Property names to exclude
    """

    secret_name_prefix: str = ""
    secret_names: Dict[str, str] = Field(default_factory=dict)
    ignore: Set[str] = Field(default_factory=set)

    model_config = ConfigDict(frozen=True)

    @field_validator("secret_name_prefix", mode="before")
    @classmethod
    def default_prefix(cls, v: Optional[str]) -> str:
        """Treat a missing prefix as empty."""
        return v or ""
