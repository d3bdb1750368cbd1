"""
Key Vault Secret Serializer.

Populates the public writable properties of an arbitrary class from vault
secrets in one batched round trip.

Secret names are resolved per property:

1. Ignored properties (``SecretIgnore`` or listed in ``DeserializeOptions.ignore``)
   are skipped. Ignore wins over an explicit name.
2. An explicit name (``SecretName`` or ``DeserializeOptions.secret_names``) is
   used literally, without the prefix.
3. Otherwise the secret name is ``secret_name_prefix + property_name``.
"""

import logging
import typing
from typing import Any, Dict, List, Optional, Type, TypeVar, get_type_hints

from pydantic import TypeAdapter

from ...core.exceptions import ArgumentNullError
from ...core.logging_config import log_with_context
from .client import KeyVaultSecretClient
from .models import BulkFetchMode, DeserializeOptions, PropertySecretName, SecretIgnore, SecretName

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING_ANNOTATION = object()


class KeyVaultSecretSerializer:
    """Deserializes objects from vault secrets."""

    def __init__(self, secret_client: KeyVaultSecretClient):
        if secret_client is None:
            raise ArgumentNullError("secret_client")
        self._secret_client = secret_client

    async def deserialize(self, target_type: Type[T]) -> T:
        """Deserialize target_type using default options."""
        return await self.deserialize_with_options(target_type, DeserializeOptions())

    async def deserialize_with_options(self, target_type: Type[T], options: DeserializeOptions) -> T:
        """
        Create an instance of target_type populated from vault secrets.

        Args:
            target_type: Class with a no-argument constructor
            options: Prefix and explicit mapping table

        Returns:
            New instance; properties whose secret does not exist keep their
            default value

        Raises:
            ArgumentNullError: If options is None
        """
        if options is None:
            raise ArgumentNullError("options")

        obj = target_type()

        properties = get_public_properties(target_type)
        if not properties:
            return obj

        property_secret_names = build_property_secret_names(properties, options)
        if not property_secret_names:
            return obj

        values = await self._secret_client.get_values_if_exists(
            [p.secret_name for p in property_secret_names],
            mode=BulkFetchMode.CONCURRENT,
        )

        for secret_name, value in values.items():
            if value is None:
                continue
            for psn in property_secret_names:
                if psn.secret_name == secret_name:
                    _set_property_value(obj, psn.property_name, properties[psn.property_name], value)

        log_with_context(
            logger, logging.DEBUG, "Deserialized object from secrets",
            type=target_type.__name__,
            found=sum(1 for v in values.values() if v is not None),
            requested=len(values),
        )
        return obj


def get_public_properties(target_type: type) -> Dict[str, Any]:
    """
    Enumerate the public writable properties of a class.

    Annotated attributes (class variables excluded) and ``property``
    descriptors with a setter are included. Annotated metadata is preserved.

    Returns:
        Mapping of property name to its annotation (``Any`` for undeclared)
    """
    properties: Dict[str, Any] = {}

    hints = get_type_hints(target_type, include_extras=True)
    for name, annotation in hints.items():
        if name.startswith("_"):
            continue
        declared_type = _unwrap_annotated(annotation)[0]
        if declared_type is typing.ClassVar or typing.get_origin(declared_type) is typing.ClassVar:
            continue
        properties[name] = annotation

    for klass in reversed(target_type.__mro__):
        for name, member in vars(klass).items():
            if name.startswith("_") or not isinstance(member, property):
                continue
            if member.fset is None:
                properties.pop(name, None)
                continue
            hint = get_type_hints(member.fget, include_extras=True).get("return", Any) if member.fget else Any
            properties[name] = hint

    return properties


def build_property_secret_names(
    properties: Dict[str, Any],
    options: DeserializeOptions,
) -> List[PropertySecretName]:
    """Resolve the secret name of each property, dropping ignored ones."""
    names: List[PropertySecretName] = []

    for property_name, annotation in properties.items():
        secret_name = resolve_secret_name(property_name, annotation, options)
        if secret_name is not None:
            names.append(PropertySecretName(property_name=property_name, secret_name=secret_name))

    return names


def resolve_secret_name(
    property_name: str,
    annotation: Any = _MISSING_ANNOTATION,
    options: Optional[DeserializeOptions] = None,
) -> Optional[str]:
    """
    Resolve the secret name for a property.

    Returns:
        The secret name, or None if the property is ignored
    """
    options = options or DeserializeOptions()

    if is_ignored(property_name, annotation, options):
        return None

    explicit = get_secret_name_directive(property_name, annotation, options)
    if explicit is not None:
        return explicit

    return options.secret_name_prefix + property_name


def is_ignored(property_name: str, annotation: Any, options: DeserializeOptions) -> bool:
    """Return True if the property carries an ignore directive."""
    if property_name in options.ignore:
        return True
    return any(isinstance(m, SecretIgnore) for m in _directives(annotation))


def get_secret_name_directive(
    property_name: str,
    annotation: Any,
    options: DeserializeOptions,
) -> Optional[str]:
    """Return the explicit secret name for a property, if any."""
    if property_name in options.secret_names:
        return options.secret_names[property_name]
    for metadata in _directives(annotation):
        if isinstance(metadata, SecretName):
            return metadata.name
    return None


def _unwrap_annotated(annotation: Any):
    if typing.get_origin(annotation) is typing.Annotated:
        return annotation.__origin__, annotation.__metadata__
    return annotation, ()


def _directives(annotation: Any) -> tuple:
    return _unwrap_annotated(annotation)[1]


def _set_property_value(obj: Any, property_name: str, annotation: Any, value: str) -> None:
    declared_type = _unwrap_annotated(annotation)[0]
    if declared_type not in (Any, str, _MISSING_ANNOTATION):
        value = TypeAdapter(declared_type).validate_python(value)
    setattr(obj, property_name, value)
