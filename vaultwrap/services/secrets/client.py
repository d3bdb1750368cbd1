"""
Key Vault Secret Client.

Convenience wrapper around the async Azure Key Vault SecretClient adding
existence checks, section filtering, idempotent set, bulk reads and the
soft-delete/purge lifecycle helpers.
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Awaitable, Dict, Iterable, Iterator, List, Optional, TypeVar
from urllib.parse import quote

from azure.core.credentials_async import AsyncTokenCredential
from azure.core.exceptions import HttpResponseError
from azure.core.rest import HttpRequest
from azure.identity.aio import DefaultAzureCredential
from azure.keyvault.secrets import DeletedSecret, KeyVaultSecret
from azure.keyvault.secrets.aio import SecretClient

from ...core.config_manager import VaultConfig
from ...core.errors import RequestFailureKind, classify_request_failure
from ...core.exceptions import ArgumentError, ArgumentNullError, validate_name
from ...core.logging_config import log_with_context
from ...core.uri import normalize_vault_uri
from .exceptions import SecretNotFoundError
from .models import BulkFetchMode

logger = logging.getLogger(__name__)

SECTION_DELIMITER = "--"

T = TypeVar("T")


class KeyVaultSecretClient:
    """
    Client for Azure Key Vault secrets.

    Every operation is a single coroutine; cancelling the awaiting task
    cancels the in-flight SDK call.

    Attributes:
        vault_uri: Vault endpoint URI
    """

    def __init__(
        self,
        vault_uri: str,
        credential: Optional[AsyncTokenCredential] = None,
        client: Optional[SecretClient] = None,
    ):
        """Initialize the secret client.

        Args:
            vault_uri: Vault endpoint URI
            credential: Token credential, DefaultAzureCredential when omitted
            client: Pre-built SDK client (optional)

        Raises:
            ArgumentError: If vault_uri is empty or invalid
        """
        self.vault_uri = normalize_vault_uri(vault_uri)
        self._owns_credential = credential is None and client is None
        self._credential = credential
        if self._owns_credential:
            self._credential = DefaultAzureCredential()
        self._client = client or SecretClient(vault_url=self.vault_uri, credential=self._credential)

    @classmethod
    def from_config(
        cls,
        config: VaultConfig,
        credential: Optional[AsyncTokenCredential] = None,
    ) -> "KeyVaultSecretClient":
        """Create a client for the vault described by config."""
        return cls(config.resolve_uri(), credential=credential)

    async def close(self) -> None:
        """Close the SDK client and any credential created by this client."""
        await self._client.close()
        if self._owns_credential and self._credential is not None:
            await self._credential.close()

    async def __aenter__(self) -> "KeyVaultSecretClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @contextmanager
    def _secret_not_found(self, name: str) -> Iterator[None]:
        """Translate a classified not-found failure into SecretNotFoundError."""
        try:
            yield
        except HttpResponseError as ex:
            if classify_request_failure(ex) is RequestFailureKind.NOT_FOUND:
                raise SecretNotFoundError(secret_name=name) from ex
            raise

    # Get

    async def exists(self, name: str) -> bool:
        """Return True if the secret exists."""
        try:
            await self.get(name)
            return True
        except SecretNotFoundError:
            return False

    async def get_all(self) -> List[KeyVaultSecret]:
        """
        Retrieve every secret in the vault.

        Returns:
            Current version of each listed secret
        """
        secrets: List[KeyVaultSecret] = []

        async for properties in self._client.list_properties_of_secrets():
            secrets.append(await self.get(properties.name))

        return secrets

    async def get_section(self, section_name: Optional[str]) -> List[KeyVaultSecret]:
        """
        Retrieve all secrets belonging to a section.

        The section of "MySection--Secret1" and "MySection--Secret2" is
        "MySection". Matching is case sensitive.

        Args:
            section_name: Section name, with or without the trailing "--"

        Returns:
            Current version of each matching secret
        """
        prefix = create_section_prefix(section_name)
        secrets: List[KeyVaultSecret] = []

        async for properties in self._client.list_properties_of_secrets():
            if properties.name.startswith(prefix):
                secrets.append(await self.get(properties.name))

        return secrets

    async def get(self, name: str) -> KeyVaultSecret:
        """
        Retrieve a secret.

        Args:
            name: Secret name

        Returns:
            Current version of the secret

        Raises:
            ArgumentError: If name is empty
            SecretNotFoundError: If the secret does not exist
        """
        validate_name(name)

        with self._secret_not_found(name):
            return await self._client.get_secret(name)

    async def get_if_exists(self, name: str) -> Optional[KeyVaultSecret]:
        """Retrieve a secret, or None if it does not exist."""
        try:
            return await self.get(name)
        except SecretNotFoundError:
            return None

    async def get_value(self, name: str) -> Optional[str]:
        """
        Retrieve a secret's current value.

        Raises:
            SecretNotFoundError: If the secret does not exist
        """
        secret = await self.get(name)
        return secret.value

    async def get_value_if_exists(self, name: str) -> Optional[str]:
        """Retrieve a secret's current value, or None if it does not exist."""
        secret = await self.get_if_exists(name)
        return secret.value if secret is not None else None

    async def get_values_if_exists(
        self,
        names: Optional[Iterable[str]],
        mode: BulkFetchMode = BulkFetchMode.SEQUENTIAL,
    ) -> Dict[str, Optional[str]]:
        """
        Retrieve the current values of several secrets.

        Duplicate names are collapsed to a single entry. Missing secrets map
        to None.

        Args:
            names: Secret names
            mode: SEQUENTIAL awaits each call in turn, CONCURRENT issues all
                calls and then awaits them together

        Returns:
            Mapping of name to value, in first-occurrence order

        Raises:
            ArgumentNullError: If names is None
            ArgumentError: If names is a single string
        """
        if names is None:
            raise ArgumentNullError("names")
        if isinstance(names, str):
            raise ArgumentError("Secret names must be an iterable of names, not a single string.", "names")

        unique_names = list(dict.fromkeys(names))

        if BulkFetchMode(mode) is BulkFetchMode.SEQUENTIAL:
            values: Dict[str, Optional[str]] = {}
            for name in unique_names:
                values[name] = await self.get_value_if_exists(name)
            return values

        results = await _join_all(self.get_value_if_exists(name) for name in unique_names)
        return dict(zip(unique_names, results))

    # Get deleted

    async def is_deleted(self, name: str) -> bool:
        """Return True if the secret is soft deleted and not yet purged."""
        try:
            await self.get_deleted(name)
            return True
        except SecretNotFoundError:
            return False

    async def get_deleted(self, name: str) -> DeletedSecret:
        """
        Retrieve a soft deleted secret.

        Raises:
            ArgumentError: If name is empty
            SecretNotFoundError: If the secret is not soft deleted
        """
        validate_name(name)

        with self._secret_not_found(name):
            return await self._client.get_deleted_secret(name)

    async def get_deleted_if_exists(self, name: str) -> Optional[DeletedSecret]:
        """Retrieve a soft deleted secret, or None if it is not soft deleted."""
        try:
            return await self.get_deleted(name)
        except SecretNotFoundError:
            return None

    # Set

    async def set_value(self, name: str, value: str) -> KeyVaultSecret:
        """
        Set a secret's value.

        Creates the secret if it does not exist, otherwise adds a new current
        version.
        """
        validate_name(name)

        log_with_context(logger, logging.DEBUG, "Setting secret value", secret_name=name)
        return await self._client.set_secret(name, value)

    async def safe_set_value(self, name: str, value: str) -> bool:
        """
        Set a secret's value only if it differs from the current one.

        Read and write are not atomic: a concurrent writer between the two
        calls is not detected.

        Returns:
            True if a new version was written, False if the value was unchanged
        """
        validate_name(name)

        old_value = await self.get_value_if_exists(name)

        if old_value != value:
            await self.set_value(name, value)
            return True

        log_with_context(logger, logging.DEBUG, "Secret value unchanged, skipping set", secret_name=name)
        return False

    # Delete

    async def delete_all(self, wait_to_complete: bool) -> None:
        """
        Delete every secret in the vault.

        Deletes are issued concurrently. Secrets removed by someone else in the
        meantime are ignored. Every delete is awaited before the first other
        failure is raised.
        """
        names = [properties.name async for properties in self._client.list_properties_of_secrets()]

        log_with_context(logger, logging.INFO, "Deleting all secrets", count=len(names))
        await _join_all(self.delete_if_exists(name, wait_to_complete) for name in names)

    async def delete(self, name: str, wait_to_complete: bool) -> None:
        """
        Soft delete a secret.

        Args:
            name: Secret name
            wait_to_complete: Wait for the SDK's delete operation to finish
                before returning

        Raises:
            ArgumentError: If name is empty
            SecretNotFoundError: If the secret does not exist
        """
        validate_name(name)

        log_with_context(
            logger, logging.DEBUG, "Deleting secret",
            secret_name=name, wait_to_complete=wait_to_complete
        )
        with self._secret_not_found(name):
            if wait_to_complete:
                await self._client.delete_secret(name)
            else:
                await self._start_delete(name)

    async def delete_if_exists(self, name: str, wait_to_complete: bool) -> None:
        """Soft delete a secret, doing nothing if it does not exist."""
        try:
            await self.delete(name, wait_to_complete)
        except SecretNotFoundError:
            pass

    async def delete_and_purge(self, name: str) -> None:
        """
        Delete a secret, wait for the delete to complete and purge it.

        Raises:
            SecretNotFoundError: If the secret does not exist
        """
        await self.delete(name, True)
        await self.purge(name)

    async def _start_delete(self, name: str) -> None:
        # The aio SDK polls delete_secret to completion; issue the request alone.
        request = HttpRequest("DELETE", f"/secrets/{quote(name, safe='')}")
        response = await self._client.send_request(request)
        response.raise_for_status()

    # Purge

    async def purge(self, name: str) -> None:
        """
        Permanently erase a soft deleted secret.

        Raises:
            ArgumentError: If name is empty
            SecretNotFoundError: If there is no soft deleted secret with that name
            HttpResponseError: If the secret exists but has not been deleted
        """
        validate_name(name)

        log_with_context(logger, logging.DEBUG, "Purging secret", secret_name=name)
        with self._secret_not_found(name):
            await self._client.purge_deleted_secret(name)

    async def purge_if_deleted(self, name: str) -> None:
        """Purge a secret if it is soft deleted, otherwise do nothing."""
        if await self.is_deleted(name):
            await self.purge(name)

    async def purge_all_deleted(self) -> None:
        """Purge every soft deleted secret concurrently.

        Every purge is awaited before the first failure is raised.
        """
        names = [deleted.name async for deleted in self._client.list_deleted_secrets()]

        log_with_context(logger, logging.INFO, "Purging all deleted secrets", count=len(names))
        await _join_all(self.purge(name) for name in names)


async def _join_all(calls: Iterable[Awaitable[T]]) -> List[T]:
    """
    Await every call, then raise the first failure in submission order.

    Unlike a bare gather, no call is left running once this returns or raises.
    """
    results = await asyncio.gather(*calls, return_exceptions=True)

    for result in results:
        if isinstance(result, BaseException):
            raise result

    return results


def create_section_prefix(section_name: Optional[str]) -> str:
    """Return the secret name prefix for a section, ending with '--'."""
    if not section_name:
        return ""

    if section_name.endswith(SECTION_DELIMITER):
        return section_name

    return section_name + SECTION_DELIMITER
