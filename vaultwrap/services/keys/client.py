"""
Key Vault Key Client.

Convenience wrapper around the async Azure Key Vault KeyClient adding
existence checks, soft-delete/purge helpers and cryptographic operations
against the current version of a named key.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Union
from urllib.parse import quote

from azure.core.credentials_async import AsyncTokenCredential
from azure.core.exceptions import HttpResponseError
from azure.core.rest import HttpRequest
from azure.identity.aio import DefaultAzureCredential
from azure.keyvault.keys import DeletedKey, KeyType, KeyVaultKey
from azure.keyvault.keys.aio import KeyClient
from azure.keyvault.keys.crypto import EncryptionAlgorithm, KeyWrapAlgorithm, SignatureAlgorithm
from azure.keyvault.keys.crypto.aio import CryptographyClient

from ...core.config_manager import VaultConfig
from ...core.errors import RequestFailureKind, classify_request_failure
from ...core.exceptions import validate_name
from ...core.logging_config import log_with_context
from ...core.uri import normalize_vault_uri
from .exceptions import KeyNotFoundError

logger = logging.getLogger(__name__)


class KeyVaultKeyClient:
    """
    Client for Azure Key Vault keys.

    Cryptographic operations always resolve the current key version first and
    run against a CryptographyClient scoped to that version, so every call
    costs one extra round trip.

    Attributes:
        vault_uri: Vault endpoint URI
    """

    def __init__(
        self,
        vault_uri: str,
        credential: Optional[AsyncTokenCredential] = None,
        client: Optional[KeyClient] = None,
    ):
        """Initialize the key client.

        Args:
            vault_uri: Vault endpoint URI
            credential: Token credential for the key client and every
                CryptographyClient, DefaultAzureCredential when omitted
            client: Pre-built SDK client (optional)

        Unlike the secret client, a credential is created even when client is
        given: cryptographic operations open their own CryptographyClient
        and always need one.

        Raises:
            ArgumentError: If vault_uri is empty or invalid
        """
        self.vault_uri = normalize_vault_uri(vault_uri)
        self._owns_credential = credential is None
        self._credential = credential or DefaultAzureCredential()
        self._client = client or KeyClient(vault_url=self.vault_uri, credential=self._credential)

    @classmethod
    def from_config(
        cls,
        config: VaultConfig,
        credential: Optional[AsyncTokenCredential] = None,
    ) -> "KeyVaultKeyClient":
        """Create a client for the vault described by config."""
        return cls(config.resolve_uri(), credential=credential)

    async def close(self) -> None:
        """Close the SDK client and any credential created by this client."""
        await self._client.close()
        if self._owns_credential:
            await self._credential.close()

    async def __aenter__(self) -> "KeyVaultKeyClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @contextmanager
    def _key_not_found(self, name: str) -> Iterator[None]:
        """Translate a classified not-found failure into KeyNotFoundError."""
        try:
            yield
        except HttpResponseError as ex:
            if classify_request_failure(ex) is RequestFailureKind.NOT_FOUND:
                raise KeyNotFoundError(key_name=name) from ex
            raise

    async def create(self, name: str, key_type: Union[KeyType, str]) -> KeyVaultKey:
        """
        Create a key, or a new version of an existing key.

        Args:
            name: Key name
            key_type: Key type, e.g. KeyType.rsa

        Returns:
            The created key version
        """
        validate_name(name, "Key")

        log_with_context(logger, logging.DEBUG, "Creating key", key_name=name, key_type=str(key_type))
        return await self._client.create_key(name, key_type)

    async def get(self, name: str) -> KeyVaultKey:
        """
        Retrieve the current version of a key.

        Raises:
            ArgumentError: If name is empty
            KeyNotFoundError: If the key does not exist
        """
        validate_name(name, "Key")

        with self._key_not_found(name):
            return await self._client.get_key(name)

    async def exists(self, name: str) -> bool:
        """Return True if the key exists."""
        try:
            await self.get(name)
            return True
        except KeyNotFoundError:
            return False

    # Delete

    async def delete(self, name: str, wait_to_complete: bool) -> None:
        """
        Soft delete a key.

        Args:
            name: Key name
            wait_to_complete: Wait for the SDK's delete operation to finish
                before returning

        Raises:
            ArgumentError: If name is empty
            KeyNotFoundError: If the key does not exist
        """
        validate_name(name, "Key")

        log_with_context(
            logger, logging.DEBUG, "Deleting key",
            key_name=name, wait_to_complete=wait_to_complete
        )
        with self._key_not_found(name):
            if wait_to_complete:
                await self._client.delete_key(name)
            else:
                await self._start_delete(name)

    async def delete_if_exists(self, name: str, wait_to_complete: bool) -> None:
        """Soft delete a key, doing nothing if it does not exist."""
        try:
            await self.delete(name, wait_to_complete)
        except KeyNotFoundError:
            pass

    async def _start_delete(self, name: str) -> None:
        # The aio SDK polls delete_key to completion; issue the request alone.
        request = HttpRequest("DELETE", f"/keys/{quote(name, safe='')}")
        response = await self._client.send_request(request)
        response.raise_for_status()

    async def is_deleted(self, name: str) -> bool:
        """Return True if the key is soft deleted and not yet purged."""
        try:
            await self.get_deleted(name)
            return True
        except KeyNotFoundError:
            return False

    async def get_deleted(self, name: str) -> DeletedKey:
        """
        Retrieve a soft deleted key.

        Raises:
            KeyNotFoundError: If the key is not soft deleted
        """
        validate_name(name, "Key")

        with self._key_not_found(name):
            return await self._client.get_deleted_key(name)

    async def get_deleted_if_exists(self, name: str) -> Optional[DeletedKey]:
        """Retrieve a soft deleted key, or None if it is not soft deleted."""
        try:
            return await self.get_deleted(name)
        except KeyNotFoundError:
            return None

    # Purge

    async def purge(self, name: str) -> None:
        """
        Permanently erase a soft deleted key.

        Raises:
            ArgumentError: If name is empty
            KeyNotFoundError: If there is no soft deleted key with that name
            HttpResponseError: If the key exists but has not been deleted
        """
        validate_name(name, "Key")

        log_with_context(logger, logging.DEBUG, "Purging key", key_name=name)
        with self._key_not_found(name):
            await self._client.purge_deleted_key(name)

    async def purge_if_deleted(self, name: str) -> None:
        """Purge a key if it is soft deleted, otherwise do nothing."""
        if await self.is_deleted(name):
            await self.purge(name)

    # Cryptography

    async def encrypt(self, name: str, algorithm: EncryptionAlgorithm, clear_data: bytes) -> bytes:
        """
        Encrypt data with the current version of a key.

        Raises:
            KeyNotFoundError: If the key does not exist
        """
        async with await self._create_crypto_client(name) as crypto_client:
            result = await crypto_client.encrypt(algorithm, clear_data)
        return result.ciphertext

    async def encrypt_text(
        self,
        name: str,
        algorithm: EncryptionAlgorithm,
        clear_text: str,
        encoding: str = "utf-8",
    ) -> bytes:
        """Encode clear_text and encrypt it with the current version of a key."""
        return await self.encrypt(name, algorithm, clear_text.encode(encoding))

    async def decrypt(self, name: str, algorithm: EncryptionAlgorithm, cipher: bytes) -> bytes:
        """
        Decrypt data with the current version of a key.

        Raises:
            KeyNotFoundError: If the key does not exist
        """
        async with await self._create_crypto_client(name) as crypto_client:
            result = await crypto_client.decrypt(algorithm, cipher)
        return result.plaintext

    async def decrypt_text(
        self,
        name: str,
        algorithm: EncryptionAlgorithm,
        cipher: bytes,
        encoding: str = "utf-8",
    ) -> str:
        """Decrypt cipher and decode the clear data to text."""
        clear_data = await self.decrypt(name, algorithm, cipher)
        return clear_data.decode(encoding)

    async def sign(self, name: str, algorithm: SignatureAlgorithm, digest: bytes) -> bytes:
        """Sign a digest with the current version of a key."""
        async with await self._create_crypto_client(name) as crypto_client:
            result = await crypto_client.sign(algorithm, digest)
        return result.signature

    async def verify(
        self,
        name: str,
        algorithm: SignatureAlgorithm,
        digest: bytes,
        signature: bytes,
    ) -> bool:
        """
        Verify a signature with the current version of a key.

        Returns:
            True if the signature is valid, False otherwise

        Raises:
            KeyNotFoundError: If the key does not exist
        """
        async with await self._create_crypto_client(name) as crypto_client:
            result = await crypto_client.verify(algorithm, digest, signature)
        return result.is_valid

    async def wrap(self, name: str, algorithm: KeyWrapAlgorithm, key_data: bytes) -> bytes:
        """Wrap a symmetric key with the current version of a key."""
        async with await self._create_crypto_client(name) as crypto_client:
            result = await crypto_client.wrap_key(algorithm, key_data)
        return result.encrypted_key

    async def unwrap(self, name: str, algorithm: KeyWrapAlgorithm, wrapped_key_data: bytes) -> bytes:
        """Unwrap a symmetric key with the current version of a key."""
        async with await self._create_crypto_client(name) as crypto_client:
            result = await crypto_client.unwrap_key(algorithm, wrapped_key_data)
        return result.key

    async def _create_crypto_client(self, name: str) -> CryptographyClient:
        key = await self.get(name)

        log_with_context(logger, logging.DEBUG, "Resolved key for cryptographic operation", key_id=key.id)
        return CryptographyClient(key.id, self._credential)
