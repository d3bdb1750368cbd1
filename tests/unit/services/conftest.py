"""
In-memory stand-ins for the async Azure Key Vault SDK clients.

The fakes keep live and soft-deleted items in separate stores and raise the
same HttpResponseError shapes the service returns, so the wrappers' error
translation is exercised end to end.
"""

import asyncio
import hashlib
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

from vaultwrap.services.keys.client import KeyVaultKeyClient
from vaultwrap.services.secrets.client import KeyVaultSecretClient

VAULT_URI = "https://unit-test.vault.azure.net/"


def http_error(status: int, message: str) -> HttpResponseError:
    error_type = ResourceNotFoundError if status == 404 else HttpResponseError
    error = error_type(message=message)
    error.status_code = status
    return error


def _version_id() -> str:
    return uuid.uuid4().hex


@dataclass
class FakeItemProperties:
    name: str
    enabled: bool = True


@dataclass
class FakeSecret:
    name: str
    value: Optional[str]
    id: str


@dataclass
class FakeDeletedSecret:
    name: str
    value: Optional[str]
    id: str
    recovery_id: str


@dataclass
class FakeKey:
    name: str
    id: str
    key_type: str


@dataclass
class FakeDeletedKey:
    name: str
    id: str
    recovery_id: str


class FakeResponse:
    """Minimal AsyncHttpResponse used for send_request."""

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        self._message = message

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise http_error(self.status_code, self._message)


class _FakeVaultStore:
    """Live and soft-deleted items for one resource kind."""

    def __init__(self, kind: str, collection: str):
        self.kind = kind
        self.collection = collection
        self.live: Dict[str, object] = {}
        self.deleted: Dict[str, object] = {}
        self.calls: List[Tuple[str, ...]] = []
        self.failures: Dict[Tuple[str, str], HttpResponseError] = {}
        self.delays: Dict[Tuple[str, str], int] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    def inject_failure(self, method: str, name: str, status: int, message: str = "Injected failure") -> None:
        self.failures[(method, name)] = http_error(status, message)

    def inject_delay(self, method: str, name: str, yields: int) -> None:
        """Make a call yield to the event loop several times before completing."""
        self.delays[(method, name)] = yields

    async def _enter(self, method: str, name: str = "") -> None:
        self.calls.append((method, name))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            for _ in range(1 + self.delays.get((method, name), 0)):
                await asyncio.sleep(0)
        finally:
            self.in_flight -= 1
        if (method, name) in self.failures:
            raise self.failures[(method, name)]

    def _not_found(self, name: str) -> HttpResponseError:
        return http_error(
            404,
            f"({self.kind}NotFound) A {self.kind.lower()} with (name/id) {name} was not found in this key vault."
        )

    def _deleted_not_found(self, name: str) -> HttpResponseError:
        return http_error(404, f"({self.kind}NotFound) Deleted {self.kind} not found: {name}")

    def _get_live(self, name: str):
        if name not in self.live:
            raise self._not_found(name)
        return self.live[name]

    def _soft_delete(self, name: str, deleted_item) -> None:
        if name not in self.live:
            raise self._not_found(name)
        del self.live[name]
        self.deleted[name] = deleted_item

    def _get_deleted(self, name: str):
        if name not in self.deleted:
            raise self._deleted_not_found(name)
        return self.deleted[name]

    def _purge(self, name: str) -> None:
        if name in self.deleted:
            del self.deleted[name]
            return
        if name in self.live:
            raise http_error(
                400,
                f"(ObjectMustBeDeletedPriorToBeingPurged) {self.kind} {name} is currently not in a deleted state."
            )
        raise self._deleted_not_found(name)

    async def _send_delete(self, request) -> FakeResponse:
        prefix = f"/{self.collection}/"
        assert request.method == "DELETE"
        assert request.url.startswith(prefix)
        name = unquote(request.url[len(prefix):])
        await self._enter("send_request", name)
        if name not in self.live:
            return FakeResponse(404, f"({self.kind}NotFound) {name} was not found")
        self._soft_delete(name, self._deleted_copy(name))
        return FakeResponse(200)

    def _deleted_copy(self, name: str):
        raise NotImplementedError

    def method_calls(self, method: str) -> List[str]:
        return [name for called, name in self.calls if called == method]

    async def close(self) -> None:
        self.closed = True


class FakeSecretClient(_FakeVaultStore):
    """Stands in for azure.keyvault.secrets.aio.SecretClient."""

    def __init__(self):
        super().__init__("Secret", "secrets")

    def seed(self, name: str, value: str) -> FakeSecret:
        secret = FakeSecret(name=name, value=value, id=f"{VAULT_URI}secrets/{name}/{_version_id()}")
        self.live[name] = secret
        return secret

    def seed_deleted(self, name: str, value: str = "deleted") -> None:
        self.deleted[name] = FakeDeletedSecret(
            name=name, value=value,
            id=f"{VAULT_URI}secrets/{name}",
            recovery_id=f"{VAULT_URI}deletedsecrets/{name}",
        )

    def _deleted_copy(self, name: str) -> FakeDeletedSecret:
        secret = self.live[name]
        return FakeDeletedSecret(
            name=name, value=secret.value,
            id=f"{VAULT_URI}secrets/{name}",
            recovery_id=f"{VAULT_URI}deletedsecrets/{name}",
        )

    async def get_secret(self, name: str, **kwargs) -> FakeSecret:
        await self._enter("get_secret", name)
        return self._get_live(name)

    async def set_secret(self, name: str, value: str, **kwargs) -> FakeSecret:
        await self._enter("set_secret", name)
        return self.seed(name, value)

    async def delete_secret(self, name: str, **kwargs) -> FakeDeletedSecret:
        await self._enter("delete_secret", name)
        if name not in self.live:
            raise self._not_found(name)
        deleted = self._deleted_copy(name)
        self._soft_delete(name, deleted)
        return deleted

    async def get_deleted_secret(self, name: str, **kwargs) -> FakeDeletedSecret:
        await self._enter("get_deleted_secret", name)
        return self._get_deleted(name)

    async def purge_deleted_secret(self, name: str, **kwargs) -> None:
        await self._enter("purge_deleted_secret", name)
        self._purge(name)

    async def list_properties_of_secrets(self, **kwargs):
        self.calls.append(("list_properties_of_secrets", ""))
        for name in list(self.live):
            yield FakeItemProperties(name=name)

    async def list_deleted_secrets(self, **kwargs):
        self.calls.append(("list_deleted_secrets", ""))
        for deleted in list(self.deleted.values()):
            yield deleted

    async def send_request(self, request, **kwargs) -> FakeResponse:
        return await self._send_delete(request)


class FakeKeyClient(_FakeVaultStore):
    """Stands in for azure.keyvault.keys.aio.KeyClient."""

    def __init__(self):
        super().__init__("Key", "keys")

    def seed(self, name: str, key_type: str = "RSA") -> FakeKey:
        key = FakeKey(name=name, id=f"{VAULT_URI}keys/{name}/{_version_id()}", key_type=str(key_type))
        self.live[name] = key
        return key

    def _deleted_copy(self, name: str) -> FakeDeletedKey:
        return FakeDeletedKey(
            name=name,
            id=f"{VAULT_URI}keys/{name}",
            recovery_id=f"{VAULT_URI}deletedkeys/{name}",
        )

    async def create_key(self, name: str, key_type, **kwargs) -> FakeKey:
        await self._enter("create_key", name)
        return self.seed(name, key_type)

    async def get_key(self, name: str, **kwargs) -> FakeKey:
        await self._enter("get_key", name)
        return self._get_live(name)

    async def delete_key(self, name: str, **kwargs) -> FakeDeletedKey:
        await self._enter("delete_key", name)
        if name not in self.live:
            raise self._not_found(name)
        deleted = self._deleted_copy(name)
        self._soft_delete(name, deleted)
        return deleted

    async def get_deleted_key(self, name: str, **kwargs) -> FakeDeletedKey:
        await self._enter("get_deleted_key", name)
        return self._get_deleted(name)

    async def purge_deleted_key(self, name: str, **kwargs) -> None:
        await self._enter("purge_deleted_key", name)
        self._purge(name)

    async def send_request(self, request, **kwargs) -> FakeResponse:
        return await self._send_delete(request)


@dataclass
class _Result:
    ciphertext: bytes = b""
    plaintext: bytes = b""
    signature: bytes = b""
    is_valid: bool = False
    encrypted_key: bytes = b""
    key: bytes = b""


class FakeCryptographyClient:
    """Stands in for azure.keyvault.keys.crypto.aio.CryptographyClient.

    Uses a keystream derived from the key id, so data encrypted under one key
    version only decrypts under the same version.
    """

    instances: List["FakeCryptographyClient"] = []

    def __init__(self, key_id: str, credential):
        self.key_id = key_id
        self.credential = credential
        self.closed = False
        self.operations: List[Tuple[str, object]] = []
        FakeCryptographyClient.instances.append(self)

    async def __aenter__(self) -> "FakeCryptographyClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.closed = True

    def _xor(self, data: bytes) -> bytes:
        stream = hashlib.sha256(self.key_id.encode()).digest()
        return bytes(b ^ stream[i % len(stream)] for i, b in enumerate(data))

    def _signature(self, digest: bytes) -> bytes:
        return hashlib.sha256(self.key_id.encode() + digest).digest()

    async def encrypt(self, algorithm, plaintext: bytes, **kwargs) -> _Result:
        self.operations.append(("encrypt", algorithm))
        return _Result(ciphertext=self._xor(plaintext))

    async def decrypt(self, algorithm, ciphertext: bytes, **kwargs) -> _Result:
        self.operations.append(("decrypt", algorithm))
        return _Result(plaintext=self._xor(ciphertext))

    async def sign(self, algorithm, digest: bytes, **kwargs) -> _Result:
        self.operations.append(("sign", algorithm))
        return _Result(signature=self._signature(digest))

    async def verify(self, algorithm, digest: bytes, signature: bytes, **kwargs) -> _Result:
        self.operations.append(("verify", algorithm))
        return _Result(is_valid=signature == self._signature(digest))

    async def wrap_key(self, algorithm, key: bytes, **kwargs) -> _Result:
        self.operations.append(("wrap_key", algorithm))
        return _Result(encrypted_key=self._xor(key))

    async def unwrap_key(self, algorithm, encrypted_key: bytes, **kwargs) -> _Result:
        self.operations.append(("unwrap_key", algorithm))
        return _Result(key=self._xor(encrypted_key))


class FakeCredential:
    """Async token credential placeholder."""

    def __init__(self):
        self.closed = False

    async def get_token(self, *scopes, **kwargs):
        raise AssertionError("The fakes never request tokens")

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_secrets():
    """Fresh in-memory secret store."""
    return FakeSecretClient()


@pytest.fixture
def secret_client(fake_secrets):
    """KeyVaultSecretClient backed by the in-memory secret store."""
    return KeyVaultSecretClient(VAULT_URI, client=fake_secrets)


@pytest.fixture
def fake_keys():
    """Fresh in-memory key store."""
    return FakeKeyClient()


@pytest.fixture
def credential():
    return FakeCredential()


@pytest.fixture
def default_credentials(monkeypatch):
    """Replace DefaultAzureCredential in both clients and collect the instances created."""
    created: List[FakeCredential] = []

    def create_credential():
        created.append(FakeCredential())
        return created[-1]

    monkeypatch.setattr("vaultwrap.services.keys.client.DefaultAzureCredential", create_credential)
    monkeypatch.setattr("vaultwrap.services.secrets.client.DefaultAzureCredential", create_credential)
    return created


@pytest.fixture
def crypto_clients(monkeypatch):
    """Replace the SDK CryptographyClient and collect the instances created."""
    FakeCryptographyClient.instances = []
    monkeypatch.setattr("vaultwrap.services.keys.client.CryptographyClient", FakeCryptographyClient)
    return FakeCryptographyClient.instances


@pytest.fixture
def key_client(fake_keys, credential, crypto_clients):
    """KeyVaultKeyClient backed by the in-memory key store."""
    return KeyVaultKeyClient(VAULT_URI, credential=credential, client=fake_keys)


@pytest.fixture
def make_http_error():
    """Factory for SDK errors with a given status and message."""
    return http_error
