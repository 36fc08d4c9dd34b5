"""Shared test fixtures for amped."""

from __future__ import annotations

import json
from collections import deque
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from amped.codec import TransactionCodec, b64_decode, b64_encode
from amped.crypto import SealedBoxCryptoProvider
from amped.errors import InvalidInput
from amped.keys import KeyPaths
from amped.transaction import Device, Server, Status, Transaction

_BASE_URL = "http://amped.test"
_DEVICE_ID = 7


class KeySet:
    """Both halves of the server and device key pairs."""

    def __init__(self) -> None:
        self.server_sign = Ed25519PrivateKey.generate()
        self.server_decrypt = X25519PrivateKey.generate()
        self.device_sign = Ed25519PrivateKey.generate()
        self.device_decrypt = X25519PrivateKey.generate()

    def device(self) -> Device:
        return Device(id=_DEVICE_ID, decrypt_key=self.device_decrypt, sign_key=self.device_sign)

    def server(self) -> Server:
        return Server(
            api_url=_BASE_URL,
            verify_key=self.server_sign.public_key(),
            encrypt_key=self.server_decrypt.public_key(),
        )

    def write_pem_files(self, key_dir: Path) -> KeyPaths:
        paths = KeyPaths.in_dir(key_dir)
        key_dir.mkdir(parents=True, exist_ok=True)
        paths.server_verify_path.write_bytes(_public_pem(self.server_sign))
        paths.server_encrypt_path.write_bytes(_public_pem(self.server_decrypt))
        paths.device_decrypt_path.write_bytes(_private_pem(self.device_decrypt))
        paths.device_sign_path.write_bytes(_private_pem(self.device_sign))
        return paths


class ServerSide:
    """Produces and reads wire data the way the real server does."""

    def __init__(self, keys: KeySet) -> None:
        self._keys = keys
        self._crypto = SealedBoxCryptoProvider()
        self._codec = TransactionCodec()

    def record(self, txn_id: int, text: str, status: Status) -> str:
        return json.dumps(
            [
                {
                    "model": "amped.transaction",
                    "pk": txn_id,
                    "fields": {
                        "text": text,
                        "status": status.code,
                        "attempt_date": "2011-04-01T12:30:00",
                    },
                }
            ]
        )

    def wire_line(self, txn_id: int, text: str, status: Status) -> str:
        plaintext = self.record(txn_id, text, status).encode("utf-8")
        ciphertext = b64_encode(
            self._crypto.encrypt(self._keys.device_decrypt.public_key(), plaintext)
        )
        signature = b64_encode(self._crypto.sign(self._keys.server_sign, ciphertext.encode()))
        return self._codec.encode_wire_tuple(ciphertext, signature)

    def open_submission(self, payload: str, signature: str) -> Transaction:
        """Verify the device signature and decode the submitted decision."""
        verified = self._crypto.verify(
            self._keys.device_sign.public_key(), payload.encode(), b64_decode(signature)
        )
        assert verified, "device signature did not verify"
        plaintext = self._crypto.decrypt(self._keys.server_decrypt, b64_decode(payload))
        return self._codec.decode_canonical(plaintext.decode("utf-8"))


class FakeRemote:
    """In-memory ``RemoteService`` that replays scripted responses."""

    def __init__(
        self,
        lines: Iterable[str | Exception] = (),
        *,
        accept: bool = True,
        confirmed: Status = Status.APPROVED,
    ) -> None:
        self.lines: deque[str | Exception] = deque(lines)
        self.accept = accept
        self.confirmed = confirmed
        self.fetches: list[int] = []
        self.submissions: list[dict[str, Any]] = []
        self.status_queries: list[int] = []

    def fetch_latest(self, device_id: int) -> str:
        self.fetches.append(device_id)
        if not self.lines:
            raise AssertionError("fetch_latest called more times than scripted.")
        item = self.lines.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def submit(self, transaction_id: int, device_id: int, payload: str, signature: str) -> bool:
        self.submissions.append(
            {
                "transaction_id": transaction_id,
                "device_id": device_id,
                "payload": payload,
                "signature": signature,
            }
        )
        return self.accept

    def query_status(self, transaction_id: int) -> Status:
        self.status_queries.append(transaction_id)
        return self.confirmed


class ScriptedPrompt:
    """``DecisionSource`` that answers from a list of replies."""

    def __init__(self, replies: Iterable[str]) -> None:
        self.replies = deque(replies)
        self.presented: list[Transaction] = []
        self.rejections: list[InvalidInput] = []

    def present(self, txn: Transaction) -> None:
        self.presented.append(txn)

    def read_reply(self) -> str:
        if not self.replies:
            raise AssertionError("Prompt read more times than scripted.")
        return self.replies.popleft()

    def reject(self, error: InvalidInput) -> None:
        self.rejections.append(error)


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _public_pem(private_key: Ed25519PrivateKey | X25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=Encoding.PEM, format=PublicFormat.SubjectPublicKeyInfo
    )


def _private_pem(private_key: Ed25519PrivateKey | X25519PrivateKey) -> bytes:
    return private_key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption(),
    )


@pytest.fixture()
def keys() -> KeySet:
    """Fresh server and device key pairs."""
    return KeySet()


@pytest.fixture()
def server_side(keys: KeySet) -> ServerSide:
    return ServerSide(keys)


@pytest.fixture()
def crypto() -> SealedBoxCryptoProvider:
    return SealedBoxCryptoProvider()


@pytest.fixture()
def codec() -> TransactionCodec:
    return TransactionCodec()


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def make_remote() -> type[FakeRemote]:
    return FakeRemote


@pytest.fixture()
def make_prompt() -> type[ScriptedPrompt]:
    return ScriptedPrompt
