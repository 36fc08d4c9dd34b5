"""Asymmetric primitives consumed by the authorization client.

``CryptoProvider`` is the contract the client depends on; key handles are
opaque to it.  ``SealedBoxCryptoProvider`` is the concrete implementation:
Ed25519 signatures and an X25519 sealed box (ephemeral key agreement, HKDF,
AES-GCM) for encryption to a recipient's public key.

Envelope layout: ``version(1) | ephemeral_pub(32) | nonce(12) | ciphertext+tag``.

Dependencies: errors
Wired in: client.py → AuthorizationClient, cli.py → main()
"""

from __future__ import annotations

import os
from typing import Any, Protocol

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from amped.errors import CryptoError

_ENVELOPE_VERSION = 1
_HKDF_INFO = b"amped:txn-envelope:v1"
_KEY_LENGTH = 32
_PUBLIC_KEY_LENGTH = 32
_NONCE_LENGTH = 12
_TAG_LENGTH = 16
_HEADER_LENGTH = 1 + _PUBLIC_KEY_LENGTH
_MIN_ENVELOPE_LENGTH = _HEADER_LENGTH + _NONCE_LENGTH + _TAG_LENGTH


class CryptoProvider(Protocol):
    """Sign/verify/encrypt/decrypt over opaque key handles."""

    def sign(self, key: Any, data: bytes) -> bytes: ...

    def verify(self, key: Any, data: bytes, signature: bytes) -> bool: ...

    def encrypt(self, key: Any, plaintext: bytes) -> bytes: ...

    def decrypt(self, key: Any, ciphertext: bytes) -> bytes: ...


class SealedBoxCryptoProvider:
    """``CryptoProvider`` backed by the ``cryptography`` package."""

    def sign(self, key: Any, data: bytes) -> bytes:
        if not isinstance(key, Ed25519PrivateKey):
            raise CryptoError("wrong_key_type", "Signing requires an Ed25519 private key.")
        return key.sign(data)

    def verify(self, key: Any, data: bytes, signature: bytes) -> bool:
        if not isinstance(key, Ed25519PublicKey):
            raise CryptoError("wrong_key_type", "Verification requires an Ed25519 public key.")
        try:
            key.verify(signature, data)
        except (InvalidSignature, ValueError):
            return False
        return True

    def encrypt(self, key: Any, plaintext: bytes) -> bytes:
        if not isinstance(key, X25519PublicKey):
            raise CryptoError("wrong_key_type", "Encryption requires an X25519 public key.")
        ephemeral = X25519PrivateKey.generate()
        ephemeral_pub = _raw_public(ephemeral.public_key())
        header = bytes([_ENVELOPE_VERSION]) + ephemeral_pub
        try:
            shared = ephemeral.exchange(key)
        except ValueError as exc:
            raise CryptoError("key_agreement_failed", "Recipient public key is unusable.") from exc
        aead_key = _derive_key(shared, ephemeral_pub, _raw_public(key))
        nonce = os.urandom(_NONCE_LENGTH)
        return header + nonce + AESGCM(aead_key).encrypt(nonce, plaintext, header)

    def decrypt(self, key: Any, ciphertext: bytes) -> bytes:
        if not isinstance(key, X25519PrivateKey):
            raise CryptoError("wrong_key_type", "Decryption requires an X25519 private key.")
        if len(ciphertext) < _MIN_ENVELOPE_LENGTH:
            raise CryptoError("truncated_envelope", "Ciphertext is too short.")
        if ciphertext[0] != _ENVELOPE_VERSION:
            raise CryptoError(
                "unsupported_envelope", f"Unsupported envelope version: {ciphertext[0]}."
            )
        header = ciphertext[:_HEADER_LENGTH]
        ephemeral_pub = header[1:]
        nonce = ciphertext[_HEADER_LENGTH : _HEADER_LENGTH + _NONCE_LENGTH]
        body = ciphertext[_HEADER_LENGTH + _NONCE_LENGTH :]
        try:
            shared = key.exchange(X25519PublicKey.from_public_bytes(ephemeral_pub))
            aead_key = _derive_key(shared, ephemeral_pub, _raw_public(key.public_key()))
            return AESGCM(aead_key).decrypt(nonce, body, header)
        except (InvalidTag, ValueError) as exc:
            raise CryptoError("decrypt_failed", "Ciphertext could not be decrypted.") from exc


def _derive_key(shared: bytes, ephemeral_pub: bytes, recipient_pub: bytes) -> bytes:
    return HKDF(
        algorithm=hashes.SHA256(),
        length=_KEY_LENGTH,
        salt=None,
        info=_HKDF_INFO + ephemeral_pub + recipient_pub,
    ).derive(shared)


def _raw_public(public_key: X25519PublicKey) -> bytes:
    return public_key.public_bytes(encoding=Encoding.Raw, format=PublicFormat.Raw)
