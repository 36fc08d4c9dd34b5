"""Filesystem loading for the four key handles the client needs at startup.

Keys are PEM files in a single key directory; file names follow the
historical client layout.  Generation and rotation happen elsewhere.

Dependencies: errors, transaction
Wired in: cli.py → main()
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.serialization import load_pem_private_key, load_pem_public_key

from amped.errors import CryptoError
from amped.transaction import Device, Server

SERVER_VERIFY_KEY_FILE = "server_pub.pem"
SERVER_ENCRYPT_KEY_FILE = "server_enc_keys.pem"
DEVICE_DECRYPT_KEY_FILE = "device_crypt.pem"
DEVICE_SIGN_KEY_FILE = "device_sign.pem"


@dataclass(frozen=True)
class KeyPaths:
    """Filesystem locations for server and device key material."""

    server_verify_path: Path
    server_encrypt_path: Path
    device_decrypt_path: Path
    device_sign_path: Path

    @classmethod
    def in_dir(cls, key_dir: Path) -> KeyPaths:
        return cls(
            server_verify_path=key_dir / SERVER_VERIFY_KEY_FILE,
            server_encrypt_path=key_dir / SERVER_ENCRYPT_KEY_FILE,
            device_decrypt_path=key_dir / DEVICE_DECRYPT_KEY_FILE,
            device_sign_path=key_dir / DEVICE_SIGN_KEY_FILE,
        )


def load_server(api_url: str, paths: KeyPaths) -> Server:
    """Build the ``Server`` with its verification and encryption public keys."""
    return Server(
        api_url=api_url,
        verify_key=load_public_key(paths.server_verify_path, Ed25519PublicKey),
        encrypt_key=load_public_key(paths.server_encrypt_path, X25519PublicKey),
    )


def load_device(device_id: int, paths: KeyPaths) -> Device:
    """Build the ``Device`` with its decryption and signing private keys."""
    return Device(
        id=device_id,
        decrypt_key=load_private_key(paths.device_decrypt_path, X25519PrivateKey),
        sign_key=load_private_key(paths.device_sign_path, Ed25519PrivateKey),
    )


def load_public_key(path: Path, expected: type[Any]) -> Any:
    data = _read_key_file(path)
    try:
        key = load_pem_public_key(data)
    except (UnsupportedAlgorithm, ValueError) as exc:
        raise CryptoError("key_unparseable", f"Invalid public key file: {path}") from exc
    return _check_type(key, expected, path)


def load_private_key(path: Path, expected: type[Any]) -> Any:
    data = _read_key_file(path)
    try:
        key = load_pem_private_key(data, password=None)
    except (TypeError, UnsupportedAlgorithm, ValueError) as exc:
        raise CryptoError("key_unparseable", f"Invalid private key file: {path}") from exc
    return _check_type(key, expected, path)


def _read_key_file(path: Path) -> bytes:
    if not path.exists():
        raise CryptoError("key_missing", f"Required key file missing: {path}")
    try:
        return path.read_bytes()
    except OSError as exc:
        raise CryptoError("key_unreadable", f"Cannot read key file: {path}") from exc


def _check_type(key: Any, expected: type[Any], path: Path) -> Any:
    if not isinstance(key, expected):
        raise CryptoError(
            "wrong_key_type",
            f"Key file {path} holds {type(key).__name__}, expected {expected.__name__}.",
        )
    return key
