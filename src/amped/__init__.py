"""Device-side client for out-of-band transaction authorization.

Public API: AuthorizationClient, AuthorizationResult, ClientState, PollPolicy,
    Transaction, Status, Device, Server, TransactionCodec, CryptoProvider,
    SealedBoxCryptoProvider, RemoteService, HttpRemoteService, ClientConfig,
    load_config, and the error taxonomy
Internal: cli, cli_options, decision, keys
"""

from amped.client import AuthorizationClient, AuthorizationResult, ClientState, PollPolicy
from amped.codec import TransactionCodec, WireTuple
from amped.config import ClientConfig, load_config
from amped.crypto import CryptoProvider, SealedBoxCryptoProvider
from amped.errors import (
    AmpedError,
    ConfigError,
    CryptoError,
    DecodeError,
    ErrorKind,
    InvalidInput,
    InvalidTransitionError,
    NetworkError,
    PollExhaustedError,
    SignatureError,
    SubmissionError,
)
from amped.remote import HttpRemoteService, RemoteService
from amped.transaction import Device, Server, Status, Transaction

__all__ = [
    "AmpedError",
    "AuthorizationClient",
    "AuthorizationResult",
    "ClientConfig",
    "ClientState",
    "ConfigError",
    "CryptoError",
    "CryptoProvider",
    "DecodeError",
    "Device",
    "ErrorKind",
    "HttpRemoteService",
    "InvalidInput",
    "InvalidTransitionError",
    "NetworkError",
    "PollExhaustedError",
    "PollPolicy",
    "RemoteService",
    "SealedBoxCryptoProvider",
    "Server",
    "SignatureError",
    "Status",
    "SubmissionError",
    "Transaction",
    "TransactionCodec",
    "WireTuple",
    "load_config",
]
