"""Error taxonomy for the authorization pipeline.

Every error carries a stable ``code`` string and a class-level ``kind`` so
callers can branch on the failure without parsing messages.  ``fatal`` marks
errors that end a run; ``InvalidInput`` is the only recoverable kind and never
leaves the decision step.

Dependencies: none (leaf module)
Wired in: every other module in the package
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Classification used by callers to branch on a failure."""

    CRYPTO = "crypto"
    SIGNATURE = "signature"
    DECODE = "decode"
    NETWORK = "network"
    SUBMISSION = "submission"
    POLL_EXHAUSTED = "poll_exhausted"
    INVALID_INPUT = "invalid_input"
    CONFIG = "config"


class AmpedError(Exception):
    """Base class for all client errors."""

    kind: ErrorKind = ErrorKind.CRYPTO
    fatal: bool = True

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class CryptoError(AmpedError):
    """Sign/verify/encrypt/decrypt failure or unusable key material."""

    kind = ErrorKind.CRYPTO


class SignatureError(AmpedError):
    """Server-originated ciphertext failed signature verification."""

    kind = ErrorKind.SIGNATURE


class DecodeError(AmpedError):
    """Malformed wire tuple, JSON record, or unknown status code."""

    kind = ErrorKind.DECODE


class NetworkError(AmpedError):
    """Transport failure, malformed endpoint, or unexpected HTTP response."""

    kind = ErrorKind.NETWORK

    def __init__(self, code: str, message: str, *, retryable: bool = False) -> None:
        super().__init__(code, message)
        self.retryable = retryable


class SubmissionError(AmpedError):
    """The server did not accept a submitted decision."""

    kind = ErrorKind.SUBMISSION

    def __init__(self, code: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(code, message)
        self.status_code = status_code


class PollExhaustedError(AmpedError):
    """No pending transaction appeared within the configured attempts."""

    kind = ErrorKind.POLL_EXHAUSTED


class InvalidInput(AmpedError):
    """Unrecognized human reply; the prompt is repeated."""

    kind = ErrorKind.INVALID_INPUT
    fatal = False


class InvalidTransitionError(InvalidInput):
    """A status change other than Unauthenticated→Approved/Denied was requested."""


class ConfigError(AmpedError):
    """Missing or invalid client configuration."""

    kind = ErrorKind.CONFIG
