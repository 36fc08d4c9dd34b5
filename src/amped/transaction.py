"""Transaction data model shared by the codec, crypto and client layers.

Dependencies: errors
Wired in: codec.py, client.py, remote.py
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from amped.errors import InvalidTransitionError

STATUS_TABLE_VERSION = 1


class Status(Enum):
    """Authorization outcome of a transaction."""

    UNAUTHENTICATED = "unauthenticated"
    APPROVED = "approved"
    DENIED = "denied"
    ERROR = "error"

    @property
    def code(self) -> int:
        return STATUS_CODES_V1[self]

    def __str__(self) -> str:
        return self.name


# Wire codes are fixed by the server protocol; never derive them from enum order.
STATUS_CODES_V1: dict[Status, int] = {
    Status.UNAUTHENTICATED: 0,
    Status.APPROVED: 1,
    Status.DENIED: 2,
    Status.ERROR: 3,
}
STATUS_BY_CODE_V1: dict[int, Status] = {code: status for status, code in STATUS_CODES_V1.items()}

_DECIDABLE = frozenset({Status.APPROVED, Status.DENIED})


class Transaction:
    """A single authorization request.

    ``id`` and ``text`` are fixed at construction.  ``status`` changes at most
    once, through :meth:`decide`.  ``encrypted_payload`` and ``signature`` stay
    ``None`` until :meth:`seal` is called right before submission.
    """

    def __init__(
        self,
        txn_id: int,
        text: str,
        status: Status = Status.UNAUTHENTICATED,
    ) -> None:
        if isinstance(txn_id, bool) or not isinstance(txn_id, int):
            raise TypeError("Transaction id must be an int.")
        if txn_id < 0:
            raise ValueError(f"Transaction id must be >= 0, got {txn_id}.")
        if not isinstance(text, str):
            raise TypeError("Transaction text must be a str.")
        self._id = txn_id
        self._text = text
        self._status = status
        self._encrypted_payload: str | None = None
        self._signature: str | None = None

    @property
    def id(self) -> int:
        return self._id

    @property
    def text(self) -> str:
        return self._text

    @property
    def status(self) -> Status:
        return self._status

    @property
    def encrypted_payload(self) -> str | None:
        return self._encrypted_payload

    @property
    def signature(self) -> str | None:
        return self._signature

    @property
    def is_pending(self) -> bool:
        return self._status is Status.UNAUTHENTICATED

    def decide(self, status: Status) -> None:
        """Record the human decision; only Unauthenticated→Approved/Denied is legal."""
        if self._status is not Status.UNAUTHENTICATED:
            raise InvalidTransitionError(
                "already_decided",
                f"Transaction {self._id} is already {self._status}.",
            )
        if status not in _DECIDABLE:
            raise InvalidTransitionError(
                "illegal_transition",
                f"Cannot move transaction {self._id} from {self._status} to {status}.",
            )
        self._status = status

    def seal(self, encrypted_payload: str, signature: str) -> None:
        """Attach the outbound ciphertext and the device signature over it."""
        if not encrypted_payload or not signature:
            raise ValueError("Sealed payload and signature must be non-empty.")
        self._encrypted_payload = encrypted_payload
        self._signature = signature

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transaction):
            return NotImplemented
        return (self._id, self._text, self._status) == (other._id, other._text, other._status)

    def __hash__(self) -> int:
        return hash((self._id, self._text))

    def __repr__(self) -> str:
        return f"Transaction(id={self._id}, text={self._text!r}, status={self._status})"


@dataclass(frozen=True)
class Device:
    """The approver identity: server-assigned id plus its two private key handles."""

    id: int
    decrypt_key: Any
    sign_key: Any

    def __post_init__(self) -> None:
        if isinstance(self.id, bool) or not isinstance(self.id, int) or self.id <= 0:
            raise ValueError(f"Device id must be a positive integer, got {self.id!r}.")


@dataclass(frozen=True)
class Server:
    """The remote authority: API base URL plus its two public key handles."""

    api_url: str
    verify_key: Any
    encrypt_key: Any

    def __post_init__(self) -> None:
        if not self.api_url:
            raise ValueError("Server api_url cannot be empty.")
        object.__setattr__(self, "api_url", self.api_url.rstrip("/"))
