"""Authorization protocol engine.

Drives one transaction through fetch → verify → decrypt → decide → encrypt →
sign → submit → confirm.  The server signature over the raw ciphertext text is
checked before decryption is attempted; a failed check aborts the run and is
never retried.

States::

    POLLING → AWAITING_DECISION → SUBMITTING → CONFIRMING → DONE
        └──────────────┴──────────────┴────────────┴──────→ ABORTED

Dependencies: codec, crypto, decision, errors, remote, transaction
Wired in: cli.py → main()
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from amped.codec import TransactionCodec, b64_decode, b64_encode
from amped.crypto import CryptoProvider
from amped.decision import DecisionSource, parse_decision
from amped.errors import (
    AmpedError,
    DecodeError,
    ErrorKind,
    InvalidInput,
    NetworkError,
    PollExhaustedError,
    SignatureError,
    SubmissionError,
)
from amped.remote import RemoteService
from amped.transaction import Device, Server, Status, Transaction

_log = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 7.0


class ClientState(StrEnum):
    POLLING = "polling"
    AWAITING_DECISION = "awaiting_decision"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    DONE = "done"
    ABORTED = "aborted"


_TERMINAL_STATES = frozenset({ClientState.DONE, ClientState.ABORTED})


@dataclass(frozen=True)
class PollPolicy:
    """How the client waits for a pending transaction.

    ``max_attempts`` of ``None`` polls until one shows up.  With
    ``retry_transient`` set, connection failures and timeouts while fetching
    count as an attempt instead of aborting.
    """

    interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    max_attempts: int | None = None
    retry_transient: bool = False

    def __post_init__(self) -> None:
        if not math.isfinite(self.interval) or self.interval <= 0:
            raise ValueError("Poll interval must be a finite number > 0.")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("Poll max_attempts must be >= 1 when set.")

    def exhausted(self, attempts: int) -> bool:
        return self.max_attempts is not None and attempts >= self.max_attempts


@dataclass(frozen=True)
class AuthorizationResult:
    """Outcome of one run; ``error`` is set exactly when the run aborted."""

    state: ClientState
    transaction: Transaction | None = None
    confirmed_status: Status | None = None
    error: AmpedError | None = None

    @property
    def ok(self) -> bool:
        return self.state is ClientState.DONE

    @property
    def exit_code(self) -> int:
        if self.ok:
            return 0
        if self.error is not None and self.error.kind is ErrorKind.SIGNATURE:
            return 2
        return 1


class AuthorizationClient:
    """Runs the authorization pipeline once for a device against a server."""

    def __init__(
        self,
        *,
        device: Device,
        server: Server,
        remote: RemoteService,
        crypto: CryptoProvider,
        decisions: DecisionSource,
        codec: TransactionCodec | None = None,
        poll_policy: PollPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        on_poll_wait: Callable[[Transaction | None], None] | None = None,
    ) -> None:
        self._device = device
        self._server = server
        self._remote = remote
        self._crypto = crypto
        self._decisions = decisions
        self._codec = codec or TransactionCodec()
        self._poll_policy = poll_policy or PollPolicy()
        self._sleep = sleep
        self._on_poll_wait = on_poll_wait
        self._state = ClientState.POLLING
        self._history: list[ClientState] = [ClientState.POLLING]
        self._transaction: Transaction | None = None
        self._started = False

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def history(self) -> list[ClientState]:
        return list(self._history)

    @property
    def transaction(self) -> Transaction | None:
        return self._transaction

    def run(self, *, raise_on_error: bool = False) -> AuthorizationResult:
        """Execute the full pipeline.

        Fatal errors move the client to ``ABORTED`` and are returned in the
        result, or re-raised when ``raise_on_error`` is set.
        """
        if self._started:
            raise RuntimeError("AuthorizationClient instances run only once.")
        self._started = True
        try:
            txn = self._poll()
            self._transaction = txn
            self._transition(ClientState.AWAITING_DECISION)
            self._await_decision(txn)
            self._transition(ClientState.SUBMITTING)
            self._submit(txn)
            self._transition(ClientState.CONFIRMING)
            confirmed = self._remote.query_status(txn.id)
            self._transition(ClientState.DONE)
        except AmpedError as exc:
            self._abort(exc)
            if raise_on_error:
                raise
            return AuthorizationResult(
                state=ClientState.ABORTED, transaction=self._transaction, error=exc
            )
        _log.info("Transaction %d confirmed as %s", txn.id, confirmed)
        return AuthorizationResult(
            state=ClientState.DONE, transaction=txn, confirmed_status=confirmed
        )

    def fetch_verified(self) -> Transaction:
        """Fetch the latest server record, verify its signature, then decrypt it."""
        wire = self._codec.decode_wire_tuple(self._remote.fetch_latest(self._device.id))
        try:
            signature = b64_decode(wire.signature)
        except DecodeError as exc:
            raise SignatureError(
                "signature_malformed", "Server signature is not decodable."
            ) from exc
        if not self._crypto.verify(
            self._server.verify_key, wire.ciphertext.encode("utf-8"), signature
        ):
            raise SignatureError(
                "signature_invalid", "Server signature does not match the ciphertext."
            )
        plaintext = self._crypto.decrypt(self._device.decrypt_key, b64_decode(wire.ciphertext))
        return self._codec.decode_record(plaintext)

    def _poll(self) -> Transaction:
        policy = self._poll_policy
        attempts = 0
        while True:
            attempts += 1
            try:
                txn = self.fetch_verified()
            except NetworkError as exc:
                if not (policy.retry_transient and exc.retryable):
                    raise
                if policy.exhausted(attempts):
                    raise PollExhaustedError(
                        "poll_exhausted",
                        f"Server unreachable after {attempts} attempts.",
                    ) from exc
                _log.warning(
                    "Transient fetch failure (%s); retrying in %.1fs", exc.code, policy.interval
                )
                self._wait(None)
                continue
            if txn.is_pending:
                _log.debug("Pending transaction %d found after %d attempt(s)", txn.id, attempts)
                return txn
            if policy.exhausted(attempts):
                raise PollExhaustedError(
                    "poll_exhausted",
                    f"No pending transaction after {attempts} attempts.",
                )
            _log.info(
                "Latest transaction %d is already %s; polling again in %.1fs",
                txn.id,
                txn.status,
                policy.interval,
            )
            self._wait(txn)

    def _wait(self, txn: Transaction | None) -> None:
        if self._on_poll_wait is not None:
            self._on_poll_wait(txn)
        self._sleep(self._poll_policy.interval)

    def _await_decision(self, txn: Transaction) -> None:
        self._decisions.present(txn)
        while txn.is_pending:
            reply = self._decisions.read_reply()
            try:
                txn.decide(parse_decision(reply))
            except InvalidInput as exc:
                _log.debug("Rejected reply for transaction %d: %s", txn.id, exc.code)
                self._decisions.reject(exc)

    def _submit(self, txn: Transaction) -> None:
        canonical = self._codec.encode_canonical(txn)
        ciphertext = b64_encode(
            self._crypto.encrypt(self._server.encrypt_key, canonical.encode("utf-8"))
        )
        signature = b64_encode(self._crypto.sign(self._device.sign_key, ciphertext.encode("utf-8")))
        txn.seal(ciphertext, signature)
        if not self._remote.submit(txn.id, self._device.id, ciphertext, signature):
            raise SubmissionError(
                "submission_rejected", f"Server rejected the decision for transaction {txn.id}."
            )

    def _transition(self, state: ClientState) -> None:
        if self._state in _TERMINAL_STATES:
            raise RuntimeError(f"Cannot leave terminal state {self._state}.")
        _log.debug("Client state %s → %s", self._state, state)
        self._state = state
        self._history.append(state)

    def _abort(self, exc: AmpedError) -> None:
        if exc.kind is ErrorKind.SIGNATURE:
            _log.error("Possible tampering, aborting: %s (%s)", exc.message, exc.code)
        else:
            _log.error("Aborting in state %s: %s (%s)", self._state, exc.message, exc.code)
        if self._state not in _TERMINAL_STATES:
            self._transition(ClientState.ABORTED)
