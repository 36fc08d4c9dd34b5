"""Human decision collection for a pending transaction.

Dependencies: errors, transaction
Wired in: client.py → AuthorizationClient._await_decision(), cli.py → main()
"""

from __future__ import annotations

from typing import Protocol

from amped.errors import InvalidInput
from amped.transaction import Status, Transaction

_APPROVE_CHOICES = ("y",)
_DENY_CHOICES = ("n", "")
_PROMPT = "Do you want to approve this? [y/N] "


def parse_decision(reply: str) -> Status:
    """Map a single-line reply to a decision; unknown replies raise ``InvalidInput``."""
    answer = reply.strip()
    if answer in _APPROVE_CHOICES:
        return Status.APPROVED
    if answer in _DENY_CHOICES:
        return Status.DENIED
    raise InvalidInput("unrecognized_reply", f"Unrecognized reply: {answer!r}.")


class DecisionSource(Protocol):
    """Where the client gets the human's answer from."""

    def present(self, txn: Transaction) -> None: ...

    def read_reply(self) -> str: ...

    def reject(self, error: InvalidInput) -> None: ...


class TerminalPrompt:
    """Reads decisions from stdin; end of input counts as a denial."""

    def present(self, txn: Transaction) -> None:
        print(f"Message:\n\t{txn.text}")

    def read_reply(self) -> str:
        try:
            return input(_PROMPT)
        except EOFError:
            print()
            return ""

    def reject(self, error: InvalidInput) -> None:
        print("Invalid entry.\n")
