"""Wire encodings for transactions.

Three forms cross the network:

* the inbound wire tuple ``"<ciphertext>|<signature>"`` (one line);
* the decrypted inbound record, a JSON array holding one serialized object
  ``{"pk": int, "fields": {"text": str, "status": int, "attempt_date": str}}``;
* the outbound canonical form ``"<id>|<text>|<status code>"`` that is
  encrypted to the server.

Binary values (ciphertexts, signatures) travel as URL-safe base64 text.

Dependencies: errors, transaction
Wired in: client.py → AuthorizationClient, remote.py → HttpRemoteService
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, cast

from amped.errors import DecodeError
from amped.transaction import STATUS_BY_CODE_V1, Status, Transaction

FIELD_DELIMITER = "|"


@dataclass(frozen=True)
class WireTuple:
    """A server ciphertext and the server signature over its text."""

    ciphertext: str
    signature: str


class TransactionCodec:
    """Serializes and parses the transaction wire forms."""

    def __init__(self, status_table: dict[int, Status] | None = None) -> None:
        self._status_by_code = status_table if status_table is not None else STATUS_BY_CODE_V1
        self._code_by_status = {status: code for code, status in self._status_by_code.items()}

    # -- outbound ---------------------------------------------------------

    def encode_canonical(self, txn: Transaction) -> str:
        return FIELD_DELIMITER.join((str(txn.id), txn.text, str(self.status_code(txn.status))))

    def decode_canonical(self, line: str) -> Transaction:
        """Parse the canonical form.

        The id never contains the delimiter and neither does the status code,
        so splitting on the first and last ``|`` recovers ``text`` even when it
        contains ``|`` itself.
        """
        head, sep, rest = line.partition(FIELD_DELIMITER)
        text, sep2, tail = rest.rpartition(FIELD_DELIMITER)
        if not sep or not sep2:
            raise DecodeError("malformed_canonical", "Canonical form needs three fields.")
        return Transaction(
            self._parse_int(head, "transaction id"),
            text,
            self.decode_status_code(self._parse_int(tail, "status code")),
        )

    def encode_wire_tuple(self, ciphertext: str, signature: str) -> str:
        return f"{ciphertext}{FIELD_DELIMITER}{signature}"

    # -- inbound ----------------------------------------------------------

    def decode_wire_tuple(self, line: str) -> WireTuple:
        """Split a fetched line on the first delimiter only."""
        stripped = line.rstrip("\r\n")
        ciphertext, sep, signature = stripped.partition(FIELD_DELIMITER)
        if not sep:
            raise DecodeError("malformed_wire_tuple", "Wire tuple is missing its delimiter.")
        if not ciphertext or not signature:
            raise DecodeError("malformed_wire_tuple", "Wire tuple has an empty field.")
        return WireTuple(ciphertext=ciphertext, signature=signature)

    def decode_record(self, plaintext: str | bytes) -> Transaction:
        """Build a transaction from the decrypted server JSON record."""
        try:
            payload: Any = json.loads(plaintext)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodeError("malformed_record", "Transaction record is not JSON.") from exc
        if not isinstance(payload, list) or len(cast(list[Any], payload)) != 1:
            raise DecodeError(
                "malformed_record", "Transaction record must be an array of one object."
            )
        record: Any = cast(list[Any], payload)[0]
        if not isinstance(record, dict):
            raise DecodeError("malformed_record", "Transaction record entry must be an object.")
        entry = cast(dict[str, Any], record)
        pk = entry.get("pk")
        fields: Any = entry.get("fields")
        if isinstance(pk, bool) or not isinstance(pk, int) or pk < 0:
            raise DecodeError("malformed_record", "Transaction record pk is invalid.")
        if not isinstance(fields, dict):
            raise DecodeError("malformed_record", "Transaction record fields are missing.")
        field_map = cast(dict[str, Any], fields)
        text = field_map.get("text")
        status_code = field_map.get("status")
        attempt_date = field_map.get("attempt_date")
        if not isinstance(text, str):
            raise DecodeError("malformed_record", "Transaction record text is invalid.")
        try:
            text.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise DecodeError(
                "malformed_record", "Transaction record text is not valid Unicode."
            ) from exc
        if isinstance(status_code, bool) or not isinstance(status_code, int):
            raise DecodeError("malformed_record", "Transaction record status is invalid.")
        _parse_attempt_date(attempt_date)
        return Transaction(pk, text, self.decode_status_code(status_code))

    def parse_status_line(self, line: str) -> Status:
        return self.decode_status_code(self._parse_int(line.strip(), "status code"))

    # -- status table -----------------------------------------------------

    def status_code(self, status: Status) -> int:
        return self._code_by_status[status]

    def decode_status_code(self, code: int) -> Status:
        status = self._status_by_code.get(code)
        if status is None:
            raise DecodeError("unknown_status", f"Unknown status code: {code}.")
        return status

    @staticmethod
    def _parse_int(raw: str, what: str) -> int:
        if not (raw.isascii() and raw.isdigit()):
            raise DecodeError("malformed_integer", f"Invalid {what}: {raw!r}.")
        return int(raw)


def _parse_attempt_date(value: Any) -> datetime:
    if not isinstance(value, str) or not value:
        raise DecodeError("malformed_record", "Transaction record attempt_date is missing.")
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise DecodeError(
            "malformed_record", f"Transaction record attempt_date is invalid: {value!r}."
        ) from exc


def b64_encode(value: bytes) -> str:
    """URL-safe base64 text for a binary value (never contains ``|``)."""
    return base64.urlsafe_b64encode(value).decode("ascii")


def b64_decode(value: str) -> bytes:
    try:
        return base64.b64decode(value.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, UnicodeEncodeError, ValueError) as exc:
        raise DecodeError("malformed_base64", "Value is not valid base64 text.") from exc
