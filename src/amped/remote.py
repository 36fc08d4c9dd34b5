"""HTTP access to the three server endpoints the protocol uses.

Dependencies: codec, errors, transaction
Wired in: client.py → AuthorizationClient, cli.py → main()
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, Self

import httpx

from amped.codec import TransactionCodec
from amped.errors import NetworkError
from amped.transaction import Status

_log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
LAST_TXN_PATH = "/api/user/+last-txn"
MODIFY_TXN_PATH = "/api/txn/+mod"
STATUS_PATH_TEMPLATE = "/api/txn/{txn_id}/+stat"


class RemoteService(Protocol):
    """The network operations the authorization client relies on."""

    def fetch_latest(self, device_id: int) -> str: ...

    def submit(self, transaction_id: int, device_id: int, payload: str, signature: str) -> bool: ...

    def query_status(self, transaction_id: int) -> Status: ...


class HttpRemoteService:
    """``RemoteService`` over a shared ``httpx.Client`` with per-call timeouts."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        codec: TransactionCodec | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._codec = codec or TransactionCodec()
        try:
            self._client = httpx.Client(
                base_url=base_url.rstrip("/"),
                timeout=timeout,
                transport=transport,
            )
        except httpx.InvalidURL as exc:
            raise NetworkError("malformed_endpoint", f"Invalid server URL: {base_url}") from exc

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def fetch_latest(self, device_id: int) -> str:
        """Return the first line of the latest-transaction response."""
        response = self._request("GET", LAST_TXN_PATH, params={"device_id": device_id})
        self._require_ok(response, "fetch latest transaction")
        return _first_line(response.text)

    def submit(self, transaction_id: int, device_id: int, payload: str, signature: str) -> bool:
        """POST a sealed decision; True only when the server answers 200."""
        response = self._request(
            "POST",
            MODIFY_TXN_PATH,
            data={"payload": payload, "signature": signature, "device_id": str(device_id)},
        )
        if response.status_code != httpx.codes.OK:
            _log.warning(
                "Submission of transaction %d rejected with HTTP %d",
                transaction_id,
                response.status_code,
            )
            return False
        return True

    def query_status(self, transaction_id: int) -> Status:
        response = self._request("GET", STATUS_PATH_TEMPLATE.format(txn_id=transaction_id))
        self._require_ok(response, "query transaction status")
        return self._codec.parse_status_line(_first_line(response.text))

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, path, **kwargs)
        except (httpx.UnsupportedProtocol, httpx.InvalidURL) as exc:
            raise NetworkError("malformed_endpoint", f"Invalid endpoint for {path}: {exc}") from exc
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise NetworkError(
                "unreachable", f"{method} {path} failed: {exc}", retryable=True
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkError("transport_error", f"{method} {path} failed: {exc}") from exc

    @staticmethod
    def _require_ok(response: httpx.Response, action: str) -> None:
        if response.status_code != httpx.codes.OK:
            raise NetworkError(
                "unexpected_status",
                f"Could not {action}: HTTP {response.status_code}.",
            )


def _first_line(body: str) -> str:
    lines = body.splitlines()
    return lines[0] if lines else ""
