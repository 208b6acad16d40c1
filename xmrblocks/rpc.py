"""JSON client for the Monero daemon's RPC interface."""

from __future__ import annotations

import threading
from typing import Any, Mapping, Optional, Union

import requests
from requests.auth import HTTPDigestAuth

CORE_RPC_STATUS_OK = "OK"
CORE_RPC_STATUS_BUSY = "BUSY"

FEE_ESTIMATE_GRACE_BLOCKS = 10

UNSIGNED_TX_PREFIX = b"Monero unsigned tx set\x03"
SIGNED_TX_PREFIX = b"Monero signed tx set\x03"
KEY_IMAGE_EXPORT_FILE_MAGIC = b"Monero key image export\x02"
OUTPUT_EXPORT_FILE_MAGIC = b"Monero output export\x03"

DEFAULT_DAEMON_URL = "http://127.0.0.1:18081"
DEFAULT_TIMEOUT_MS = 200000

LoginArg = Union[None, str, tuple[str, str]]


class RpcError(Exception):
    """A daemon call failed: no connection, a bad reply or a non-OK status."""


def _normalise_url(daemon_url: str) -> str:
    url = daemon_url.strip()
    if "://" not in url:
        url = "http://" + url
    return url.rstrip("/")


def _parse_login(login: LoginArg) -> Optional[tuple[str, str]]:
    if login is None:
        return None
    if isinstance(login, str):
        parts = login.partition(":")
        return parts[0], parts[2]
    return str(login[0]), str(login[1])


class RpcClient:
    """Calls the daemon's plain JSON endpoints and its JSON-RPC endpoint."""

    def __init__(
        self,
        daemon_url: str = DEFAULT_DAEMON_URL,
        login: LoginArg = None,
        timeout: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self.daemon_url = _normalise_url(daemon_url)
        self.login = _parse_login(login)
        self.timeout = timeout
        self._session = requests.Session()
        if self.login is not None:
            self._session.auth = HTTPDigestAuth(*self.login)
        self._lock = threading.Lock()

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the underlying HTTP connections."""
        self._session.close()

    def _post(self, path: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        url = self.daemon_url + path
        with self._lock:
            try:
                response = self._session.post(
                    url, json=dict(payload), timeout=self.timeout / 1000.0
                )
            except requests.RequestException as exc:
                raise RpcError(
                    f"Error connecting to Monero daemon at {self.daemon_url}"
                ) from exc
        if not response.ok:
            raise RpcError(
                f"Error connecting to Monero daemon at {self.daemon_url}: "
                f"HTTP {response.status_code}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise RpcError(f"Invalid JSON reply from {url}") from exc
        if not isinstance(data, dict):
            raise RpcError(f"Unexpected reply from {url}")
        return data

    @staticmethod
    def _check_status(
        result: Mapping[str, Any],
        busy_message: str,
        failure_message: Optional[str] = None,
    ) -> None:
        status = result.get("status")
        if status == CORE_RPC_STATUS_BUSY:
            error = busy_message
        elif status != CORE_RPC_STATUS_OK:
            error = failure_message if failure_message is not None else str(status)
        else:
            return
        raise RpcError(f"Error connecting to Monero daemon due to {error}")

    def _json_rpc(
        self,
        method: str,
        params: Optional[Mapping[str, Any]] = None,
        busy_message: str = "daemon is busy. Please try again later.",
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": "2.0", "id": 0, "method": method}
        if params is not None:
            payload["params"] = dict(params)
        data = self._post("/json_rpc", payload)
        if "error" in data:
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise RpcError(f"{method} failed: {message}")
        result = data.get("result")
        if not isinstance(result, dict):
            raise RpcError(f"{method} returned no result")
        self._check_status(result, busy_message)
        return result

    def get_current_height(self) -> int:
        """Return the daemon's current blockchain height."""
        data = self._post("/getheight", {})
        try:
            return int(data["height"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcError("getheight reply has no height") from exc

    def get_mempool(self) -> list[dict[str, Any]]:
        """Return the pool's transactions, most recently received first."""
        data = self._post("/get_transaction_pool", {})
        if data.get("status") != CORE_RPC_STATUS_OK:
            raise RpcError(f"Error connecting to Monero daemon at {self.daemon_url}")
        transactions = list(data.get("transactions") or [])
        transactions.sort(key=lambda tx: tx.get("receive_time", 0), reverse=True)
        return transactions

    def send_raw_transaction(self, tx_hex: str) -> dict[str, Any]:
        """Submit a hex-encoded transaction for relay; raise with the daemon's reason on failure."""
        try:
            data = self._post(
                "/sendrawtransaction", {"tx_as_hex": tx_hex, "do_not_relay": False}
            )
        except RpcError as exc:
            raise RpcError(f"Error sending tx: {exc}") from exc
        if data.get("status") == "Failed":
            raise RpcError(f"Error sending tx: {data.get('reason', '')}")
        return data

    def get_network_info(self) -> dict[str, Any]:
        """Return the daemon's get_info result."""
        return self._json_rpc(
            "get_info", busy_message="Daemon is busy. Please try again later."
        )

    def get_hardfork_info(self) -> dict[str, Any]:
        """Return the daemon's hard_fork_info result."""
        return self._json_rpc("hard_fork_info")

    def get_base_fee_estimate(self, grace_blocks: int = FEE_ESTIMATE_GRACE_BLOCKS) -> int:
        """Return the fee estimate from the plain /get_fee_estimate endpoint."""
        data = self._post("/get_fee_estimate", {"grace_blocks": grace_blocks})
        try:
            return int(data["fee"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcError("get_fee_estimate reply has no fee") from exc

    def get_dynamic_per_kb_fee_estimate(
        self, grace_blocks: int = FEE_ESTIMATE_GRACE_BLOCKS
    ) -> int:
        """Return the per-kB fee estimate from the get_fee_estimate JSON-RPC method."""
        result = self._json_rpc("get_fee_estimate", {"grace_blocks": grace_blocks})
        try:
            return int(result["fee"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcError("get_fee_estimate result has no fee") from exc

    def get_alt_blocks(self) -> list[str]:
        """Return the hashes of the daemon's alternative blocks."""
        data = self._post("/get_alt_blocks_hashes", {})
        self._check_status(
            data,
            "daemon is busy. Please try again later.",
            "daemon rpc failed. Please try again later.",
        )
        return list(data.get("blks_hashes") or [])

    def get_block_blob(self, blk_hash: str) -> bytes:
        """Return the binary blob of the block with the given hash."""
        result = self._json_rpc("getblock", {"hash": blk_hash})
        try:
            return bytes.fromhex(result["blob"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RpcError(f"getblock returned no valid blob for {blk_hash}") from exc