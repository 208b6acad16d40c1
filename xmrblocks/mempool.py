"""Cached view of the daemon's transaction pool and network state, refreshed in the background."""

from __future__ import annotations

import json
import logging
import math
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Union

from .rpc import CORE_RPC_STATUS_BUSY, CORE_RPC_STATUS_OK, FEE_ESTIMATE_GRACE_BLOCKS, RpcClient
from .tools import (
    NetworkType,
    count_nonrct_inputs,
    get_mixin_no,
    get_xmr,
    make_difficulty,
    sum_money_in_inputs,
    sum_money_in_outputs,
    timestamp_to_str_gm,
    xmr_amount_to_str,
)

log = logging.getLogger(__name__)

DEFAULT_REFRESH_TIME = 10
NETWORK_INFO_INTERVAL = 60
HASH_SIZE = 32
_UINT64_MASK = (1 << 64) - 1


def get_status_uint(status: str) -> int:
    """Map a daemon status string to 1 (OK), 2 (BUSY) or 0 (anything else)."""
    if status == CORE_RPC_STATUS_OK:
        return 1
    if status == CORE_RPC_STATUS_BUSY:
        return 2
    return 0


def get_status_string(status: int) -> str:
    """Map 1 and 2 back to the daemon's status strings; other codes raise ValueError."""
    if status == 1:
        return CORE_RPC_STATUS_OK
    if status == 2:
        return CORE_RPC_STATUS_BUSY
    raise ValueError(f"unknown status code: {status}")


def _hex_to_hash(text: Any) -> bytes:
    try:
        data = bytes.fromhex(str(text))
    except ValueError:
        return bytes(HASH_SIZE)
    return data if len(data) == HASH_SIZE else bytes(HASH_SIZE)


def _wide_difficulty(info: Mapping[str, Any]) -> int:
    wide = info.get("wide_difficulty")
    if wide:
        return int(str(wide), 16) if isinstance(wide, str) else int(wide)
    return make_difficulty(int(info.get("difficulty", 0)), int(info.get("difficulty_top64", 0)))


@dataclass(frozen=True)
class NetworkInfo:
    """Snapshot of the daemon's network state, kept so stale data can still be shown."""

    status: int = 0
    height: int = 0
    target_height: int = 0
    difficulty: int = 0
    difficulty_top64: int = 0
    target: int = 0
    tx_count: int = 0
    tx_pool_size: int = 0
    alt_blocks_count: int = 0
    outgoing_connections_count: int = 0
    incoming_connections_count: int = 0
    white_peerlist_size: int = 0
    grey_peerlist_size: int = 0
    nettype: NetworkType = NetworkType.MAINNET
    top_block_hash: bytes = bytes(HASH_SIZE)
    cumulative_difficulty: int = 0
    cumulative_difficulty_top64: int = 0
    block_size_limit: int = 0
    block_size_median: int = 0
    block_weight_limit: int = 0
    block_size_limit_str: str = ""
    block_size_median_str: str = ""
    start_time: int = 0
    current_hf_version: int = 0
    hash_rate: int = 0
    hash_rate_top64: int = 0
    fee_per_kb: int = 0
    info_timestamp: int = 0
    current: bool = False

    @classmethod
    def from_rpc(
        cls, info: Mapping[str, Any], fee_per_kb: int, hardfork_version: int
    ) -> "NetworkInfo":
        """Build a current snapshot from a get_info result, a fee estimate and a fork version."""
        target = int(info.get("target", 0))
        if target <= 0:
            raise ValueError("network info has no block target time")
        hash_rate = _wide_difficulty(info) // target
        if info.get("testnet"):
            nettype = NetworkType.TESTNET
        elif info.get("stagenet"):
            nettype = NetworkType.STAGENET
        else:
            nettype = NetworkType.MAINNET
        block_size_limit = int(info.get("block_size_limit", 0))
        block_size_median = int(info.get("block_size_median", 0))
        return cls(
            status=get_status_uint(info.get("status", "")),
            height=int(info.get("height", 0)),
            target_height=int(info.get("target_height", 0)),
            difficulty=int(info.get("difficulty", 0)),
            difficulty_top64=int(info.get("difficulty_top64", 0)),
            target=target,
            tx_count=int(info.get("tx_count", 0)),
            tx_pool_size=int(info.get("tx_pool_size", 0)),
            alt_blocks_count=int(info.get("alt_blocks_count", 0)),
            outgoing_connections_count=int(info.get("outgoing_connections_count", 0)),
            incoming_connections_count=int(info.get("incoming_connections_count", 0)),
            white_peerlist_size=int(info.get("white_peerlist_size", 0)),
            nettype=nettype,
            top_block_hash=_hex_to_hash(info.get("top_block_hash", "")),
            cumulative_difficulty=int(info.get("cumulative_difficulty", 0)),
            cumulative_difficulty_top64=int(info.get("cumulative_difficulty_top64", 0)),
            block_size_limit=block_size_limit,
            block_size_median=block_size_median,
            block_weight_limit=int(info.get("block_weight_limit", 0)),
            block_size_limit_str="{:0.2f}".format(block_size_limit / 2.0 / 1024.0),
            block_size_median_str="{:0.2f}".format(block_size_median / 1024.0),
            start_time=int(info.get("start_time", 0)),
            current_hf_version=int(hardfork_version),
            hash_rate=hash_rate & _UINT64_MASK,
            hash_rate_top64=(hash_rate >> 64) & _UINT64_MASK,
            fee_per_kb=int(fee_per_kb),
            info_timestamp=int(time.time()),
            current=True,
        )


def _fee_per_kb(fee: int, tx_size: float) -> float:
    xmr = get_xmr(fee)
    if tx_size == 0:
        return math.inf if xmr else math.nan
    return xmr / tx_size


@dataclass(frozen=True)
class MempoolTx:
    """A pool transaction with its totals and display strings."""

    tx_hash: str
    tx: Mapping[str, Any] = field(repr=False)
    receive_time: int = 0
    sum_inputs: int = 0
    sum_outputs: int = 0
    no_inputs: int = 0
    no_outputs: int = 0
    num_nonrct_inputs: int = 0
    mixin_no: int = 0
    fee_str: str = ""
    fee_micro_str: str = ""
    payed_for_kB_str: str = ""
    payed_for_kB_micro_str: str = ""
    xmr_inputs_str: str = ""
    xmr_outputs_str: str = ""
    timestamp_str: str = ""
    txsize: str = ""

    @classmethod
    def from_rpc(cls, tx_info: Mapping[str, Any]) -> "MempoolTx":
        """Build an entry from one transaction of the daemon's pool listing."""
        raw = tx_info.get("tx_json")
        if isinstance(raw, str):
            try:
                tx: Union[Mapping[str, Any], Any] = json.loads(raw)
            except ValueError as exc:
                raise ValueError("Cant make tx from tx_info") from exc
        else:
            tx = raw
        if not isinstance(tx, Mapping):
            raise ValueError("Cant make tx from tx_info")

        blob_size = int(tx_info.get("blob_size", 0))
        fee = int(tx_info.get("fee", 0))
        receive_time = int(tx_info.get("receive_time", 0))

        sum_outputs, no_outputs = sum_money_in_outputs(tx)
        sum_inputs, no_inputs = sum_money_in_inputs(tx)

        tx_size = blob_size / 1024.0
        payed_for_kb = _fee_per_kb(fee, tx_size)

        return cls(
            tx_hash=str(tx_info.get("id_hash", "")),
            tx=tx,
            receive_time=receive_time,
            sum_inputs=sum_inputs,
            sum_outputs=sum_outputs,
            no_inputs=no_inputs,
            no_outputs=no_outputs,
            num_nonrct_inputs=count_nonrct_inputs(tx),
            mixin_no=get_mixin_no(tx),
            fee_str=xmr_amount_to_str(fee, "{:0.4f}", False),
            fee_micro_str=xmr_amount_to_str(fee * 1.0e6, "{:04.0f}", False),
            payed_for_kB_str="{:0.4f}".format(payed_for_kb),
            payed_for_kB_micro_str="{:04.0f}".format(payed_for_kb * 1e6),
            xmr_inputs_str=xmr_amount_to_str(sum_inputs, "{:0.3f}"),
            xmr_outputs_str=xmr_amount_to_str(sum_outputs, "{:0.3f}"),
            timestamp_str=timestamp_to_str_gm(receive_time),
            txsize="{:0.2f}".format(tx_size),
        )


class MempoolStatus:
    """Keeps the pool's transactions and the network info fresh for all readers."""

    def __init__(self, rpc: RpcClient, refresh_time: int = DEFAULT_REFRESH_TIME) -> None:
        self.rpc = rpc
        self.refresh_time = max(1, int(refresh_time))
        self._lock = threading.Lock()
        self._txs: list[MempoolTx] = []
        self._network_info = NetworkInfo()
        self.mempool_no = 0
        self.mempool_size = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def read_mempool(self) -> list[MempoolTx]:
        """Fetch the pool, newest first, and replace the cached transactions as a whole."""
        pool = sorted(self.rpc.get_mempool(), key=lambda t: t.get("receive_time", 0), reverse=True)
        txs = [MempoolTx.from_rpc(info) for info in pool]
        size = sum(int(info.get("blob_size", 0)) for info in pool)
        with self._lock:
            self.mempool_no = len(txs)
            self.mempool_size = size
            self._txs = txs
        return list(txs)

    def read_network_info(self) -> NetworkInfo:
        """Fetch network info, fee estimate and hard-fork version and cache the result."""
        info = self.rpc.get_network_info()
        fee = self.rpc.get_dynamic_per_kb_fee_estimate(FEE_ESTIMATE_GRACE_BLOCKS)
        hardfork = self.rpc.get_hardfork_info()
        network = NetworkInfo.from_rpc(info, fee, int(hardfork.get("version", 0)))
        with self._lock:
            self._network_info = network
        return network

    def get_mempool_txs(self, limit: Optional[int] = None) -> list[MempoolTx]:
        """Return a copy of the cached transactions, at most ``limit`` of them."""
        with self._lock:
            if limit is None:
                return list(self._txs)
            return self._txs[: max(0, limit)]

    def network_info(self) -> NetworkInfo:
        """Return the last network info read."""
        with self._lock:
            return self._network_info

    def _mark_network_info_stale(self) -> None:
        with self._lock:
            self._network_info = replace(self._network_info, current=False)

    def start(self) -> None:
        """Start the background refresh thread unless it already runs."""
        if self.is_running():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="mempool-status", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the background thread and wait for it to finish."""
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join()
        self._thread = None

    def is_running(self) -> bool:
        """Return whether the background thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        loop_index = 0
        divider = max(1, NETWORK_INFO_INTERVAL // self.refresh_time)
        while not self._stop.is_set():
            if loop_index % divider == 0:
                try:
                    self.read_network_info()
                    log.info("Current network info read")
                    loop_index = 0
                except Exception:
                    log.error("Cant read network info")
                    self._mark_network_info_stale()
            try:
                txs = self.read_mempool()
                log.info("mempool status txs: %d", len(txs))
            except Exception:
                log.error("Getting mempool failed")
            self._stop.wait(self.refresh_time)
            loop_index += 1
        log.info("Mempool status thread interrupted.")