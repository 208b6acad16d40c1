"""Helpers for amounts, timestamps, paths and transaction summaries."""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

log = logging.getLogger(__name__)

PATH_SEPARATOR = "/"
ATOMIC_UNITS_PER_XMR = 1e12
SECONDS_PER_YEAR = 31536000
SECONDS_PER_DAY = 86400
SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60
SECOND_BLOCK_TIMESTAMP = 1397818193
_TIME_BUFFER_LENGTH = 60
_METRIC_PREFIXES = ("k", "M", "G", "T")

TxLike = Union[str, Mapping[str, Any]]


class NetworkType(IntEnum):
    """Monero network a blockchain belongs to."""

    MAINNET = 0
    TESTNET = 1
    STAGENET = 2
    FAKECHAIN = 3


@dataclass(frozen=True)
class TxSummary:
    """Totals and counts of a transaction's inputs and outputs."""

    xmr_outputs: int
    xmr_inputs: int
    no_outputs: int
    no_inputs: int
    mixin_no: int
    num_nonrct_inputs: int


def get_xmr(amount: float) -> float:
    """Convert atomic units to XMR."""
    return float(amount) / ATOMIC_UNITS_PER_XMR


def xmr_amount_to_str(
    amount: float, fmt: str = "{:0.12f}", zero_to_question_mark: bool = True
) -> str:
    """Format an atomic amount as XMR; a zero amount becomes '?' unless disabled."""
    if not zero_to_question_mark or amount > 0:
        return fmt.format(get_xmr(amount))
    return "?"


def timestamp_to_str_gm(timestamp: float, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Format a Unix timestamp in UTC; over-long results come back empty."""
    text = datetime.fromtimestamp(timestamp, timezone.utc).strftime(fmt)
    if len(text) >= _TIME_BUFFER_LENGTH:
        return ""
    return text


def get_human_readable_timestamp(ts: int) -> str:
    """Format a block timestamp in UTC, or '<unknown>' for implausibly old values."""
    if ts < 1234567890:
        return "<unknown>"
    return datetime.fromtimestamp(ts, timezone.utc).strftime("%Y-%m-%d %I:%M:%S")


def timestamp_difference(t1: int, t2: int) -> tuple[int, int, int, int, int]:
    """Split the distance between two timestamps into years, days, hours, minutes, seconds."""
    diff = abs(t1 - t2)
    years, diff = divmod(diff, SECONDS_PER_YEAR)
    days, diff = divmod(diff, SECONDS_PER_DAY)
    hours, diff = divmod(diff, SECONDS_PER_HOUR)
    minutes, seconds = divmod(diff, SECONDS_PER_MINUTE)
    return years, days, hours, minutes, seconds


def timestamps_time_scale(
    timestamps: Iterable[int],
    time_n: int,
    resolution: int = 80,
    time0: int = SECOND_BLOCK_TIMESTAMP,
) -> tuple[str, float]:
    """Mark timestamps on a text axis of ``resolution`` cells spanning [time0, time_n]."""
    axis = ["_"] * resolution
    axis_length = len(axis)
    interval = time_n - time0
    if interval <= 0 or axis_length == 0:
        raise ValueError("time_n must be later than time0 and resolution positive")
    scale = interval / axis_length
    for timestamp in timestamps:
        if timestamp < time0 or timestamp > time_n:
            log.info("Out of range")
            continue
        place = int((timestamp - time0) / interval * (axis_length - 1))
        axis[min(place + 1, axis_length - 1)] = "*"
    return "".join(axis), scale


def remove_trailing_path_separator(path: Union[str, os.PathLike]) -> Union[str, Path]:
    """Drop a single trailing path separator; a Path argument gives back a Path."""
    text = os.fspath(path)
    if text.endswith(PATH_SEPARATOR):
        text = text[:-1]
    if isinstance(path, str):
        return text
    return Path(text)


def _default_data_dir() -> str:
    if os.name == "nt":
        base = os.environ.get("PROGRAMDATA") or os.environ.get("ALLUSERSPROFILE", "C:\\ProgramData")
        return os.path.join(base, "bitmonero")
    return str(Path.home() / ".bitmonero")


def get_default_lmdb_folder(
    nettype: NetworkType = NetworkType.MAINNET, data_dir: Optional[str] = None
) -> str:
    """Return the default lmdb folder of the given network."""
    folder = data_dir if data_dir is not None else _default_data_dir()
    if nettype == NetworkType.TESTNET:
        folder += "/testnet"
    if nettype == NetworkType.STAGENET:
        folder += "/stagenet"
    return folder + "/lmdb"


def get_blockchain_path(
    bc_path: Optional[str] = None, nettype: NetworkType = NetworkType.MAINNET
) -> Path:
    """Resolve the blockchain folder, falling back to the network default."""
    path = Path(bc_path) if bc_path else Path(get_default_lmdb_folder(nettype))
    if not path.is_dir():
        raise NotADirectoryError(
            f'Given path "{path}" is not a folder or does not exist'
        )
    return Path(remove_trailing_path_separator(path))


def read(filename: Union[str, os.PathLike]) -> str:
    """Return a file's contents, or an empty string when it does not exist."""
    path = Path(filename)
    if not path.exists():
        log.error("File does not exist: %s", filename)
        return ""
    return path.read_text()


def _as_json(tx: TxLike) -> Optional[Mapping[str, Any]]:
    if isinstance(tx, str):
        try:
            return json.loads(tx)
        except ValueError as exc:
            log.error("cannot parse transaction json: %s", exc)
            return None
    return tx


def _key_inputs(tx: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    return [vin["key"] for vin in tx.get("vin", []) if "key" in vin]


def sum_money_in_outputs(tx: TxLike) -> tuple[int, int]:
    """Return the total amount and number of a transaction's outputs."""
    data = _as_json(tx)
    if data is None:
        return 0, 0
    outputs = data.get("vout", [])
    return sum(int(vout["amount"]) for vout in outputs), len(outputs)


def sum_money_in_inputs(tx: TxLike) -> tuple[int, int]:
    """Return the total amount and number of a transaction's key inputs."""
    data = _as_json(tx)
    if data is None:
        return 0, 0
    inputs = _key_inputs(data)
    return sum(int(key["amount"]) for key in inputs), len(inputs)


def count_nonrct_inputs(tx: TxLike) -> int:
    """Count key inputs that carry a visible (non-RingCT) amount."""
    data = _as_json(tx)
    if data is None:
        return 0
    return sum(1 for key in _key_inputs(data) if int(key["amount"]) != 0)


def summary_of_in_out_rct(tx: TxLike) -> TxSummary:
    """Summarise a transaction's inputs and outputs."""
    data = _as_json(tx)
    if data is None:
        raise ValueError("transaction is not valid json")
    vin = data.get("vin", [])
    if not vin:
        raise ValueError("transaction has no inputs")
    xmr_outputs, no_outputs = sum_money_in_outputs(data)
    inputs = _key_inputs(data)
    first = vin[0].get("key")
    mixin_no = len(first["key_offsets"]) - 1 if first is not None else 0
    return TxSummary(
        xmr_outputs=xmr_outputs,
        xmr_inputs=sum(int(key["amount"]) for key in inputs),
        no_outputs=no_outputs,
        no_inputs=len(vin),
        mixin_no=mixin_no,
        num_nonrct_inputs=count_nonrct_inputs(data),
    )


def get_mixin_no(tx: TxLike) -> int:
    """Return the ring size of the first key input that has one."""
    data = _as_json(tx)
    if data is None:
        return 0
    mixin_no = 0
    for key in _key_inputs(data):
        mixin_no = len(key.get("key_offsets", []))
        if mixin_no > 0:
            break
    return mixin_no


def get_metric_prefix(hash_rate: int) -> tuple[float, str]:
    """Scale a hash rate to k/M/G/T; small or huge rates come back unscaled with no prefix."""
    if hash_rate < 1000:
        return float(hash_rate), ""
    value = int(hash_rate)
    for prefix in _METRIC_PREFIXES:
        if value < 1000000:
            return value / 1000, prefix
        value //= 1000
    return float(hash_rate), ""


def make_difficulty(low: int, high: int) -> int:
    """Combine the low and high 64-bit halves of a difficulty."""
    return (high << 64) + low


def pause_execution(no_seconds: int, text: str = "now") -> None:
    """Print a progress dot each second while sleeping."""
    sys.stdout.write(f"\nPausing {text} for {no_seconds} seconds: ")
    sys.stdout.flush()
    for _ in range(no_seconds):
        sys.stdout.write(".")
        sys.stdout.flush()
        time.sleep(1)
    sys.stdout.write("\n")