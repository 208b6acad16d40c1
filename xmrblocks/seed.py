"""RandomX seed-height schedule and the environment settings that tune it."""

from __future__ import annotations

import os
import re
from typing import Mapping, Optional

HASH_SIZE = 32
SEEDHASH_EPOCH_BLOCKS = 2048
SEEDHASH_EPOCH_LAG = 64
INT_MAX = 2**31 - 1

UMASK_VARIABLE = "MONERO_RANDOMX_UMASK"
EPOCH_LAG_VARIABLE = "SEEDHASH_EPOCH_LAG"
EPOCH_BLOCKS_VARIABLE = "SEEDHASH_EPOCH_BLOCKS"

_STRTOL_PATTERN = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")
_ATOI_PATTERN = re.compile(r"\s*([+-]?[0-9]+)")


def _environ(environ: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def _strtol(text: str) -> Optional[int]:
    """Parse a leading integer the way strtol does with base 0, or None."""
    match = _STRTOL_PATTERN.match(text)
    if match is None:
        return None
    sign, digits = match.groups()
    if digits[:2] in ("0x", "0X"):
        value = int(digits[2:], 16)
    elif digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits)
    return -value if sign == "-" else value


def _atoi(text: str) -> int:
    match = _ATOI_PATTERN.match(text)
    return int(match.group(1)) if match else 0


def _is_power_of_2(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


def disabled_flags(environ: Optional[Mapping[str, str]] = None) -> int:
    """Return the RandomX flags masked out by MONERO_RANDOMX_UMASK (0 if unset or invalid)."""
    text = _environ(environ).get(UMASK_VARIABLE)
    if text is None:
        return 0
    value = _strtol(text)
    if value is None or not 0 <= value < INT_MAX:
        return 0
    return value


def seedhash_epoch_lag(environ: Optional[Mapping[str, str]] = None) -> int:
    """Return the seed-hash epoch lag, a power of two no larger than 64."""
    text = _environ(environ).get(EPOCH_LAG_VARIABLE)
    if text is None:
        return SEEDHASH_EPOCH_LAG
    lag = _atoi(text)
    if lag > SEEDHASH_EPOCH_LAG or not _is_power_of_2(lag):
        return SEEDHASH_EPOCH_LAG
    return lag


def seedhash_epoch_blocks(environ: Optional[Mapping[str, str]] = None) -> int:
    """Return the seed-hash epoch length, a power of two between 2 and 2048."""
    text = _environ(environ).get(EPOCH_BLOCKS_VARIABLE)
    if text is None:
        return SEEDHASH_EPOCH_BLOCKS
    blocks = _atoi(text)
    if blocks < 2 or blocks > SEEDHASH_EPOCH_BLOCKS or not _is_power_of_2(blocks):
        return SEEDHASH_EPOCH_BLOCKS
    return blocks


def seed_height(
    height: int,
    epoch_blocks: Optional[int] = None,
    epoch_lag: Optional[int] = None,
) -> int:
    """Return the height of the block whose hash seeds RandomX at ``height``."""
    if epoch_blocks is None:
        epoch_blocks = seedhash_epoch_blocks()
    if epoch_lag is None:
        epoch_lag = seedhash_epoch_lag()
    if height < 0:
        raise ValueError("height must not be negative")
    if height <= epoch_blocks + epoch_lag:
        return 0
    return (height - epoch_lag - 1) & ~(epoch_blocks - 1)


def seed_heights(
    height: int,
    epoch_blocks: Optional[int] = None,
    epoch_lag: Optional[int] = None,
) -> tuple[int, int]:
    """Return the current seed height and the one in effect ``epoch_lag`` blocks later."""
    if epoch_blocks is None:
        epoch_blocks = seedhash_epoch_blocks()
    if epoch_lag is None:
        epoch_lag = seedhash_epoch_lag()
    return (
        seed_height(height, epoch_blocks, epoch_lag),
        seed_height(height + epoch_lag, epoch_blocks, epoch_lag),
    )


def hash_to_hex(data: bytes) -> str:
    """Render a 32-byte hash as lower-case hex."""
    if len(data) != HASH_SIZE:
        raise ValueError(f"hash must be {HASH_SIZE} bytes, got {len(data)}")
    return bytes(data).hex()