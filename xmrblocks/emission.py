"""Running total of coins emitted by the blockchain, kept in a small checksummed file."""

from __future__ import annotations

import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Union

from .tools import read

log = logging.getLogger(__name__)

DEFAULT_OUTPUT_FILE = "emission_amount.txt"
DEFAULT_CHUNK_SIZE = 10000
DEFAULT_CHUNK_GAP = 3
SCAN_PAUSE_SECONDS = 1
TOP_PAUSE_SECONDS = 60
_UINT64_MASK = (1 << 64) - 1


class EmissionFileError(Exception):
    """The saved emission file is missing, unreadable or fails its checksum."""


@dataclass(frozen=True)
class Emission:
    """Coinbase and fee totals for all blocks below ``blk_no``."""

    coinbase: int = 0
    fee: int = 0
    blk_no: int = 0

    def checksum(self) -> int:
        """Return the 64-bit sum of the three fields."""
        return (self.coinbase + self.fee + self.blk_no) & _UINT64_MASK

    def __str__(self) -> str:
        return f"{self.blk_no},{self.coinbase},{self.fee},{self.checksum()}"

    @classmethod
    def parse(cls, text: str) -> "Emission":
        """Parse ``blk_no,coinbase,fee,checksum`` and verify the checksum."""
        stripped = text.rstrip(" \n\r\t")
        if not stripped:
            raise EmissionFileError("emission data is empty")
        fields = stripped.split(",")
        if len(fields) < 4:
            raise EmissionFileError(f"Problem splitting emission values from: {stripped}")
        numbers = []
        for field in fields[:4]:
            if not field.isdigit():
                raise EmissionFileError(f"Cant parse to number data from string: {stripped}")
            numbers.append(int(field))
        blk_no, coinbase, fee, read_checksum = numbers
        emission = cls(coinbase=coinbase, fee=fee, blk_no=blk_no)
        if read_checksum != emission.checksum():
            raise EmissionFileError(
                f"read_check_sum != check_sum: {read_checksum} != {emission.checksum()}"
            )
        return emission


class BlockSource(ABC):
    """Read access to the blockchain needed for counting emission."""

    @abstractmethod
    def height(self) -> int:
        """Return the current blockchain height."""

    @abstractmethod
    def block_amounts(self, height: int) -> tuple[int, int]:
        """Return (sum of the miner transaction's outputs, sum of fees of its transactions)."""


class EmissionMonitor:
    """Scans the blockchain in chunks and keeps the total emission up to date."""

    def __init__(
        self,
        source: BlockSource,
        blockchain_path: Union[str, os.PathLike],
        output_file: str = DEFAULT_OUTPUT_FILE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_gap: int = DEFAULT_CHUNK_GAP,
    ) -> None:
        self.source = source
        self.blockchain_path = Path(blockchain_path)
        self.output_file = output_file
        self.chunk_size = chunk_size
        self.chunk_gap = chunk_gap
        self.current_height = 0
        self._total = Emission()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def total(self) -> Emission:
        """The stored emission, a few blocks behind the top of the chain."""
        with self._lock:
            return self._total

    def output_file_path(self) -> Path:
        """Return the path of the file the emission is saved to."""
        return self.blockchain_path / self.output_file

    def calculate_emission_in_blocks(self, start_blk: int, end_blk: int) -> Emission:
        """Sum the emission of blocks in [start_blk, end_blk)."""
        coinbase = 0
        fee = 0
        block = start_blk
        while block < end_blk:
            coinbase_amount, tx_fee_amount = self.source.block_amounts(block)
            coinbase += coinbase_amount - tx_fee_amount
            fee += tx_fee_amount
            block += 1
        return Emission(coinbase=coinbase, fee=fee, blk_no=block)

    def update_current_emission_amount(self) -> Emission:
        """Advance the stored total by at most one chunk, staying ``chunk_gap`` below the top."""
        self.current_height = self.source.height()
        current = self.total
        end_block = current.blk_no + self.chunk_size
        if end_block > self.current_height:
            end_block = max(0, self.current_height - self.chunk_gap)
        calculated = self.calculate_emission_in_blocks(current.blk_no, end_block)
        updated = Emission(
            coinbase=current.coinbase + calculated.coinbase,
            fee=current.fee + calculated.fee,
            blk_no=calculated.blk_no,
        )
        with self._lock:
            self._total = updated
        return updated

    def save_current_emission_amount(self) -> None:
        """Write the stored total to the output file."""
        self.output_file_path().write_text(str(self.total))

    def load_current_emission_amount(self) -> Emission:
        """Load the stored total from the output file; raise EmissionFileError if it is bad."""
        text = read(self.output_file_path())
        if not text:
            raise EmissionFileError(f"Couldn't open file: {self.output_file_path()}")
        emission = Emission.parse(text)
        with self._lock:
            self._total = emission
        return emission

    def get_emission(self) -> Emission:
        """Return the stored total plus the blocks in the gap up to the current height."""
        current = self.total
        height = self.current_height
        start_blk = current.blk_no
        end_block = start_blk + self.chunk_gap
        if end_block >= height and start_blk < height:
            end_block = min(end_block, height)
            gap = self.calculate_emission_in_blocks(start_blk, end_block)
            current = replace(
                current,
                coinbase=current.coinbase + gap.coinbase,
                fee=current.fee + gap.fee,
                blk_no=gap.blk_no if gap.blk_no > 0 else current.blk_no,
            )
        return current

    def start(self) -> None:
        """Load any saved total and start the background scanning thread.

        Raises EmissionFileError when a saved file exists but cannot be used.
        """
        with self._lock:
            self._total = Emission()
        if self.output_file_path().exists():
            self.load_current_emission_amount()
        if self.is_running():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="emission-monitor", daemon=True
        )
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
        while not self._stop.is_set():
            previous = self.total
            try:
                self.update_current_emission_amount()
                log.info("current emission: %s", self.total)
                self.save_current_emission_amount()
            except Exception:
                log.exception("emission monitoring step failed")
            if previous.blk_no < self.current_height - self.chunk_size:
                pause = SCAN_PAUSE_SECONDS
            else:
                pause = TOP_PAUSE_SECONDS
            self._stop.wait(pause)
        log.info("Emission monitoring thread interrupted.")