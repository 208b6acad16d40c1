"""Building blocks for a Monero blockchain explorer: daemon RPC, mempool and emission monitors, helpers."""

__version__ = "0.1.0"

__all__ = ["emission", "mempool", "options", "rpc", "seed", "textutils", "tools"]