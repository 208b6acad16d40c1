# xmrblocks

Building blocks for a Monero blockchain explorer. The package gives you:

- `xmrblocks.rpc`: `RpcClient`, a small client for a Monero daemon's HTTP
  and JSON-RPC interface. It covers the current height, the transaction pool
  (newest first), network info, hard fork info, fee estimates, alternative
  block hashes and raw block blobs, and it can relay a hex-encoded transaction.
  Connection failures, bad replies and non-OK statuses raise `RpcError`.
- `xmrblocks.mempool`: `MempoolStatus` keeps a cached view of the
  transaction pool (`MempoolTx`) and of the network state (`NetworkInfo`).
  A background thread refreshes both.
  `get_status_uint` and `get_status_string` map daemon status strings to and
  from numeric codes.
- `xmrblocks.emission`: `EmissionMonitor` adds up the coinbase and fee
  amounts of the chain block by block from a `BlockSource` that you supply.
  It stores its progress in a checksummed file (`emission_amount.txt` by
  default) and reports the total as an `Emission`. A bad saved file raises
  `EmissionFileError`.
- `xmrblocks.options`: `CmdLineOptions` and `build_parser` hold the
  explorer's command-line options and their defaults: port `8081`, bind
  address `0.0.0.0`, daemon `127.0.0.1:18081` and so on. Invalid arguments
  raise `ValueError`.
- `xmrblocks.seed`: RandomX seed-height arithmetic (`seed_height`,
  `seed_heights`). The `SEEDHASH_EPOCH_BLOCKS`, `SEEDHASH_EPOCH_LAG` and
  `MONERO_RANDOMX_UMASK` environment variables override its settings.
- `xmrblocks.tools` and `xmrblocks.textutils`: helpers that cover
  - amount and timestamp formatting,
  - summaries of transactions given as JSON (`TxSummary`),
  - default blockchain folders per `NetworkType`,
  - decoding URL-encoded form data,
  - parsing hex keys,
  - other small tools.

## Examples

Talking to a daemon:

```python
from xmrblocks.rpc import RpcClient, RpcError

client = RpcClient("127.0.0.1:18081")
try:
    print("height:", client.get_current_height())
    print("fee per kB:", client.get_dynamic_per_kb_fee_estimate(10))
except RpcError as exc:
    print("daemon unavailable:", exc)
finally:
    client.close()
```

`RpcClient` is also a context manager. A `login` may be given as
`"user:password"` or as a `(user, password)` tuple; the client uses it for
HTTP digest authentication.

Keeping the mempool view fresh:

```python
from xmrblocks.mempool import MempoolStatus
from xmrblocks.rpc import RpcClient

status = MempoolStatus(RpcClient("127.0.0.1:18081"), 5)
status.read_mempool()            # one refresh now
status.start()                   # keep refreshing every 5 seconds
for tx in status.get_mempool_txs(10):
    print(tx.timestamp_str, tx.fee_str, tx.txsize)
print(status.network_info().height)
status.stop()
```

Counting emission. Subclass `BlockSource` so that `height()` returns the chain
height. `block_amounts(height)` returns a pair:

- the sum of the miner transaction's outputs;
- the sum of the fees of the block's transactions.

```python
from xmrblocks.emission import BlockSource, EmissionMonitor

class MySource(BlockSource):
    def height(self):
        return 100

    def block_amounts(self, height):
        return 10, 1

monitor = EmissionMonitor(MySource(), "/tmp")
monitor.update_current_emission_amount()
print(monitor.get_emission())    # blk_no,coinbase,fee,checksum
```

Formatting amounts and times:

```python
from xmrblocks.tools import xmr_amount_to_str, timestamp_difference

xmr_amount_to_str(1_500_000_000_000, "{:0.3f}", True)   # '1.500'
xmr_amount_to_str(0, "{:0.3f}", True)                   # '?'
timestamp_difference(100, 3700)                         # (0, 0, 1, 0, 0)
```

Seed heights:

```python
from xmrblocks.seed import seed_height, seed_heights

seed_height(5000, 2048, 64)    # 4096
seed_heights(5000, 2048, 64)   # (4096, 4096)
```

Reading the explorer's options. Values are looked up by the option's long name:

```python
from xmrblocks.options import CmdLineOptions

opts = CmdLineOptions(["--port", "8082", "--enable-json-api"])
opts.get_option("port")              # '8082'
opts.get_option("enable-json-api")   # True
opts.get_option("bc-path")           # None (not given, no default)
```

## What this package does not do

- It serves no web pages and has no HTTP server of its own.
- It installs no command.
- It does not read the blockchain database directly. Block data for emission
  counting comes from a `BlockSource` you write; everything else comes from
  the daemon through `RpcClient`.
- It does not deserialize binary transactions or blocks. `get_block_blob`
  returns raw bytes, and the transaction helpers work on the JSON form of
  transactions.
- It does not compute RandomX hashes, only the seed-height schedule.
- It has no wallet or key cryptography.