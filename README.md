# hashminer

Building blocks for a hash miner and its monitoring interface.

The package has no third-party dependencies. It provides:

- **`hashminer.commondata`** – hex encoding and decoding, big-endian integer
  conversion, turning a pool difficulty into a 256-bit target (and back into
  a number of hashes), and human-readable scaling of hashrates and memory
  sizes.
- **`hashminer.fixedhash`** – `FixedHash`, a fixed-size byte container for
  hashes, with comparison, bitwise operators, big-endian increment and
  conversion to and from integers and hex.
- **`hashminer.log`** – channel-prefixed log lines with ANSI colours, thread
  names, timestamps and a syslog-friendly mode that drops them.
- **`hashminer.worker`** – `Worker`, a restartable background thread whose
  `work_loop` you override and which can be started, asked to stop and
  stopped.
- **`hashminer.apistats`** – builds the `miner_getstat1` and
  `miner_getstatdetail` reports, and the HTML status page, from telemetry.
- **`hashminer.apirequests`** – `RequestProcessor`, which checks and answers
  JSON-RPC 2.0 requests (authorisation, read-only mode, pool and scrambler
  control) against a `MinerControl` you supply.
- **`hashminer.apiserver`** – `ApiServer`, a TCP endpoint that accepts both
  newline-delimited JSON-RPC and plain HTTP `GET /` or `GET /getstat1`.

## Formatting values

```python
from hashminer.commondata import get_formatted_hashes, get_formatted_memory, pad_left

get_formatted_hashes(1500000.0)    # '1.50 Mh'
get_formatted_memory(4294967296)   # '4.00 GB'
pad_left("7", 3, "0")              # '007'
```

## Difficulty and targets

```python
from hashminer.commondata import get_target_from_diff

get_target_from_diff(0)   # '0x' followed by 64 'f' characters
```

A difficulty of zero yields the widest possible target. Any other difficulty
scales the base target `0x00000000ffff0000…` by its inverse. The result is
always 64 lower-case hex digits.

## Fixed-size hashes

```python
from hashminer.fixedhash import FixedHash

h = FixedHash.from_int(1, 32)
h.increment()
int(h)          # 2
h.abridged()    # first four bytes in hex followed by an ellipsis
```

## Monitoring API

Build an `ApiServer` from an address, a port, an optional password, an
object implementing `MinerControl`, and a callable that renders the HTTP
status page. Then call `start()` and, when done, `stop()`.

A negative port number puts the server in read-only mode: methods that change
the miner's state then answer with "Method not available". When a password is
set, every client must call `api_authorize` before any other method.

Requests are JSON objects, one per line, for example:

```json
{"id": 1, "jsonrpc": "2.0", "method": "miner_ping"}
```

which is answered with:

```json
{"id":1,"jsonrpc":"2.0","result":"pong"}
```

## Running the tests

Install the `test` extra and run pytest from the project root.