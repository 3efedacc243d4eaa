# raftcore

Helpers and test doubles for building and testing a Raft consensus
implementation.

## Modules

### `raftcore.util`

- `new_seed()`: a non-negative 63-bit integer from a cryptographic source.
- `random_timeout(min_val)`: returns a `threading.Event` that becomes set
  after a random delay between `min_val` and twice `min_val`. `min_val` is a
  `timedelta` or a number of seconds. A zero duration returns `None`, which
  means the timeout never fires.
- `generate_uuid()`: a random identifier in the 8-4-4-4-12 hexadecimal layout.
- Non-blocking notification helpers for `queue.Queue` objects:
  - `async_notify(ch)` puts a token on the queue, or drops it if the queue is full.
  - `drain_notify(ch)` takes one pending item and returns whether there was one.
  - `async_notify_bool(ch, value)` puts a boolean, or drops it if the queue is full.
  - `override_notify_bool(ch, value)` replaces any value already waiting on a
    one-slot queue. It raises `RuntimeError` if another sender gets in between.
- `encode_msgpack(obj)` and `decode_msgpack(buf)`: MessagePack encoding and
  decoding. Byte strings are written in the raw string family, and decoding
  returns raw strings as `bytes`. A `datetime` is encoded as a 15-byte binary
  time value.
- `backoff(base, round_, limit)`: doubles `base` once for each round past the
  second, stopping at `limit`.
- `capped_exponential_backoff(base, round_, limit, cap)`: the same, but never
  returns more than `cap`.

### `raftcore.mockfsm`

Test doubles for exercising code that sits around a Raft state machine:

- `MockFSM` records the `data` of every entry it applies.
  - `apply(log)` returns how many entries are held.
  - `apply_batch(logs)` applies only command entries and gives `None` for the others.
  - `snapshot()` returns a `MockSnapshot`.
  - `restore(source)` replaces the entries with those read from a binary
    stream, then closes the stream.
  - `logs()` and `configurations()` return copies of what has been recorded.
- `MockSnapshot`:
  - `persist(sink)` writes the entries to `sink` as MessagePack and then
    closes it. If the write fails, it calls `sink.cancel()` instead.
  - `release()` does nothing.
- `MockFSMConfigStore` wraps a `MockFSM`. It delegates `apply`, `snapshot`
  and `restore`, and records configurations through
  `store_configuration(index, configuration)`.
- `WrappingFSM` is an abstract base for state machines that delegate to
  another one through `underlying()`.
- `get_mock_fsm(fsm)` unwraps a `MockFSM`, a `MockFSMConfigStore` or a
  `WrappingFSM` to the `MockFSM` inside. It returns `None` if there is none.
- `MockMonotonicLogStore(store)` forwards every log store call to `store`.
  Its `is_monotonic()` returns `True`.

### `raftcore.testlog`

- `LoggerAdapter(sink, prefix="")` is a writable stream. It passes each
  written line to `sink`, with one trailing newline removed and `prefix: `
  added in front when a prefix is set.
- `new_test_logger(sink=None, prefix="")` returns a `logging.Logger` named
  after `prefix`.
  - With a sink, it sends records at INFO and above through a `LoggerAdapter`.
  - Without a sink, it writes every record down to DEBUG to standard error.

## Installation

```
pip install raftcore
```

With the test dependencies:

```
pip install "raftcore[test]"
```

## Examples

```python
from raftcore.util import backoff, capped_exponential_backoff

backoff(10, 8, 8)                          # 640
capped_exponential_backoff(10, 8, 8, 100)  # 100
```

```python
from raftcore.util import encode_msgpack, decode_msgpack

decode_msgpack(encode_msgpack([b"a", b"b"]))  # [b"a", b"b"]
```

```python
from types import SimpleNamespace
from raftcore.mockfsm import MockFSM

fsm = MockFSM()
fsm.apply(SimpleNamespace(data=b"x"))  # 1
fsm.logs()                             # [b"x"]
```

```python
from raftcore.testlog import new_test_logger

lines = []
logger = new_test_logger(lines.append, "node1")
logger.info("started")  # lines now holds one formatted line starting "node1: "
```

## What this package does not do

This package contains no Raft node, no log or stable store, and no network
transport. Leader election, log replication and snapshot installation must
come from the implementation you test with these helpers. The package also
has no command-line program.