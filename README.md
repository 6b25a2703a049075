# occams_rpc

Core building blocks for a modular, pluggable RPC aimed at high-throughput use.
Everything here is a library; the package installs no commands.

## Modules

- **`occams_rpc.codec`**: the `Codec` interface (`encode(obj)` / `decode(buf)`)
  and `MsgpCodec`, a MessagePack codec. Dataclass instances are encoded as maps
  keyed by field name, enum members as their value, sets as lists. Any failure
  raises `CodecError`.
- **`occams_rpc.error`**:
  - `RpcIntErr`: errors of the RPC layer itself, whose names carry the reserved
    `rpc_` prefix (`rpc_timeout`, `rpc_io_err`, `rpc_decode`, ...).
    `RpcIntErr.from_str` parses a name and raises `ValueError` for unknown ones;
    `as_bytes` gives the wire form.
  - `RpcError`: an exception wrapping either a user error or an `RpcIntErr`;
    `is_rpc()` tells which. It compares equal to another `RpcError` of the same
    kind and value, to the `RpcIntErr` it wraps, or to the user error it wraps.
  - `EncodedErr` with `EncodedKind`: an error as sent over a transport, built
    with `EncodedErr.rpc`, `.num` (a 32-bit signed number), `.static` or `.buf`.
    `try_as_str` returns the text of static or UTF-8 buffer errors.
  - Error codecs converting user errors to and from `EncodedErr`: `RpcErrCodec`
    (through a `Codec`), `NumErrCodec(bits, signed)` for 8/16/32-bit integer
    codes, `StrErrCodec` for UTF-8 strings and `ErrnoErrCodec` for errno values.
    Decoding failures raise `CodecError`.
- **`occams_rpc.config`**: `ClientConfig` and `ServerConfig` dataclasses holding
  timeouts (in seconds), the client task queue limit (`thresholds`, default 128)
  and `stream_buf_size` (0 means the transport's default).
- **`occams_rpc.buffer`**: `reserve(buf, blob_len)` sizes a response buffer:
  `None` gives a new `bytearray`, a `bytearray` is resized in place, and a
  `FixedBuffer` (fixed capacity) returns a view or raises `BufferError` when too
  small.
- **`occams_rpc.bufio`**: the `AsyncRead` (`readinto`, `read_exact`,
  `read_at_least`) and `AsyncWrite` (`write`, `write_all`) interfaces, plus
  `AsyncBufRead`, `AsyncBufWrite` and `AsyncBufStream`, which buffer reads and
  writes over them. Early end of stream raises `EOFError`.
- **`occams_rpc.runtime`** (asyncio):
  - `cancellable(future, cancel_future)` raises `Cancelled` if the cancel side
    finishes first; `io_with_timeout(timeout, awaitable)` raises `TimeoutError`,
    and a timeout of zero means no limit.
  - `Interval`: a ticker whose first tick fires one period after creation;
    usable with `async for`.
  - `AsyncFd`: runs non-blocking calls on a file object, waiting for
    readability or writability while they raise `BlockingIOError`.
  - `AsyncIORuntime`: `sleep`, `tick`, `timeout`, `connect_tcp`,
    `connect_unix`, `to_async_fd_rd`, `to_async_fd_rw`.
  - `AsyncListener`: a stream listener on `host:port`, or on a Unix socket
    path when the address contains `/`; `bind`, `try_from_fd`, `accept`,
    `local_addr`, `fileno`, `close`.
- **`occams_rpc.graceful`**: `write_pid_file(path)` and `GracefulServer`, which
  hands listening sockets to a freshly started copy of the program on a restart
  signal. The new process takes new connections while the old one finishes the
  ones it has.

## Installation

```
pip install .
```

## Example

```python
from occams_rpc.codec import MsgpCodec
from occams_rpc.error import RpcError, RpcIntErr

codec = MsgpCodec()
data = codec.encode({"path": "/tmp/file", "offset": 0})
assert codec.decode(data) == {"path": "/tmp/file", "offset": 0}

err = RpcError(RpcIntErr.TIMEOUT)
assert err.is_rpc()
assert str(err) == "rpc_timeout"
assert err == RpcIntErr.TIMEOUT
```

### Graceful restart

```python
import signal

from occams_rpc.graceful import GracefulServer
from occams_rpc.runtime import AsyncListener

server = GracefulServer("/var/run", "myserver", 30.0, [signal.SIGTERM, signal.SIGINT])
listener = server.new_listener("127.0.0.1:9000", AsyncListener)
# ... start serving on listener ...
server.ready(lambda: print("bye"), signal.SIGHUP)
```

`ready` writes `<run_dir>/<prog_name>.pid` and blocks until a signal arrives.
The restart signal starts a new copy of the program with the same arguments;
the copy finds the inherited sockets in the `_GRACEFUL_RESTART` environment
variable and recovers them in `new_listener`, so listeners must be created in
the same order on every start. If the new copy exits before signalling that it
is up, waiting resumes. A close signal calls the exit callback and returns.

## What this package does not include

These are building blocks only. There is no RPC client or server, no wire
framing or request/response protocol, no transport beyond the socket helpers in
`occams_rpc.runtime`, and no command-line program.

## Running the tests

```
pip install .[test]
pytest
```