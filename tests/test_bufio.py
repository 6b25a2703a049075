import pytest

from occams_rpc.bufio import (
    AsyncBufRead,
    AsyncBufStream,
    AsyncBufWrite,
    AsyncRead,
    AsyncWrite,
)


class MemReader(AsyncRead):
    def __init__(self, data, chunk=1 << 20, interrupt_once=False):
        self.data = bytes(data)
        self.pos = 0
        self.chunk = chunk
        self.calls = 0
        self.interrupt = interrupt_once

    async def readinto(self, buf):
        self.calls += 1
        if self.interrupt:
            self.interrupt = False
            raise InterruptedError()
        n = min(len(buf), self.chunk, len(self.data) - self.pos)
        buf[:n] = self.data[self.pos:self.pos + n]
        self.pos += n
        return n


class MemWriter(AsyncWrite):
    def __init__(self, chunk=1 << 20, interrupt_once=False):
        self.out = bytearray()
        self.chunk = chunk
        self.writes = []
        self.interrupt = interrupt_once

    async def write(self, data):
        if self.interrupt:
            self.interrupt = False
            raise InterruptedError()
        n = min(len(data), self.chunk)
        piece = bytes(data[:n])
        self.out += piece
        self.writes.append(piece)
        return n


class ZeroWriter(AsyncWrite):
    async def write(self, data):
        return 0


class Pipe(MemReader, MemWriter):
    def __init__(self, data=b""):
        MemReader.__init__(self, data)
        MemWriter.__init__(self)

    def __repr__(self):
        return "Pipe<test>"


@pytest.mark.asyncio
async def test_read_exact_fills_in_chunks():
    reader = MemReader(b"hello world", chunk=3)
    buf = bytearray(11)
    await AsyncRead.read_exact(reader, buf)
    assert bytes(buf) == b"hello world"
    assert reader.calls == 4


@pytest.mark.asyncio
async def test_read_exact_eof():
    reader = MemReader(b"abc")
    with pytest.raises(EOFError):
        await AsyncRead.read_exact(reader, bytearray(5))


@pytest.mark.asyncio
async def test_read_exact_retries_interrupt():
    reader = MemReader(b"abcd", interrupt_once=True)
    buf = bytearray(4)
    await AsyncRead.read_exact(reader, buf)
    assert bytes(buf) == b"abcd"


@pytest.mark.asyncio
async def test_read_exact_empty_buffer_does_not_read():
    reader = MemReader(b"abc")
    await AsyncRead.read_exact(reader, bytearray())
    assert reader.calls == 0


@pytest.mark.asyncio
async def test_read_at_least():
    reader = MemReader(b"0123456789", chunk=4)
    buf = bytearray(10)
    n = await AsyncRead.read_at_least(reader, buf, 5)
    assert 5 <= n <= 10
    assert bytes(buf[:n]) == b"0123456789"[:n]


@pytest.mark.asyncio
async def test_read_at_least_capped_by_buffer():
    reader = MemReader(b"0123456789")
    buf = bytearray(4)
    n = await AsyncRead.read_at_least(reader, buf, 8)
    assert n == len(buf)
    assert bytes(buf) == b"0123"


@pytest.mark.asyncio
async def test_read_at_least_eof():
    reader = MemReader(b"ab")
    with pytest.raises(EOFError):
        await AsyncRead.read_at_least(reader, bytearray(10), 5)


@pytest.mark.asyncio
async def test_write_all_chunked():
    writer = MemWriter(chunk=2, interrupt_once=True)
    await AsyncWrite.write_all(writer, b"abcdefg")
    assert bytes(writer.out) == b"abcdefg"
    assert all(len(w) <= 2 for w in writer.writes)


@pytest.mark.asyncio
async def test_write_all_zero_raises():
    with pytest.raises(OSError):
        await AsyncWrite.write_all(ZeroWriter(), b"x")


@pytest.mark.parametrize("cls", [AsyncBufRead, AsyncBufWrite])
def test_zero_capacity_rejected(cls):
    with pytest.raises(ValueError):
        cls(0)


@pytest.mark.asyncio
async def test_buf_read_serves_small_reads_from_buffer():
    reader = MemReader(b"abcdefgh")
    br = AsyncBufRead(8)
    out = bytearray()
    for _ in range(4):
        chunk = bytearray(2)
        n = await br.read_buffered(reader, chunk)
        out += chunk[:n]
    assert bytes(out) == b"abcdefgh"
    assert reader.calls == 1


@pytest.mark.asyncio
async def test_buf_read_large_request_direct():
    reader = MemReader(b"abcdefghij")
    br = AsyncBufRead(4)
    buf = bytearray(10)
    n = await br.read_buffered(reader, buf)
    assert n == 10
    assert bytes(buf) == b"abcdefghij"


@pytest.mark.asyncio
async def test_buf_read_eof_returns_zero():
    reader = MemReader(b"")
    br = AsyncBufRead(4)
    assert await br.read_buffered(reader, bytearray(2)) == 0


@pytest.mark.asyncio
async def test_buf_write_batches_until_flush():
    writer = MemWriter()
    bw = AsyncBufWrite(8)
    assert await bw.write_buffered(writer, b"ab") == 2
    assert await bw.write_buffered(writer, b"cd") == 2
    assert writer.out == bytearray()
    await bw.flush(writer)
    assert bytes(writer.out) == b"abcd"
    await bw.flush(writer)
    assert writer.writes == [b"abcd"]


@pytest.mark.asyncio
async def test_buf_write_overflow_flushes_first():
    writer = MemWriter()
    bw = AsyncBufWrite(4)
    await bw.write_buffered(writer, b"abc")
    await bw.write_buffered(writer, b"de")
    assert bytes(writer.out) == b"abc"
    await bw.flush(writer)
    assert bytes(writer.out) == b"abcde"


@pytest.mark.asyncio
async def test_buf_write_large_goes_direct_after_flush():
    writer = MemWriter()
    bw = AsyncBufWrite(4)
    await bw.write_buffered(writer, b"xy")
    n = await bw.write_buffered(writer, b"123456")
    assert n == 6
    assert writer.writes == [b"xy", b"123456"]


@pytest.mark.asyncio
async def test_buf_stream_round_trip():
    pipe = Pipe(b"payload-data")
    stream = AsyncBufStream(pipe, 4)
    await stream.write_all(b"hello world")
    await stream.flush()
    assert bytes(pipe.out) == b"hello world"
    buf = bytearray(12)
    await stream.read_exact(buf)
    assert bytes(buf) == b"payload-data"
    assert stream.inner is pipe
    assert repr(stream) == repr(pipe)


@pytest.mark.asyncio
async def test_buf_stream_read_at_least_eof():
    stream = AsyncBufStream(Pipe(b"ab"), 16)
    with pytest.raises(EOFError):
        await stream.read_at_least(bytearray(8), 4)