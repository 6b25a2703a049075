"""Async read/write interfaces and buffered wrappers around them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Union

Writable = Union[bytearray, memoryview]
Readable = Union[bytes, bytearray, memoryview]


class AsyncRead(ABC):
    """Something that can be read from asynchronously."""

    @abstractmethod
    async def readinto(self, buf: Writable) -> int:
        """Read into ``buf`` and return the number of bytes read (0 at EOF)."""

    async def read_exact(self, buf: Writable) -> None:
        """Fill ``buf`` completely.

        Raises ``EOFError`` when the stream ends before ``buf`` is full.
        """
        with memoryview(buf) as view:
            filled = 0
            total = len(view)
            while filled < total:
                try:
                    n = await self.readinto(view[filled:])
                except InterruptedError:
                    continue
                if n == 0:
                    break
                filled += n
            if filled < total:
                raise EOFError("failed to fill whole buffer")

    async def read_at_least(self, buf: Writable, min_len: int) -> int:
        """Read at least ``min_len`` bytes (never more than ``len(buf)``).

        Returns the total read. Raises ``EOFError`` when the stream ends first.
        """
        with memoryview(buf) as view:
            total_read = 0
            while total_read < min_len and total_read < len(view):
                try:
                    n = await self.readinto(view[total_read:])
                except InterruptedError:
                    continue
                if n == 0:
                    raise EOFError("failed to read minimum number of bytes")
                total_read += n
            return total_read


class AsyncWrite(ABC):
    """Something that can be written to asynchronously."""

    @abstractmethod
    async def write(self, data: Readable) -> int:
        """Write some of ``data`` and return the number of bytes written."""

    async def write_all(self, data: Readable) -> None:
        """Write the whole of ``data``.

        Raises ``OSError`` when the writer accepts zero bytes.
        """
        with memoryview(data) as view:
            pos = 0
            while pos < len(view):
                try:
                    n = await self.write(view[pos:])
                except InterruptedError:
                    continue
                if n == 0:
                    raise OSError("failed to write whole buffer")
                pos += n


def _check_capacity(capacity: int) -> None:
    if capacity <= 0:
        raise ValueError(f"capacity {capacity} must > 0")


class AsyncBufRead:
    """Read-side buffer that serves small reads from memory."""

    __slots__ = ("_buf", "_pos", "_cap")

    def __init__(self, capacity: int) -> None:
        _check_capacity(capacity)
        self._buf = bytearray(capacity)
        self._pos = 0
        self._cap = 0

    async def read_buffered(self, reader: AsyncRead, buf: Writable) -> int:
        """Read into ``buf`` through the buffer; returns bytes copied."""
        with memoryview(buf) as view:
            if self._pos < self._cap:
                n = min(len(view), self._cap - self._pos)
                view[:n] = self._buf[self._pos:self._pos + n]
                self._pos += n
                return n

            # Large requests bypass the buffer to avoid an extra copy.
            if len(view) >= len(self._buf):
                return await reader.readinto(view)

            with memoryview(self._buf) as inner:
                self._cap = await reader.readinto(inner)
            self._pos = 0
            n = min(len(view), self._cap)
            view[:n] = self._buf[:n]
            self._pos = n
            return n


class AsyncBufWrite:
    """Write-side buffer that batches small writes."""

    __slots__ = ("_buf", "_pos")

    def __init__(self, capacity: int) -> None:
        _check_capacity(capacity)
        self._buf = bytearray(capacity)
        self._pos = 0

    async def flush(self, writer: AsyncWrite) -> None:
        """Write out everything held in the buffer."""
        if self._pos > 0:
            await writer.write_all(bytes(self._buf[: self._pos]))
            self._pos = 0

    async def write_buffered(self, writer: AsyncWrite, data: Readable) -> int:
        """Buffer ``data``, flushing as needed; returns bytes accepted."""
        n = len(data)
        if n >= len(self._buf):
            await self.flush(writer)
            return await writer.write(data)
        if len(self._buf) - self._pos < n:
            await self.flush(writer)
        self._buf[self._pos:self._pos + n] = data
        self._pos += n
        return n


T = TypeVar("T")


class AsyncBufStream(AsyncRead, AsyncWrite, Generic[T]):
    """A stream with a read buffer and a write buffer of the same size."""

    def __init__(self, stream: T, buf_size: int) -> None:
        self._read_buf = AsyncBufRead(buf_size)
        self._write_buf = AsyncBufWrite(buf_size)
        self._inner = stream

    async def readinto(self, buf: Writable) -> int:
        return await self._read_buf.read_buffered(self._inner, buf)  # type: ignore[arg-type]

    async def write(self, data: Readable) -> int:
        return await self._write_buf.write_buffered(self._inner, data)  # type: ignore[arg-type]

    async def flush(self) -> None:
        """Write out pending buffered data."""
        await self._write_buf.flush(self._inner)  # type: ignore[arg-type]

    @property
    def inner(self) -> T:
        """The wrapped stream."""
        return self._inner

    def __repr__(self) -> str:
        return repr(self._inner)

    def __str__(self) -> str:
        return str(self._inner)