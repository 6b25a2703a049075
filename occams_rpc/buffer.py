"""Buffers that can be sized to hold an incoming blob."""

from __future__ import annotations

from typing import Union


class FixedBuffer:
    """A pre-allocated buffer that never grows beyond its capacity."""

    __slots__ = ("_data", "_len")

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"capacity {capacity} must be >= 0")
        self._data = bytearray(capacity)
        self._len = capacity

    @property
    def capacity(self) -> int:
        return len(self._data)

    def reserve(self, blob_len: int) -> memoryview:
        """Set the length to ``blob_len`` and return a writable view of it.

        Raises ``BufferError`` when the capacity is too small.
        """
        _check_len(blob_len)
        if blob_len > len(self._data):
            raise BufferError(
                f"buffer capacity {len(self._data)} is smaller than {blob_len}"
            )
        self._len = blob_len
        return memoryview(self._data)[:blob_len]

    def __len__(self) -> int:
        return self._len

    def __bytes__(self) -> bytes:
        return bytes(self._data[: self._len])

    def __repr__(self) -> str:
        return f"FixedBuffer(len={self._len}, capacity={len(self._data)})"


Reservable = Union[None, bytearray, FixedBuffer]


def _check_len(blob_len: int) -> None:
    if blob_len < 0:
        raise ValueError(f"blob length {blob_len} must be >= 0")


def reserve(buf: Reservable, blob_len: int) -> Union[bytearray, memoryview]:
    """Make room for ``blob_len`` bytes and return the writable region.

    ``None`` yields a new ``bytearray``; a ``bytearray`` is resized in place
    and returned; a :class:`FixedBuffer` returns a view, raising
    ``BufferError`` when its capacity is too small.
    """
    _check_len(blob_len)
    if buf is None:
        return bytearray(blob_len)
    if isinstance(buf, FixedBuffer):
        return buf.reserve(blob_len)
    if isinstance(buf, bytearray):
        current = len(buf)
        if blob_len < current:
            del buf[blob_len:]
        elif blob_len > current:
            buf.extend(bytes(blob_len - current))
        return buf
    raise TypeError(f"cannot reserve space in {type(buf).__name__}")