"""Error types exchanged between RPC clients and servers."""

from __future__ import annotations

import enum
from typing import Any, Union

from .codec import Codec, CodecError

RPC_ERR_PREFIX = "rpc_"

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1
_U32_MASK = 0xFFFFFFFF


class RpcIntErr(enum.Enum):
    """Errors raised by the RPC layer itself; the ``rpc_`` prefix is reserved."""

    UNREACHABLE = "rpc_unreachable"
    IO = "rpc_io_err"
    TIMEOUT = "rpc_timeout"
    METHOD = "rpc_method_notfound"
    SERVICE = "rpc_service_notfound"
    ENCODE = "rpc_encode"
    DECODE = "rpc_decode"
    INTERNAL = "rpc_internal_err"
    VERSION = "rpc_invalid_ver"

    def __str__(self) -> str:
        return self.value

    def as_bytes(self) -> bytes:
        """The wire form of this error."""
        return self.value.encode("ascii")

    @classmethod
    def from_str(cls, s: str) -> RpcIntErr:
        """Parse the wire form, raising ``ValueError`` for unknown names."""
        try:
            return cls(s)
        except ValueError:
            raise ValueError(f"unknown rpc error: {s!r}") from None


class RpcError(Exception):
    """An error seen by client code: either a user error or an RPC error."""

    def __init__(self, error: Any) -> None:
        super().__init__(error)
        self.error = error

    def is_rpc(self) -> bool:
        """True when this wraps an :class:`RpcIntErr`."""
        return isinstance(self.error, RpcIntErr)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RpcError):
            return self.is_rpc() == other.is_rpc() and self.error == other.error
        if isinstance(other, RpcIntErr):
            return self.is_rpc() and self.error is other
        if self.is_rpc():
            return False
        return bool(self.error == other)

    def __hash__(self) -> int:
        return hash((self.is_rpc(), self.error))

    def __str__(self) -> str:
        return str(self.error)

    def __repr__(self) -> str:
        return f"RpcError({self.error!r})"


class EncodedKind(enum.Enum):
    """The shape an encoded error takes on the wire."""

    RPC = "rpc"
    NUM = "num"
    STATIC = "static"
    BUF = "buf"


class EncodedErr:
    """Error message as parsed from, or sent into, a transport."""

    __slots__ = ("kind", "value")

    def __init__(self, kind: EncodedKind, value: Any) -> None:
        self.kind = kind
        self.value = value

    @classmethod
    def rpc(cls, err: RpcIntErr) -> EncodedErr:
        if not isinstance(err, RpcIntErr):
            raise TypeError("rpc error must be an RpcIntErr")
        return cls(EncodedKind.RPC, err)

    @classmethod
    def num(cls, value: int) -> EncodedErr:
        value = int(value)
        if not _I32_MIN <= value <= _I32_MAX:
            raise ValueError(f"error number {value} out of i32 range")
        return cls(EncodedKind.NUM, value)

    @classmethod
    def static(cls, text: str) -> EncodedErr:
        return cls(EncodedKind.STATIC, str(text))

    @classmethod
    def buf(cls, data: bytes) -> EncodedErr:
        return cls(EncodedKind.BUF, bytes(data))

    def _as_str(self) -> str | None:
        if self.kind is EncodedKind.STATIC:
            return self.value
        if self.kind is EncodedKind.BUF:
            try:
                return self.value.decode("utf-8")
            except UnicodeDecodeError:
                return None
        return None

    def try_as_str(self) -> str:
        """Text of a static or UTF-8 buffer error; ``ValueError`` otherwise."""
        text = self._as_str()
        if text is None:
            raise ValueError(f"{self.kind.value} error has no text form")
        return text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EncodedErr):
            return NotImplemented
        if self.kind in (EncodedKind.RPC, EncodedKind.NUM):
            return other.kind is self.kind and self.value == other.value
        if self.kind is EncodedKind.STATIC:
            text = other._as_str()
            return text is not None and text == self.value
        if other.kind is EncodedKind.BUF:
            return self.value == other.value
        other_text = other._as_str()
        own_text = self._as_str()
        return other_text is not None and own_text is not None and own_text == other_text

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        if self.kind is EncodedKind.RPC:
            return str(self.value)
        if self.kind is EncodedKind.NUM:
            return f"errno {self.value}"
        if self.kind is EncodedKind.STATIC:
            return self.value
        text = self._as_str()
        if text is None:
            return f"err blob {len(self.value)} length"
        return text

    def __repr__(self) -> str:
        return f"EncodedErr.{self.kind.value}({self.value!r})"


Raw = Union[int, bytes]


class RpcErrCodec:
    """Converts a user error type to and from its encoded form.

    ``decode`` receives either an ``int`` (a numeric error) or ``bytes``.
    """

    def encode(self, value: Any, codec: Codec) -> EncodedErr:
        try:
            return EncodedErr.buf(codec.encode(value))
        except CodecError:
            return EncodedErr.rpc(RpcIntErr.ENCODE)

    def decode(self, codec: Codec, buf: Raw) -> Any:
        if isinstance(buf, int):
            raise CodecError("numeric error not accepted")
        return codec.decode(buf)


class NumErrCodec(RpcErrCodec):
    """Integer error codes of a fixed width, sent as numbers."""

    def __init__(self, bits: int = 32, signed: bool = True) -> None:
        if bits not in (8, 16, 32):
            raise ValueError(f"unsupported width {bits}")
        self.bits = bits
        self.signed = signed
        if signed:
            self.min_value = -(2 ** (bits - 1))
            self.max_value = 2 ** (bits - 1) - 1
        else:
            self.min_value = 0
            self.max_value = 2**bits - 1

    def encode(self, value: int, codec: Codec) -> EncodedErr:
        value = int(value)
        if not self.min_value <= value <= self.max_value:
            raise ValueError(f"{value} does not fit in the error type")
        wrapped = ((value - _I32_MIN) & _U32_MASK) + _I32_MIN
        return EncodedErr.num(wrapped)

    def decode(self, codec: Codec, buf: Raw) -> int:
        if isinstance(buf, int):
            raw = buf & _U32_MASK
            if raw <= self.max_value:
                return raw
        raise CodecError("cannot decode numeric error")


class StrErrCodec(RpcErrCodec):
    """String errors, sent as UTF-8 bytes."""

    def encode(self, value: str, codec: Codec) -> EncodedErr:
        return EncodedErr.buf(str(value).encode("utf-8"))

    def decode(self, codec: Codec, buf: Raw) -> str:
        if isinstance(buf, (bytes, bytearray, memoryview)):
            try:
                return bytes(buf).decode("utf-8")
            except UnicodeDecodeError:
                pass
        raise CodecError("cannot decode string error")


class ErrnoErrCodec(RpcErrCodec):
    """Operating-system errno values, sent as numbers."""

    def encode(self, value: int, codec: Codec) -> EncodedErr:
        return EncodedErr.num(int(value))

    def decode(self, codec: Codec, buf: Raw) -> int:
        if isinstance(buf, int):
            raw = buf & _U32_MASK
            if raw <= _I32_MAX:
                return raw
        raise CodecError("cannot decode errno")