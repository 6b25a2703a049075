"""Serialization codecs used to turn requests and responses into bytes."""

from __future__ import annotations

import dataclasses
import enum
import logging
from abc import ABC, abstractmethod
from typing import Any

import msgpack

logger = logging.getLogger(__name__)


class CodecError(Exception):
    """Raised when a value cannot be encoded or a buffer cannot be decoded."""


class Codec(ABC):
    """Interface of a serialization codec.

    A codec is immutable once built; anything that has to change (such as a
    cipher) belongs in its own state object.
    """

    @abstractmethod
    def encode(self, obj: Any) -> bytes:
        """Serialize ``obj``, raising :class:`CodecError` on failure."""

    @abstractmethod
    def decode(self, buf: bytes) -> Any:
        """Deserialize ``buf``, raising :class:`CodecError` on failure."""


def _to_plain(obj: Any) -> Any:
    """Turn values msgpack does not know into ones it does."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        # Structs are written as maps keyed by field name.
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"cannot serialize object of type {type(obj).__name__}")


class MsgpCodec(Codec):
    """MessagePack codec; structured values are encoded as named maps."""

    def encode(self, obj: Any) -> bytes:
        try:
            return msgpack.packb(obj, default=_to_plain, use_bin_type=True)
        except (TypeError, ValueError, OverflowError) as exc:
            logger.error("encode error: %r", exc)
            raise CodecError(f"encode error: {exc}") from exc

    def decode(self, buf: bytes) -> Any:
        try:
            return msgpack.unpackb(buf, raw=False, strict_map_key=False)
        except (ValueError, TypeError, msgpack.UnpackException) as exc:
            logger.warning("decode error: %r", exc)
            raise CodecError(f"decode error: {exc}") from exc