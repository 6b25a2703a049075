import pytest

from occams_rpc.buffer import FixedBuffer, reserve


def test_reserve_none_creates_buffer():
    buf = reserve(None, 10)
    assert isinstance(buf, bytearray)
    assert len(buf) == 10


def test_reserve_grows_existing_in_place():
    original = bytearray([6, 7, 8, 9, 10])
    buf = reserve(original, 20)
    assert buf is original
    assert len(buf) == 20
    assert buf[:5] == bytearray([6, 7, 8, 9, 10])


def test_reserve_shrinks_existing():
    original = bytearray(b"abcdef")
    buf = reserve(original, 2)
    assert buf is original
    assert bytes(buf) == b"ab"


def test_reserve_same_length_keeps_content():
    original = bytearray(b"xyz")
    assert bytes(reserve(original, 3)) == b"xyz"


def test_fixed_buffer_reserve_within_capacity():
    fb = FixedBuffer(8)
    assert len(fb) == fb.capacity
    view = reserve(fb, 4)
    assert len(view) == 4
    assert len(fb) == 4
    view[:] = b"data"
    assert bytes(fb) == b"data"


def test_fixed_buffer_too_small():
    fb = FixedBuffer(8)
    with pytest.raises(BufferError):
        fb.reserve(fb.capacity + 1)
    assert len(fb) == fb.capacity


def test_negative_length_rejected():
    with pytest.raises(ValueError):
        reserve(bytearray(), -1)
    with pytest.raises(ValueError):
        FixedBuffer(-1)


def test_unsupported_type():
    with pytest.raises(TypeError):
        reserve(b"immutable", 4)