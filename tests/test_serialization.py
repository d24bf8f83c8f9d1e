import pytest

from voxelterra.serialization import Deserializer, Serializer


def test_default_is_little_endian():
    s = Serializer()
    s.write("i", -2)
    assert s.getvalue() == b"\xfe\xff\xff\xff"


def test_explicit_byte_order_is_honoured():
    s = Serializer()
    s.write(">I", 1)
    assert s.getvalue() == b"\x00\x00\x00\x01"


def test_round_trip_mixed_values():
    s = Serializer()
    s.write("iH", -42, 65000)
    s.write("3f", 1.5, -2.25, 0.0)
    s.write_bytes(b"abc")
    s.write("Q", 2**40)

    d = Deserializer(s.getvalue())
    assert d.read("iH") == (-42, 65000)
    assert d.read("3f") == (1.5, -2.25, 0.0)
    assert d.read_bytes(3) == b"abc"
    assert d.read_one("Q") == 2**40
    assert len(d) == 0


def test_length_tracks_writes():
    s = Serializer()
    s.write("I", 7)
    s.write_bytes(b"xy")
    assert len(s) == len(s.getvalue())


def test_skip_moves_position():
    s = Serializer()
    s.write("I", 99)
    s.write("h", -5)
    d = Deserializer(s.getvalue())
    d.skip(4)
    assert d.read_one("h") == -5


def test_read_past_end_raises():
    d = Deserializer(b"\x01\x02")
    with pytest.raises(EOFError):
        d.read("I")
    assert d.position == 0


def test_skip_past_end_raises():
    d = Deserializer(b"\x01")
    with pytest.raises(EOFError):
        d.skip(2)


def test_read_one_rejects_multi_value_format():
    d = Deserializer(b"\x00" * 8)
    with pytest.raises(ValueError):
        d.read_one("ii")
    assert d.position == 0


def test_read_bytes_negative_size():
    d = Deserializer(b"abc")
    with pytest.raises(ValueError):
        d.read_bytes(-1)