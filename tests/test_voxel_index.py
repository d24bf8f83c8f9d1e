import pytest

from voxelterra.voxel_index import VoxelIndex, VoxelIndex4


def test_default_is_origin():
    assert VoxelIndex() == VoxelIndex(0, 0, 0)


def test_add_and_sub_round_trip():
    a = VoxelIndex(3, -4, 7)
    b = VoxelIndex(-10, 2, 5)
    assert (a + b) - b == a
    assert a + b == b + a


def test_add_components():
    assert VoxelIndex(1, 2, 3) + VoxelIndex(10, 20, 30) == VoxelIndex(11, 22, 33)


def test_multiply_then_divide_restores():
    a = VoxelIndex(-5, 6, -7)
    assert (a * 201) / 201 == a


def test_division_truncates_toward_zero():
    assert VoxelIndex(-7, 7, -1) / 2 == VoxelIndex(-3, 3, 0)


def test_division_by_zero_raises():
    with pytest.raises(ZeroDivisionError):
        VoxelIndex(1, 2, 3) / 0


def test_hash_matches_equality():
    keys = {VoxelIndex(1, 2, 3), VoxelIndex(1, 2, 3), VoxelIndex(3, 2, 1)}
    assert len(keys) == 2


def test_to_bytes_layout():
    assert VoxelIndex(1, 2, -1).to_bytes() == (
        b"\x01\x00\x00\x00" b"\x02\x00\x00\x00" b"\xff\xff\xff\xff"
    )


def test_bytes_round_trip():
    a = VoxelIndex(-123456, 0, 2**31 - 1)
    assert VoxelIndex.from_bytes(a.to_bytes()) == a


def test_from_bytes_wrong_length():
    with pytest.raises(ValueError):
        VoxelIndex.from_bytes(b"\x00" * 11)


def test_to_bytes_overflow():
    with pytest.raises(OverflowError):
        VoxelIndex(2**31, 0, 0).to_bytes()


def test_index4_uniform():
    assert VoxelIndex4.uniform(5) == VoxelIndex4(5, 5, 5, 5)


def test_index4_add_sub():
    a = VoxelIndex4(1, 2, 3, 4)
    b = VoxelIndex4(-4, 8, 0, 9)
    assert (a + b) - b == a
    assert a - a == VoxelIndex4.uniform(0)