"""Integer grid coordinates for zones and voxels."""

from __future__ import annotations

import struct
from dataclasses import dataclass

_INDEX_STRUCT = struct.Struct("<3i")


def _trunc_div(a: int, b: int) -> int:
    """Integer division that rounds toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b > 0) else -quotient


@dataclass(frozen=True)
class VoxelIndex:
    """A three-component integer index; hashable and usable as a key."""

    x: int = 0
    y: int = 0
    z: int = 0

    def __add__(self, other: VoxelIndex) -> VoxelIndex:
        if not isinstance(other, VoxelIndex):
            return NotImplemented
        return VoxelIndex(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: VoxelIndex) -> VoxelIndex:
        if not isinstance(other, VoxelIndex):
            return NotImplemented
        return VoxelIndex(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, factor: int) -> VoxelIndex:
        if not isinstance(factor, int):
            return NotImplemented
        return VoxelIndex(self.x * factor, self.y * factor, self.z * factor)

    def __truediv__(self, divisor: int) -> VoxelIndex:
        """Divide every component, truncating toward zero."""
        if not isinstance(divisor, int):
            return NotImplemented
        return VoxelIndex(
            _trunc_div(self.x, divisor),
            _trunc_div(self.y, divisor),
            _trunc_div(self.z, divisor),
        )

    def to_bytes(self) -> bytes:
        """Pack as three little-endian signed 32-bit integers."""
        try:
            return _INDEX_STRUCT.pack(self.x, self.y, self.z)
        except struct.error as exc:
            raise OverflowError(f"{self} does not fit in 32-bit components") from exc

    @classmethod
    def from_bytes(cls, data: bytes) -> VoxelIndex:
        """Unpack an index written by :meth:`to_bytes`."""
        if len(data) != _INDEX_STRUCT.size:
            raise ValueError(
                f"expected {_INDEX_STRUCT.size} bytes, got {len(data)}"
            )
        return cls(*_INDEX_STRUCT.unpack(data))


@dataclass(frozen=True)
class VoxelIndex4:
    """A four-component integer index."""

    x: int = 0
    y: int = 0
    z: int = 0
    w: int = 0

    def __add__(self, other: VoxelIndex4) -> VoxelIndex4:
        if not isinstance(other, VoxelIndex4):
            return NotImplemented
        return VoxelIndex4(
            self.x + other.x, self.y + other.y, self.z + other.z, self.w + other.w
        )

    def __sub__(self, other: VoxelIndex4) -> VoxelIndex4:
        if not isinstance(other, VoxelIndex4):
            return NotImplemented
        return VoxelIndex4(
            self.x - other.x, self.y - other.y, self.z - other.z, self.w - other.w
        )

    @classmethod
    def uniform(cls, value: int) -> VoxelIndex4:
        """An index with all four components equal to ``value``."""
        return cls(value, value, value, value)