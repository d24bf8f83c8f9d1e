"""Sequential binary writer and reader built on :mod:`struct`."""

from __future__ import annotations

import struct
from functools import lru_cache

_BYTE_ORDER_CHARS = "@=<>!"


@lru_cache(maxsize=256)
def _struct_for(fmt: str) -> struct.Struct:
    """Compile a format; little-endian without padding unless one is given."""
    if not fmt or fmt[0] not in _BYTE_ORDER_CHARS:
        fmt = "<" + fmt
    return struct.Struct(fmt)


class Serializer:
    """Appends packed values to a growing byte buffer."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write(self, fmt: str, *args) -> None:
        """Pack ``args`` with the struct format ``fmt`` and append them."""
        self._buffer += _struct_for(fmt).pack(*args)

    def write_bytes(self, data: bytes) -> None:
        """Append raw bytes."""
        self._buffer += data

    def getvalue(self) -> bytes:
        """Everything written so far."""
        return bytes(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)


class Deserializer:
    """Reads packed values from a byte buffer, front to back."""

    def __init__(self, data: bytes, position: int = 0) -> None:
        self._data = bytes(data)
        if not 0 <= position <= len(self._data):
            raise ValueError(f"position {position} is outside the buffer")
        self.position = position

    def _require(self, size: int) -> None:
        if size < 0:
            raise ValueError("size must not be negative")
        if self.position + size > len(self._data):
            raise EOFError(
                f"need {size} bytes at offset {self.position}, "
                f"only {len(self._data) - self.position} left"
            )

    def read(self, fmt: str) -> tuple:
        """Unpack the values described by ``fmt`` and advance."""
        compiled = _struct_for(fmt)
        self._require(compiled.size)
        values = compiled.unpack_from(self._data, self.position)
        self.position += compiled.size
        return values

    def read_one(self, fmt: str):
        """Unpack a format that describes exactly one value."""
        compiled = _struct_for(fmt)
        self._require(compiled.size)
        values = compiled.unpack_from(self._data, self.position)
        if len(values) != 1:
            raise ValueError(f"format {fmt!r} yields {len(values)} values, not 1")
        self.position += compiled.size
        return values[0]

    def read_bytes(self, size: int) -> bytes:
        """Return the next ``size`` raw bytes."""
        self._require(size)
        chunk = self._data[self.position:self.position + size]
        self.position += size
        return chunk

    def skip(self, size: int) -> None:
        """Move forward by ``size`` bytes."""
        self._require(size)
        self.position += size

    def __len__(self) -> int:
        return len(self._data) - self.position