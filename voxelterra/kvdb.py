"""A small key-value file store with fixed-size keys and slot reuse.

Layout: a file header, then a chain of tables. Each table holds a header
and a run of key entries; value bytes live anywhere after them. Entries
with data are live, entries with neither data nor an initial length are
free slots, and entries with only an initial length mark deleted values
whose space can be reused.
"""

from __future__ import annotations

import math
import os
import struct
import threading
from collections import deque
from dataclasses import dataclass
from typing import Iterable, Mapping

from voxelterra.voxel_index import VoxelIndex

KEY_SIZE = 12
RESERVED_TABLE_SIZE = 1000
FILE_VERSION = 1

_FILE_HEADER = struct.Struct("<IIQI4x")
_TABLE_HEADER = struct.Struct("<QQ")
_KEY_ENTRY = struct.Struct("<QQQ12s4x")


class KvFileError(Exception):
    """Raised when a store file cannot be opened, read or written."""


@dataclass
class _KeyEntry:
    pos: int
    data_pos: int = 0
    data_length: int = 0
    initial_length: int = 0
    key: bytes = bytes(KEY_SIZE)

    def pack(self) -> bytes:
        return _KEY_ENTRY.pack(
            self.data_pos, self.data_length, self.initial_length, self.key
        )


@dataclass
class _Table:
    pos: int
    record_count: int
    next_table: int = 0


def _key_bytes(key) -> bytes:
    if not isinstance(key, VoxelIndex):
        raise TypeError(f"keys must be VoxelIndex, not {type(key).__name__}")
    return key.to_bytes()


class KvFile:
    """A store mapping :class:`VoxelIndex` keys to byte values in one file."""

    def __init__(self, reserved_value_size: int = 0) -> None:
        if reserved_value_size < 0:
            raise ValueError("reserved_value_size must not be negative")
        self._reserved_value_size = reserved_value_size
        self._file = None
        self._entries: dict[bytes, _KeyEntry] = {}
        self._reserved: deque[_KeyEntry] = deque()
        self._deleted: dict[int, _KeyEntry] = {}
        self._tables: list[_Table] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ io

    def _is_open(self) -> bool:
        return self._file is not None and not self._file.closed

    def _require_open(self) -> None:
        if not self._is_open():
            raise KvFileError("store is not open")

    def _read_exact(self, size: int) -> bytes:
        data = self._file.read(size)
        if len(data) != size:
            raise KvFileError("store file is truncated")
        return data

    def _write_entry(self, entry: _KeyEntry) -> None:
        self._file.seek(entry.pos)
        self._file.write(entry.pack())

    def _read_table(self) -> int:
        table_pos = self._file.tell()
        record_count, next_table = _TABLE_HEADER.unpack(
            self._read_exact(_TABLE_HEADER.size)
        )
        block = self._read_exact(_KEY_ENTRY.size * record_count)
        first = table_pos + _TABLE_HEADER.size
        for number, fields in enumerate(_KEY_ENTRY.iter_unpack(block)):
            entry = _KeyEntry(first + number * _KEY_ENTRY.size, *fields)
            if entry.data_length > 0:
                self._entries.setdefault(entry.key, entry)
            elif entry.initial_length == 0:
                self._reserved.append(entry)
            else:
                self._deleted.setdefault(entry.initial_length, entry)
        self._tables.append(_Table(table_pos, record_count, next_table))
        return next_table

    # ----------------------------------------------------------- lifecycle

    def open(self, path) -> None:
        """Open an existing store file for reading and writing."""
        self.close()
        try:
            handle = open(path, "r+b")
        except OSError as exc:
            raise KvFileError(f"unable to open {path}") from exc
        self._file = handle
        try:
            self._read_exact(_FILE_HEADER.size)
            visited = set()
            next_table = self._read_table()
            while next_table > 0:
                if next_table in visited:
                    raise KvFileError("table chain loops back on itself")
                visited.add(next_table)
                self._file.seek(next_table)
                next_table = self._read_table()
        except Exception:
            self.close()
            raise

    def close(self) -> None:
        """Close the file and forget its index; safe to call twice."""
        if self._file is not None:
            self._file.close()
        self._file = None
        self._entries.clear()
        self._reserved.clear()
        self._deleted.clear()
        self._tables.clear()

    def __enter__(self) -> KvFile:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # -------------------------------------------------------------- reads

    def __len__(self) -> int:
        return len(self._entries) if self._is_open() else 0

    def __contains__(self, key) -> bool:
        key_data = _key_bytes(key)
        if not self._is_open():
            return False
        with self._lock:
            return key_data in self._entries

    def keys(self) -> list[VoxelIndex]:
        """All live keys."""
        if not self._is_open():
            return []
        with self._lock:
            return [VoxelIndex.from_bytes(k) for k in self._entries]

    def load_data(self, key) -> bytes | None:
        """The value stored under ``key``, or None when there is none."""
        key_data = _key_bytes(key)
        if not self._is_open():
            return None
        with self._lock:
            entry = self._entries.get(key_data)
            if entry is None:
                return None
            self._file.seek(entry.data_pos)
            return self._read_exact(entry.data_length)

    # ------------------------------------------------------------- writes

    def erase(self, key) -> None:
        """Remove ``key``; its space is kept for reuse."""
        key_data = _key_bytes(key)
        self._require_open()
        with self._lock:
            entry = self._entries.get(key_data)
            if entry is not None:
                self._erase_entry(entry)

    def save(self, key, value: bytes) -> None:
        """Store ``value`` under ``key``; an empty value erases the key."""
        key_data = _key_bytes(key)
        value = bytes(value)
        self._require_open()
        with self._lock:
            if key_data in self._entries:
                self._change(key_data, value)
            else:
                self._add_new(key_data, value)

    def _rewrite(self, entry: _KeyEntry, value: bytes) -> None:
        self._file.seek(entry.data_pos)
        self._file.write(value)
        entry.data_length = len(value)
        self._write_entry(entry)

    def _erase_entry(self, entry: _KeyEntry) -> None:
        entry.data_length = 0
        self._write_entry(entry)
        self._deleted.setdefault(entry.initial_length, entry)
        self._entries.pop(entry.key, None)

    def _try_deleted_slot(self, key_data: bytes, value: bytes) -> bool:
        if not self._deleted:
            return False
        largest = max(self._deleted)
        if largest < len(value):
            return False
        entry = self._deleted.pop(largest)
        entry.key = key_data
        self._rewrite(entry, value)
        self._entries.setdefault(key_data, entry)
        return True

    def _new_from_reserved(self, key_data: bytes, value: bytes) -> None:
        entry = self._reserved.popleft()
        if self._reserved_value_size > 0:
            blocks = math.floor(len(value) / self._reserved_value_size + 0.5) + 1
            stored = value.ljust(blocks * self._reserved_value_size, b"\0")
        else:
            stored = value

        self._file.seek(0, os.SEEK_END)
        end = self._file.tell()
        self._file.write(stored)

        entry.data_length = len(value)
        entry.initial_length = len(stored)
        entry.data_pos = end
        entry.key = key_data
        self._write_entry(entry)
        self._entries[key_data] = entry

    def _create_table(self) -> None:
        self._file.seek(0, os.SEEK_END)
        table_pos = self._file.tell()
        count = RESERVED_TABLE_SIZE
        self._file.write(
            _TABLE_HEADER.pack(count, 0) + bytes(_KEY_ENTRY.size * count)
        )
        first = table_pos + _TABLE_HEADER.size
        self._reserved.extend(
            _KeyEntry(first + n * _KEY_ENTRY.size) for n in range(count)
        )

        last = self._tables[-1]
        last.next_table = table_pos
        self._file.seek(last.pos)
        self._file.write(_TABLE_HEADER.pack(last.record_count, last.next_table))
        self._tables.append(_Table(table_pos, count))

    def _add_new(self, key_data: bytes, value: bytes) -> None:
        if not value:
            return
        if self._try_deleted_slot(key_data, value):
            return
        if not self._reserved:
            self._create_table()
        self._new_from_reserved(key_data, value)

    def _change(self, key_data: bytes, value: bytes) -> None:
        entry = self._entries[key_data]
        if value:
            if entry.initial_length >= len(value):
                self._rewrite(entry, value)
            else:
                self._erase_entry(entry)
                self._add_new(key_data, value)
        else:
            self._erase_entry(entry)

    # ------------------------------------------------------------ create

    @classmethod
    def create(cls, path, items: Mapping | Iterable = ()) -> None:
        """Write a new store file holding ``items``, replacing any file there."""
        items = dict(items)
        records = max(len(items), RESERVED_TABLE_SIZE)
        body_offset = (
            _FILE_HEADER.size + _TABLE_HEADER.size + _KEY_ENTRY.size * records
        )

        entries = bytearray()
        body = bytearray()
        for key, value in items.items():
            key_data = _key_bytes(key)
            value = bytes(value)
            entries += _KEY_ENTRY.pack(
                len(body) + body_offset, len(value), len(value), key_data
            )
            body += value
        entries += bytes(_KEY_ENTRY.size * (records - len(items)))

        header = _FILE_HEADER.pack(FILE_VERSION, KEY_SIZE, 0, _FILE_HEADER.size)
        try:
            with open(path, "wb") as out:
                out.write(header)
                out.write(_TABLE_HEADER.pack(records, 0))
                out.write(entries)
                out.write(body)
        except OSError as exc:
            raise KvFileError(f"unable to create {path}") from exc