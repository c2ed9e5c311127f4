# recordpack/package/work_package.py
"""Self-contained unit of work shipped from the coordinator to one worker."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple

__all__ = ["WorkPackage", "Entry"]

Entry = Tuple[str, bytes]

# Packed layout (little-endian):
#   header: chunk_index u64, chunk_count u64, entry count u32
#   entry:  key length u32, key (UTF-8), value length u32, value
_HEADER = struct.Struct("<QQI")
_LEN = struct.Struct("<I")


@dataclass(frozen=True)
class WorkPackage:
    """An ordered run of (key, value) entries plus its place in the job."""

    chunk_index: int
    """Zero-based position of this chunk in store order"""

    chunk_count: int
    """Total number of chunks in the job"""

    entries: Tuple[Entry, ...] = ()
    """Entries in source store key order"""

    def __post_init__(self) -> None:
        if not 0 <= self.chunk_index < self.chunk_count:
            raise ValueError(
                f"chunk_index {self.chunk_index} out of range for "
                f"chunk_count {self.chunk_count}"
            )
        if not isinstance(self.entries, tuple):
            object.__setattr__(self, "entries", tuple(self.entries))

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    @property
    def keys(self) -> Sequence[str]:
        return [k for k, _ in self.entries]

    @property
    def nbytes(self) -> int:
        """Size of the packed form in bytes."""
        size = _HEADER.size
        for key, value in self.entries:
            size += 2 * _LEN.size + len(key.encode("utf-8")) + len(value)
        return size

    def pack(self) -> bytes:
        parts = [_HEADER.pack(self.chunk_index, self.chunk_count, len(self.entries))]
        append = parts.append
        for key, value in self.entries:
            kb = key.encode("utf-8")
            append(_LEN.pack(len(kb)))
            append(kb)
            append(_LEN.pack(len(value)))
            append(bytes(value))
        return b"".join(parts)

    @classmethod
    def unpack(cls, data: bytes) -> "WorkPackage":
        view = memoryview(data)
        if len(view) < _HEADER.size:
            raise ValueError("Truncated work package header")
        chunk_index, chunk_count, n = _HEADER.unpack_from(view, 0)
        pos = _HEADER.size

        entries = []
        for _ in range(n):
            key, pos = _read_field(view, pos)
            value, pos = _read_field(view, pos)
            entries.append((key.decode("utf-8"), value))

        if pos != len(view):
            raise ValueError(
                f"Trailing data in work package: {len(view) - pos} bytes"
            )
        return cls(chunk_index, chunk_count, tuple(entries))


def _read_field(view: memoryview, pos: int) -> Tuple[bytes, int]:
    if pos + _LEN.size > len(view):
        raise ValueError("Truncated work package entry")
    (length,) = _LEN.unpack_from(view, pos)
    pos += _LEN.size
    end = pos + length
    if end > len(view):
        raise ValueError("Truncated work package entry")
    return bytes(view[pos:end]), end
