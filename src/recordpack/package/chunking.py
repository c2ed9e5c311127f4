# recordpack/package/chunking.py
"""Partition a record store into fixed-size work packages."""

from __future__ import annotations

import logging
import math
from typing import Iterator, List, Optional, Protocol, Union

from recordpack.package.work_package import Entry, WorkPackage

logger = logging.getLogger(__name__)

__all__ = ["KeyValueSource", "iter_chunks", "count_chunks"]

Key = Union[str, bytes]


class KeyValueSource(Protocol):
    """The narrow part of a record store the chunker relies on."""

    def iter_keys(self) -> Iterator[Key]: ...

    def get(self, key: Key) -> bytes: ...


def count_chunks(record_count: int, chunk_size: int) -> int:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be > 0, got {chunk_size}")
    return math.ceil(record_count / chunk_size)


def iter_chunks(
    store: KeyValueSource,
    chunk_size: int,
    chunk_count: Optional[int] = None,
    *,
    include_values: bool = True,
) -> Iterator[WorkPackage]:
    """
    Yield work packages in store order, `chunk_size` entries at a time.

    Keys come from a single pass over the store's native iteration order.
    The last package may hold fewer entries; an empty store yields nothing.

    Args:
        store: Opened record store
        chunk_size: Maximum entries per package
        chunk_count: Total chunks, when known up front. If None, the whole
            store is enumerated first so every package carries the final count.
        include_values: Fetch values; otherwise ship keys with empty values
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be > 0, got {chunk_size}")

    if chunk_count is None:
        pending: List[Key] = list(store.iter_keys())
        chunk_count = count_chunks(len(pending), chunk_size)
        keys: Iterator[Key] = iter(pending)
    else:
        keys = store.iter_keys()

    index = 0
    batch: List[Entry] = []
    for key in keys:
        value = store.get(key) if include_values else b""
        batch.append((_as_text(key), value))
        if len(batch) == chunk_size:
            yield _seal(index, chunk_count, batch)
            index += 1
            batch = []

    if batch:
        yield _seal(index, chunk_count, batch)
        index += 1

    if index != chunk_count:
        raise RuntimeError(
            f"Store yielded {index} chunks but {chunk_count} were expected; "
            "was it modified during the job?"
        )
    logger.debug("Chunking finished: %d chunks of up to %d", index, chunk_size)


def _seal(index: int, count: int, batch: List[Entry]) -> WorkPackage:
    if index >= count:
        raise RuntimeError(
            f"Store holds more records than expected ({count} chunks)"
        )
    return WorkPackage(index, count, tuple(batch))


def _as_text(key: Key) -> str:
    return key if isinstance(key, str) else key.decode("utf-8")
