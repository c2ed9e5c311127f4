# tests/package/test_chunking.py
from __future__ import annotations

import math

import pytest

from recordpack.errors import KeyNotFoundError
from recordpack.package.chunking import count_chunks, iter_chunks


class DictStore:
    """Record store fake: native order is insertion order."""

    def __init__(self, items):
        self._data = dict(items)
        self.gets: list[str] = []

    def iter_keys(self):
        return iter(list(self._data))

    def get(self, key):
        self.gets.append(key)
        try:
            return self._data[key]
        except KeyError:
            raise KeyNotFoundError(key) from None


def _store(n: int) -> DictStore:
    return DictStore((f"k{i}", f"v{i}".encode()) for i in range(1, n + 1))


def test_ten_keys_chunk_size_four():
    chunks = list(iter_chunks(_store(10), 4))

    assert [c.keys for c in chunks] == [
        ["k1", "k2", "k3", "k4"],
        ["k5", "k6", "k7", "k8"],
        ["k9", "k10"],
    ]
    assert [c.chunk_index for c in chunks] == [0, 1, 2]
    assert {c.chunk_count for c in chunks} == {3}
    assert chunks[2].entries == (("k9", b"v9"), ("k10", b"v10"))


@pytest.mark.parametrize("size", [0, 1, 3, 8, 9, 25])
@pytest.mark.parametrize("chunk_size", [1, 3, 8, 30])
def test_partition_covers_store_exactly_once(size, chunk_size):
    store = _store(size)
    chunks = list(iter_chunks(store, chunk_size, count_chunks(size, chunk_size)))

    assert len(chunks) == math.ceil(size / chunk_size)
    for chunk in chunks[:-1]:
        assert len(chunk) == chunk_size
    if chunks:
        last = size % chunk_size or chunk_size
        assert len(chunks[-1]) == last

    keys = [k for c in chunks for k in c.keys]
    assert keys == list(store.iter_keys())


def test_native_order_is_not_resorted():
    store = DictStore([("zebra", b"1"), ("apple", b"2"), ("mango", b"3")])
    (chunk,) = iter_chunks(store, 5)
    assert chunk.keys == ["zebra", "apple", "mango"]


def test_empty_store_yields_nothing():
    assert list(iter_chunks(_store(0), 4)) == []


def test_keys_only_skips_value_lookups():
    store = _store(5)
    chunks = list(iter_chunks(store, 2, include_values=False))
    assert store.gets == []
    assert all(v == b"" for c in chunks for _, v in c)


def test_bytes_keys_are_decoded():
    store = DictStore([(b"a", b"1"), (b"b", b"2")])
    (chunk,) = iter_chunks(store, 2)
    assert chunk.keys == ["a", "b"]


def test_count_mismatch_is_detected():
    with pytest.raises(RuntimeError, match="more records"):
        list(iter_chunks(_store(5), 2, chunk_count=2))
    with pytest.raises(RuntimeError, match="expected"):
        list(iter_chunks(_store(3), 2, chunk_count=4))


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        list(iter_chunks(_store(3), 0))
    with pytest.raises(ValueError):
        count_chunks(3, 0)
