# tests/config/test_resources.py
from __future__ import annotations

import os
from pathlib import Path

import pytest

import recordpack.config.resources as resources_mod
from recordpack.config.resources import RecordStoreResources, Resources
from recordpack.db.rocks import write_records
from recordpack.errors import ConfigError, StoreOpenError


# --- helpers ----------------------------------------------------------------- #

def _make_store(path: Path, n: int = 10) -> Path:
    write_records(path, [(f"k{i:02d}", b"v" * i) for i in range(1, n + 1)])
    return path


def _write_props(path: Path, **props: str) -> Path:
    lines = [f"{name.replace('_', ' ')} = {value}" for name, value in props.items()]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class SpyStore:
    """Stands in for RecordStore; remembers whether it was closed."""
    instances: list["SpyStore"] = []

    def __init__(self, scan_error: Exception | None = None):
        self.closed = False
        self.scan_error = scan_error
        SpyStore.instances.append(self)

    def scan_keys(self):
        if self.scan_error:
            raise self.scan_error
        return 0, 0

    def close(self):
        self.closed = True


@pytest.fixture()
def spy_open(monkeypatch):
    SpyStore.instances = []
    calls = []

    def _open(path, **kwargs):
        calls.append(path)
        return SpyStore()

    monkeypatch.setattr(resources_mod.RecordStore, "open_read_only", staticmethod(_open))
    return calls


# --- tests ------------------------------------------------------------------- #

def test_valid_properties_open_store_and_derive_sizes(tmp_path: Path):
    store = _make_store(tmp_path / "stores" / "input", n=10)
    props = _write_props(
        tmp_path / "job.props", Input_Record_Store=str(store), Chunk_Size="4"
    )

    res = RecordStoreResources(props)
    try:
        assert res.get_chunk_size() == 4
        assert res.get_max_key_size() == 3
        assert res.get_record_count() == 10
        assert res.config.chunk_count == 3
        assert res.config.store_path == store
        assert list(res.get_record_store().iter_keys())[:2] == ["k01", "k02"]
    finally:
        res.close()
    assert res.get_record_store().closed


def test_required_properties_extend_base_list():
    assert Resources.required_properties() == []
    assert RecordStoreResources.required_properties() == ["Chunk Size", "Input Record Store"]


@pytest.mark.parametrize("chunk", ["", "abc", "0", "-3", "4.5"])
def test_bad_chunk_size_fails_before_store_opens(tmp_path: Path, spy_open, chunk):
    props = _write_props(
        tmp_path / "job.props", Input_Record_Store="/data/rs", Chunk_Size=chunk
    )
    with pytest.raises(ConfigError):
        RecordStoreResources(props)
    assert spy_open == []


def test_missing_properties_reported_together(tmp_path: Path, spy_open):
    props = _write_props(tmp_path / "job.props", Unrelated="1")
    with pytest.raises(ConfigError) as info:
        RecordStoreResources(props)
    assert "'Chunk Size'" in str(info.value)
    assert "'Input Record Store'" in str(info.value)
    assert spy_open == []


def test_unopenable_store_is_config_error(tmp_path: Path):
    props = _write_props(
        tmp_path / "job.props",
        Input_Record_Store=str(tmp_path / "does-not-exist"),
        Chunk_Size="4",
    )
    with pytest.raises(ConfigError) as info:
        RecordStoreResources(props)
    assert isinstance(info.value, StoreOpenError)


def test_store_closed_when_scan_fails(tmp_path: Path, monkeypatch):
    SpyStore.instances = []
    monkeypatch.setattr(
        resources_mod.RecordStore,
        "open_read_only",
        staticmethod(lambda path, **kw: SpyStore(scan_error=OSError("io"))),
    )
    props = _write_props(
        tmp_path / "job.props", Input_Record_Store="/data/rs", Chunk_Size="4"
    )
    with pytest.raises(OSError):
        RecordStoreResources(props)
    assert len(SpyStore.instances) == 1
    assert SpyStore.instances[0].closed


def test_store_path_split_into_directory_and_base(tmp_path: Path, spy_open):
    props = _write_props(
        tmp_path / "job.props", Input_Record_Store="/data/sets/input_rs", Chunk_Size="2"
    )
    with RecordStoreResources(props) as res:
        assert spy_open == [Path("/data/sets") / "input_rs"]
        assert res.get_record_count() == 0
        assert res.config.chunk_count == 0
    assert SpyStore.instances[0].closed


def test_subclass_adds_required_property(tmp_path: Path, spy_open):
    class ImageResources(RecordStoreResources):
        OUTPUT_PROPERTY = "Output Directory"

        @classmethod
        def required_properties(cls):
            props = super().required_properties()
            props.append(cls.OUTPUT_PROPERTY)
            return props

    props = _write_props(
        tmp_path / "job.props", Input_Record_Store="/data/rs", Chunk_Size="4"
    )
    with pytest.raises(ConfigError, match="Output Directory"):
        ImageResources(props)
    # rejected before anything was opened
    assert spy_open == []


def test_optional_job_properties(tmp_path: Path, spy_open, monkeypatch):
    monkeypatch.setattr(resources_mod.os, "cpu_count", lambda: 6)
    props = _write_props(
        tmp_path / "job.props", Input_Record_Store="/data/rs", Chunk_Size="4"
    )
    with RecordStoreResources(props) as res:
        assert res.get_workers_per_node() == 6
        assert res.get_logsheet_path() is None

    sheet = tmp_path / "logs" / "job.log"
    props = _write_props(
        tmp_path / "job2.props",
        Input_Record_Store="/data/rs",
        Chunk_Size="4",
        Workers_Per_Node="3",
        Logsheet_URL=f"file://{sheet}",
    )
    with RecordStoreResources(props) as res:
        assert res.get_workers_per_node() == 3
        assert res.get_logsheet_path() == sheet


def test_bad_optional_properties(tmp_path: Path, spy_open):
    props = _write_props(
        tmp_path / "job.props",
        Input_Record_Store="/data/rs",
        Chunk_Size="4",
        Workers_Per_Node="0",
    )
    with pytest.raises(ConfigError, match="Workers Per Node"):
        RecordStoreResources(props)

    props = _write_props(
        tmp_path / "job2.props",
        Input_Record_Store="/data/rs",
        Chunk_Size="4",
        Logsheet_URL="http://example.com/log",
    )
    with pytest.raises(ConfigError, match="scheme"):
        RecordStoreResources(props)
