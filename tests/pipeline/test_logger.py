# tests/pipeline/test_logger.py
from pathlib import Path
import logging
from datetime import datetime
from logging import StreamHandler, FileHandler
from logging.handlers import RotatingFileHandler

import pytest

from recordpack.pipeline.logger import log_file_path, setup_logger

pytestmark = pytest.mark.usefixtures("clean_root_handlers")


@pytest.fixture()
def clean_root_handlers():
    """Start each test with a clean root logger; restore afterwards."""
    root = logging.getLogger()
    prev = list(root.handlers)
    try:
        for h in list(root.handlers):
            root.removeHandler(h)
            try:
                h.close()
            except Exception:
                pass
        yield
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            try:
                h.close()
            except Exception:
                pass
        for h in prev:
            root.addHandler(h)


def _handler_types():
    return {type(h) for h in logging.getLogger().handlers}


def test_creates_log_file_and_writes(tmp_path: Path):
    log_dir = tmp_path / "logs"
    log_dir.mkdir()

    log_path = setup_logger(log_dir, console=False, force=True)
    assert log_path.parent == log_dir
    assert log_path.suffix == ".log"
    assert log_path.exists()

    logging.getLogger().info("hello world")
    text = log_path.read_text(encoding="utf-8")
    assert "Logging to:" in text
    assert "hello world" in text


def test_uses_parent_dir_when_given_a_file_path(tmp_path: Path):
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    sheet_file = log_dir / "job.log"

    log_path = setup_logger(sheet_file, console=False, force=True)
    assert log_path.parent == log_dir
    assert log_path.exists()


def test_force_replaces_handlers_and_rotation(tmp_path: Path):
    log_dir = tmp_path / "logs"
    log_dir.mkdir()

    setup_logger(log_dir, console=True, force=True)
    types1 = _handler_types()
    assert FileHandler in types1 or RotatingFileHandler in types1
    assert StreamHandler in types1

    log_path = setup_logger(log_dir, rotate=True, force=True)
    types2 = _handler_types()
    assert RotatingFileHandler in types2
    assert StreamHandler not in types2

    logging.getLogger().warning("rotate test")
    assert log_path.exists()
    assert "rotate test" in log_path.read_text(encoding="utf-8")


def test_worker_rank_names_file_and_tags_records(tmp_path: Path):
    log_path = setup_logger(tmp_path, rank=3, force=True)
    assert log_path.name.startswith("recordpack_worker003_")

    logging.getLogger("recordpack.test").info("from worker")
    text = log_path.read_text(encoding="utf-8")
    assert "INFO worker003 recordpack.test: from worker" in text


def test_coordinator_file_name(tmp_path: Path):
    when = datetime(2024, 5, 1, 12, 30, 0)
    path = log_file_path(tmp_path / "job.log", when=when)
    assert path == tmp_path / "recordpack_coordinator_20240501_123000.log"
    assert tmp_path.is_dir()
