# recordpack/pipeline/logger.py
"""
Per-process log files for a job.

The coordinator and every worker process each write their own file in a
shared directory. Records are tagged with the writer's role so lines from
merged files can still be told apart.
"""
from __future__ import annotations

import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

__all__ = ["setup_logger", "log_file_path", "role_name"]

LOG_FORMAT = "%(asctime)s %(levelname)s %(role)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def role_name(rank: Optional[int]) -> str:
    return "coordinator" if rank is None else f"worker{rank:03d}"


def log_file_path(
    log_dir: str | Path,
    *,
    rank: Optional[int] = None,
    filename_prefix: str = "recordpack",
    when: Optional[datetime] = None,
) -> Path:
    """
    Name the log file for one process, creating its directory.

    A path with a suffix (e.g. the logsheet file) places logs beside it.
    """
    p = Path(log_dir).expanduser()
    out_dir = p if (p.is_dir() or not p.suffix) else p.parent
    out_dir.mkdir(parents=True, exist_ok=True)

    ts = (when or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return out_dir / f"{filename_prefix}_{role_name(rank)}_{ts}.log"


class _RoleFilter(logging.Filter):
    """Stamp each record passing a handler with the process role."""

    def __init__(self, role: str):
        super().__init__()
        self.role = role

    def filter(self, record: logging.LogRecord) -> bool:
        record.role = self.role
        return True


def setup_logger(
    log_dir: str | Path,
    *,
    rank: Optional[int] = None,
    level: int = logging.INFO,
    filename_prefix: str = "recordpack",
    console: bool = False,
    rotate: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """
    Route root logging for this process to its own file under `log_dir`.

    Args:
        log_dir: Directory shared by all processes of the job
        rank: Worker rank, or None for the coordinator
        force: Drop handlers installed earlier in this process

    Returns:
        Path to the log file
    """
    log_path = log_file_path(log_dir, rank=rank, filename_prefix=filename_prefix)
    tag = _RoleFilter(role_name(rank))
    fmt = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    if force:
        for h in list(root.handlers):
            root.removeHandler(h)
    root.setLevel(level)

    handlers: list[logging.Handler] = []
    if rotate:
        handlers.append(RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        ))
    else:
        # Append: a rank restarted within the same second reuses the name
        handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))
    if console:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setLevel(level)
        handler.addFilter(tag)
        handler.setFormatter(fmt)
        root.addHandler(handler)

    root.info("Logging to: %s", str(log_path))
    return log_path
