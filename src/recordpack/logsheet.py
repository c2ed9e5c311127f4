# recordpack/logsheet.py
"""
Shared, append-only destinations for status and error entries.

Every entry carries a severity, a message, and the identifier of the entity
that produced it. Entries are also mirrored to the ``recordpack.logsheet``
logger so they land in the regular log file.
"""

from __future__ import annotations

import enum
import logging
import multiprocessing as mp
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

__all__ = [
    "Severity",
    "LogEntry",
    "Logsheet",
    "MemoryLogsheet",
    "FileLogsheet",
]


class Severity(enum.IntEnum):
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def coerce(cls, value: Union["Severity", int, str]) -> "Severity":
        if isinstance(value, str):
            try:
                return cls[value.upper()]
            except KeyError:
                raise ValueError(f"Unknown severity: {value!r}") from None
        return cls(value)


@dataclass(frozen=True)
class LogEntry:
    number: int
    severity: Severity
    message: str
    source: str
    timestamp: datetime

    def format(self) -> str:
        # One line per entry; embedded newlines are escaped
        message = self.message.replace("\n", "\\n")
        return (
            f"E{self.number:07d} {self.timestamp.isoformat(timespec='seconds')} "
            f"{self.severity.name} [{self.source}] {message}"
        )

    @classmethod
    def parse(cls, line: str) -> "LogEntry":
        number, stamp, severity, rest = line.rstrip("\n").split(" ", 3)
        source, _, message = rest.partition("] ")
        return cls(
            number=int(number[1:]),
            severity=Severity[severity],
            message=message.replace("\\n", "\n"),
            source=source.lstrip("["),
            timestamp=datetime.fromisoformat(stamp),
        )


class Logsheet:
    """Base class; subclasses store entries atomically in `_write`."""

    def append(
        self,
        severity: Union[Severity, int, str],
        message: str,
        source: str,
    ) -> None:
        severity = Severity.coerce(severity)
        logger.log(int(severity), "[%s] %s", source, message)
        self._write(severity, str(message), str(source))

    def _write(self, severity: Severity, message: str, source: str) -> None:
        raise NotImplementedError

    def debug(self, message: str, source: str) -> None:
        self.append(Severity.DEBUG, message, source)

    def info(self, message: str, source: str) -> None:
        self.append(Severity.INFO, message, source)

    def warning(self, message: str, source: str) -> None:
        self.append(Severity.WARNING, message, source)

    def error(self, message: str, source: str) -> None:
        self.append(Severity.ERROR, message, source)

    def critical(self, message: str, source: str) -> None:
        self.append(Severity.CRITICAL, message, source)


class MemoryLogsheet(Logsheet):
    """In-process logsheet; safe across threads but not across processes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: List[LogEntry] = []

    def __getstate__(self):
        # A copy sent to another process starts empty
        return {"entries": 0}

    def __setstate__(self, state) -> None:
        self.__init__()

    def _write(self, severity: Severity, message: str, source: str) -> None:
        with self._lock:
            self._entries.append(
                LogEntry(len(self._entries) + 1, severity, message, source, datetime.now())
            )

    @property
    def entries(self) -> List[LogEntry]:
        with self._lock:
            return list(self._entries)

    def find(
        self,
        severity: Optional[Union[Severity, int, str]] = None,
        source: Optional[str] = None,
    ) -> List[LogEntry]:
        sev = Severity.coerce(severity) if severity is not None else None
        return [
            e for e in self.entries
            if (sev is None or e.severity == sev)
            and (source is None or e.source == source)
        ]


class FileLogsheet(Logsheet):
    """
    Logsheet backed by a text file, shared by every process of a job.

    Writes are serialized with a multiprocessing lock and entry numbers come
    from a shared counter, so concurrent workers never interleave partial
    entries. Hand the instance to worker processes as a Process argument.
    """

    def __init__(self, path: Union[str, Path], *, ctx=None, truncate: bool = True):
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        ctx = ctx or mp.get_context("spawn")
        self._lock = ctx.Lock()
        self._counter = ctx.Value("Q", 0, lock=False)
        if truncate or not self.path.exists():
            self.path.write_text("", encoding="utf-8")
        else:
            with open(self.path, encoding="utf-8") as fh:
                self._counter.value = sum(1 for line in fh if line.strip())

    def _write(self, severity: Severity, message: str, source: str) -> None:
        with self._lock:
            self._counter.value += 1
            entry = LogEntry(
                self._counter.value, severity, message, source, datetime.now()
            )
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write(entry.format() + "\n")
                fh.flush()

    def read_entries(self) -> List[LogEntry]:
        with self._lock:
            text = self.path.read_text(encoding="utf-8")
        return [LogEntry.parse(line) for line in text.splitlines() if line]
