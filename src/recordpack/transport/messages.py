# transport/messages.py
"""Messages exchanged between the coordinator and the workers."""

from __future__ import annotations

import enum
from dataclasses import dataclass

__all__ = [
    "SHUTDOWN",
    "StatusKind",
    "Ready",
    "InitFailed",
    "Status",
    "ShutdownComplete",
    "WorkerExited",
]

# Sentinel sent in place of a package to stop a worker
SHUTDOWN = None


class StatusKind(enum.Enum):
    COMPLETED = "completed"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


@dataclass(frozen=True)
class Ready:
    """Worker finished factory initialization and accepts packages."""
    rank: int


@dataclass(frozen=True)
class InitFailed:
    """Worker could not build or initialize its processor."""
    rank: int
    message: str


@dataclass(frozen=True)
class Status:
    """Outcome of one package on one worker."""
    rank: int
    chunk_index: int
    kind: StatusKind
    message: str = ""

    @property
    def fatal(self) -> bool:
        return self.kind is StatusKind.FATAL


@dataclass(frozen=True)
class ShutdownComplete:
    """Worker ran perform_shutdown and left its loop."""
    rank: int
    packages: int = 0


@dataclass(frozen=True)
class WorkerExited:
    """Worker died without confirming shutdown (synthesized by the transport)."""
    rank: int
    exitcode: object = None
