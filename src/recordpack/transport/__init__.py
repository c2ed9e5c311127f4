"""Message passing between the coordinator and worker ranks."""

from .base import Transport
from .messages import (
    SHUTDOWN,
    InitFailed,
    Ready,
    ShutdownComplete,
    Status,
    StatusKind,
    WorkerExited,
)
from .process import ProcessTransport
from .thread import ThreadTransport

__all__ = [
    "SHUTDOWN",
    "InitFailed",
    "ProcessTransport",
    "Ready",
    "ShutdownComplete",
    "Status",
    "StatusKind",
    "ThreadTransport",
    "Transport",
    "WorkerExited",
]
