# transport/base.py
"""Message-passing contract between the coordinator and its workers."""

from __future__ import annotations

import logging
import queue
import time
from typing import Iterable, List, Optional, Set, Tuple

from .messages import InitFailed, ShutdownComplete, WorkerExited

logger = logging.getLogger(__name__)

__all__ = ["Transport"]

# How long a receive waits on the result queue before checking worker liveness
POLL_INTERVAL_S = 1.0


class Transport:
    """
    Point-to-point task delivery plus one shared result channel.

    Delivery is reliable and ordered per rank. Subclasses create the workers
    in `start` and fill `_tasks` (one queue per rank) and `_results`.
    """

    def __init__(self, num_workers: int):
        if num_workers <= 0:
            raise ValueError(f"num_workers must be > 0, got {num_workers}")
        self.num_workers = num_workers
        self._tasks: List = []
        self._results = None
        self._finished: Set[int] = set()
        self._started = False

    @property
    def ranks(self) -> List[int]:
        return list(range(self.num_workers))

    def start(self, factory, logsheet) -> None:
        raise NotImplementedError

    def _is_alive(self, rank: int) -> bool:
        raise NotImplementedError

    def _exitcode(self, rank: int):
        return None

    def send(self, rank: int, payload) -> None:
        self._tasks[rank].put(payload)

    def broadcast(self, payload, ranks: Optional[Iterable[int]] = None) -> None:
        for rank in (self.ranks if ranks is None else ranks):
            self.send(rank, payload)

    def receive(self, timeout: Optional[float] = None) -> Optional[Tuple[int, object]]:
        """
        Return the next (rank, message) from any worker.

        A worker that died without confirming shutdown is reported once as
        WorkerExited. Returns None if `timeout` elapses first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            wait = POLL_INTERVAL_S
            if deadline is not None:
                wait = max(0.0, min(wait, deadline - time.monotonic()))
            try:
                msg = self._results.get(timeout=wait)
            except queue.Empty:
                msg = self._drain_or_report_exit()
                if msg is None:
                    if deadline is not None and time.monotonic() >= deadline:
                        return None
                    continue
                if isinstance(msg, WorkerExited):
                    return msg.rank, msg

            if isinstance(msg, (ShutdownComplete, InitFailed)):
                self._finished.add(msg.rank)
            return msg.rank, msg

    def _dead_ranks(self) -> List[int]:
        return [
            rank for rank in self.ranks
            if rank not in self._finished and not self._is_alive(rank)
        ]

    def _drain_or_report_exit(self):
        dead = self._dead_ranks()
        if not dead:
            return None
        # A dead worker may still have messages in flight; deliver those first
        try:
            return self._results.get(timeout=0.1)
        except queue.Empty:
            pass
        rank = dead[0]
        self._finished.add(rank)
        exitcode = self._exitcode(rank)
        logger.error("Worker %d exited unexpectedly (exit code %s)", rank, exitcode)
        return WorkerExited(rank, exitcode)

    def close(self) -> None:
        """Wait for workers to leave and release resources."""

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()
