# transport/thread.py
"""Transport that runs each worker as a thread in the coordinator process."""

from __future__ import annotations

import logging
import queue
import threading
from typing import List

from .base import Transport

logger = logging.getLogger(__name__)

__all__ = ["ThreadTransport"]


class ThreadTransport(Transport):
    """Same protocol as ProcessTransport; suits I/O-bound processors and tests."""

    def __init__(self, num_workers: int, *, join_timeout_s: float = 30.0):
        super().__init__(num_workers)
        self._threads: List[threading.Thread] = []
        self.join_timeout_s = join_timeout_s

    def start(self, factory, logsheet) -> None:
        from recordpack.pipeline.receiver import run_receiver

        if self._started:
            raise RuntimeError("Transport already started")
        self._started = True

        self._results = queue.Queue()
        for rank in self.ranks:
            tasks: queue.Queue = queue.Queue()
            thread = threading.Thread(
                target=run_receiver,
                args=(rank, factory, logsheet, tasks, self._results),
                name=f"rp:worker-{rank}",
                daemon=True,
            )
            self._tasks.append(tasks)
            self._threads.append(thread)
            thread.start()
        logger.info("Started %d worker threads", self.num_workers)

    def _is_alive(self, rank: int) -> bool:
        return self._threads[rank].is_alive()

    def close(self) -> None:
        for thread in self._threads:
            thread.join(timeout=self.join_timeout_s)
            if thread.is_alive():
                logger.warning("Worker %s did not stop within %.0fs", thread.name, self.join_timeout_s)
