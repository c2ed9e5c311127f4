# transport/process.py
"""Transport that runs each worker in its own spawned process."""

from __future__ import annotations

import logging
import multiprocessing as mp
from pathlib import Path
from typing import List, Optional

from setproctitle import setproctitle

from .base import Transport

logger = logging.getLogger(__name__)

__all__ = ["ProcessTransport", "worker_main"]


def worker_main(
    rank: int,
    factory,
    logsheet,
    task_queue: mp.Queue,
    result_queue: mp.Queue,
    log_dir: Optional[Path] = None,
) -> None:
    """Entry point of a worker process."""
    # Imported here so a spawned child pays for it only once it runs
    from recordpack.pipeline.receiver import run_receiver

    setproctitle(f"rp:worker[{rank:03d}]")
    if log_dir is not None:
        from recordpack.pipeline.logger import setup_logger
        setup_logger(log_dir, rank=rank)

    run_receiver(rank, factory, logsheet, task_queue, result_queue)


class ProcessTransport(Transport):
    """
    One spawned process per rank.

    The processor factory and the logsheet are pickled into each child, so
    both must be importable module-level objects (e.g. FileLogsheet).
    """

    def __init__(
        self,
        num_workers: int,
        *,
        log_dir: Optional[Path] = None,
        join_timeout_s: float = 30.0,
    ):
        super().__init__(num_workers)
        self._ctx = mp.get_context("spawn")
        self._processes: List[mp.Process] = []
        self.log_dir = log_dir
        self.join_timeout_s = join_timeout_s

    def start(self, factory, logsheet) -> None:
        if self._started:
            raise RuntimeError("Transport already started")
        self._started = True

        self._results = self._ctx.Queue()
        for rank in self.ranks:
            tasks = self._ctx.Queue()
            process = self._ctx.Process(
                target=worker_main,
                args=(rank, factory, logsheet, tasks, self._results, self.log_dir),
                name=f"rp:worker-{rank}",
            )
            process.start()
            self._tasks.append(tasks)
            self._processes.append(process)
        logger.info("Started %d worker processes", self.num_workers)

    def _is_alive(self, rank: int) -> bool:
        return self._processes[rank].is_alive()

    def _exitcode(self, rank: int):
        return self._processes[rank].exitcode

    def close(self) -> None:
        for process in self._processes:
            process.join(timeout=self.join_timeout_s)
            if process.is_alive():
                logger.warning("Worker %s did not stop gracefully, terminating", process.name)
                process.terminate()
                process.join(timeout=10)

        for q in self._tasks:
            q.cancel_join_thread()
            q.close()
        if self._results is not None:
            self._results.close()

        failed = [p.name for p in self._processes if p.exitcode not in (0, None)]
        if failed:
            logger.warning("Workers with non-zero exit codes: %s", ", ".join(failed))
