# recordpack/pipeline/distributor.py
"""Coordinator: chunk the record store and dispatch packages to workers."""

from __future__ import annotations

import enum
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterator, List, Optional, Set

from tqdm import tqdm

from recordpack.config.job import DistributorConfig, JobConfig
from recordpack.logsheet import Logsheet
from recordpack.package.chunking import KeyValueSource, iter_chunks
from recordpack.package.work_package import WorkPackage
from recordpack.transport.base import Transport
from recordpack.transport.messages import (
    SHUTDOWN,
    InitFailed,
    Ready,
    ShutdownComplete,
    Status,
    StatusKind,
    WorkerExited,
)

logger = logging.getLogger(__name__)

__all__ = [
    "DistributorState",
    "WorkerState",
    "WorkerHandle",
    "WorkerPool",
    "JobResult",
    "Distributor",
]

SOURCE = "distributor"


class DistributorState(enum.Enum):
    IDLE = "idle"
    CHUNKING = "chunking"
    DISPATCHING = "dispatching"
    DRAINING = "draining"
    TERMINATED = "terminated"


class WorkerState(enum.Enum):
    STARTING = "starting"
    IDLE = "idle"
    BUSY = "busy"
    RETIRED = "retired"


@dataclass
class WorkerHandle:
    rank: int
    state: WorkerState = WorkerState.STARTING
    in_flight: Optional[int] = None
    """Chunk index currently assigned, if any"""
    packages: int = 0
    initialized: bool = False


class WorkerPool:
    """
    Dispatch targets tagged starting/idle/busy/retired.

    Idle workers are served round-robin from a FIFO. Retiring a worker only
    flips its state; stale FIFO entries are skipped when popped.
    """

    def __init__(self, ranks):
        self.handles: Dict[int, WorkerHandle] = {r: WorkerHandle(r) for r in ranks}
        self._idle: Deque[int] = deque()

    def __getitem__(self, rank: int) -> WorkerHandle:
        return self.handles[rank]

    def mark_ready(self, rank: int) -> None:
        handle = self.handles[rank]
        handle.initialized = True
        if handle.state is WorkerState.STARTING:
            handle.state = WorkerState.IDLE
            self._idle.append(rank)

    def next_idle(self) -> Optional[WorkerHandle]:
        while self._idle:
            handle = self.handles[self._idle.popleft()]
            if handle.state is WorkerState.IDLE:
                return handle
        return None

    def assign(self, handle: WorkerHandle, chunk_index: int) -> None:
        if handle.state is not WorkerState.IDLE:
            raise RuntimeError(f"Worker {handle.rank} is {handle.state.value}, not idle")
        handle.state = WorkerState.BUSY
        handle.in_flight = chunk_index
        handle.packages += 1

    def release(self, rank: int) -> Optional[int]:
        """Return a busy worker to the idle FIFO; returns its finished chunk."""
        handle = self.handles[rank]
        chunk, handle.in_flight = handle.in_flight, None
        if handle.state is WorkerState.BUSY:
            handle.state = WorkerState.IDLE
            self._idle.append(rank)
        return chunk

    def retire(self, rank: int) -> Optional[int]:
        """Remove a worker from dispatch; returns the chunk it was holding."""
        handle = self.handles[rank]
        chunk, handle.in_flight = handle.in_flight, None
        handle.state = WorkerState.RETIRED
        return chunk

    def ranks_in(self, *states: WorkerState) -> List[int]:
        return [r for r, h in self.handles.items() if h.state in states]

    @property
    def live_count(self) -> int:
        return len(self.ranks_in(WorkerState.STARTING, WorkerState.IDLE, WorkerState.BUSY))

    @property
    def busy_count(self) -> int:
        return len(self.ranks_in(WorkerState.BUSY))


@dataclass
class JobResult:
    state: DistributorState = DistributorState.IDLE
    chunks_total: int = 0
    chunks_dispatched: int = 0
    completed: int = 0
    recoverable: List[int] = field(default_factory=list)
    fatal: List[int] = field(default_factory=list)
    lost_chunks: List[int] = field(default_factory=list)
    retired_ranks: List[int] = field(default_factory=list)
    init_failed_ranks: List[int] = field(default_factory=list)
    shutdown_ranks: List[int] = field(default_factory=list)
    failed: bool = False
    message: str = ""

    @property
    def undispatched(self) -> int:
        return self.chunks_total - self.chunks_dispatched

    @property
    def succeeded(self) -> bool:
        return (
            self.state is DistributorState.TERMINATED
            and not self.failed
            and not self.lost_chunks
            and self.undispatched == 0
        )


class Distributor:
    """
    Drive one job from the first chunk to the final shutdown confirmation.

    States move Idle -> Chunking -> Dispatching -> Draining -> Terminated.
    Each worker holds at most one package. A fatal status retires the worker;
    its chunk is recorded in ``lost_chunks`` and not re-sent.
    """

    def __init__(
        self,
        store: KeyValueSource,
        job: JobConfig,
        transport: Transport,
        factory,
        logsheet: Logsheet,
        config: Optional[DistributorConfig] = None,
    ):
        self.store = store
        self.job = job
        self.transport = transport
        self.factory = factory
        self.logsheet = logsheet
        self.config = config or DistributorConfig()

        self.state = DistributorState.IDLE
        self.pool = WorkerPool(transport.ranks)
        self.result = JobResult(chunks_total=job.chunk_count)
        self._confirmed: Set[int] = set()
        self._pbar: Optional[tqdm] = None

    def run(self) -> JobResult:
        self.state = DistributorState.CHUNKING
        chunks = iter_chunks(
            self.store,
            self.job.chunk_size,
            self.job.chunk_count,
            include_values=self.config.include_values,
        )

        self.transport.start(self.factory, self.logsheet)
        with tqdm(
            total=self.job.chunk_count,
            desc="Processing Chunks",
            unit="chunks",
            colour="blue",
            disable=not self.config.progress,
        ) as pbar:
            self._pbar = pbar
            try:
                self._dispatch_all(chunks)
            except Exception as exc:
                # Workers already started still get SHUTDOWN below
                logger.debug("Chunking aborted", exc_info=True)
                self._fail(f"Chunking failed: {type(exc).__name__}: {exc}")
            finally:
                self._pbar = None

        self._shutdown_workers()
        self.state = DistributorState.TERMINATED
        self.result.state = self.state
        self.result.retired_ranks = self.pool.ranks_in(WorkerState.RETIRED)

        if self.result.failed:
            self.logsheet.critical(f"Job failed: {self.result.message}", SOURCE)
        elif self.result.lost_chunks:
            self.logsheet.error(
                "Job finished with chunks lost on fatal workers: "
                + ", ".join(str(c) for c in self.result.lost_chunks),
                SOURCE,
            )
        else:
            self.logsheet.info(
                f"Job finished: {self.result.completed} completed, "
                f"{len(self.result.recoverable)} recoverable errors",
                SOURCE,
            )
        return self.result

    # ------------------------------------------------------------------ #

    def _dispatch_all(self, chunks: Iterator[WorkPackage]) -> None:
        pending = next(chunks, None)
        self.state = (
            DistributorState.DISPATCHING if pending is not None else DistributorState.DRAINING
        )

        while True:
            while pending is not None:
                if not self._within_limit(pending):
                    return
                handle = self.pool.next_idle()
                if handle is None:
                    break
                self._send(handle, pending)
                pending = next(chunks, None)
                if pending is None:
                    self.state = DistributorState.DRAINING

            if pending is None and self.pool.busy_count == 0:
                return
            if pending is not None and self.pool.live_count == 0:
                self._fail(
                    f"No workers remain; {self.result.undispatched} chunks not dispatched"
                )
                return

            self._handle_next()

    def _within_limit(self, package: WorkPackage) -> bool:
        limit = self.config.max_package_bytes
        if limit is None:
            return True
        size = package.nbytes
        if size > limit:
            self._fail(
                f"Chunk {package.chunk_index} packs to {size} bytes, "
                f"over the {limit} byte limit"
            )
            return False
        return True

    def _send(self, handle: WorkerHandle, package: WorkPackage) -> None:
        payload = package.pack()
        self.pool.assign(handle, package.chunk_index)
        self.transport.send(handle.rank, payload)
        self.result.chunks_dispatched += 1
        logger.debug(
            "Dispatched chunk %d/%d (%d entries) to worker %d",
            package.chunk_index, package.chunk_count, len(package), handle.rank,
        )

    def _handle_next(self) -> None:
        received = self.transport.receive(timeout=self.config.poll_timeout_s)
        if received is None:
            busy = self.pool.ranks_in(WorkerState.BUSY)
            self.logsheet.warning(
                f"No report within {self.config.poll_timeout_s}s; "
                f"busy workers: {busy}",
                SOURCE,
            )
            return
        _, msg = received
        self._handle(msg)

    def _handle(self, msg) -> None:
        if isinstance(msg, Ready):
            self.pool.mark_ready(msg.rank)
        elif isinstance(msg, Status):
            self._handle_status(msg)
        elif isinstance(msg, InitFailed):
            self.pool.retire(msg.rank)
            self.result.init_failed_ranks.append(msg.rank)
            self.logsheet.error(
                f"Worker {msg.rank} failed to initialize and will not receive work: "
                f"{msg.message}",
                SOURCE,
            )
        elif isinstance(msg, WorkerExited):
            lost = self.pool.retire(msg.rank)
            self._confirmed.add(msg.rank)
            if lost is not None:
                self.result.lost_chunks.append(lost)
                self._tick()
            self.logsheet.critical(
                f"Worker {msg.rank} exited unexpectedly (exit code {msg.exitcode})"
                + (f" holding chunk {lost}" if lost is not None else ""),
                SOURCE,
            )
        elif isinstance(msg, ShutdownComplete):
            self._confirmed.add(msg.rank)
            self.result.shutdown_ranks.append(msg.rank)
        else:
            logger.warning("Ignoring unexpected message %r", msg)

    def _handle_status(self, status: Status) -> None:
        if status.kind is StatusKind.FATAL:
            lost = self.pool.retire(status.rank)
            self.result.fatal.append(status.chunk_index)
            if lost is not None:
                self.result.lost_chunks.append(lost)
            self.logsheet.error(
                f"Worker {status.rank} retired after fatal error on chunk "
                f"{status.chunk_index}: {status.message}",
                SOURCE,
            )
        else:
            self.pool.release(status.rank)
            if status.kind is StatusKind.COMPLETED:
                self.result.completed += 1
            else:
                self.result.recoverable.append(status.chunk_index)
        self._tick()

    def _tick(self) -> None:
        if self._pbar is not None:
            self._pbar.update(1)

    def _fail(self, message: str) -> None:
        self.result.failed = True
        self.result.message = message
        logger.error(message)

    def _shutdown_workers(self) -> None:
        """Send SHUTDOWN to every live worker and wait for confirmations."""
        live = self.pool.ranks_in(WorkerState.STARTING, WorkerState.IDLE, WorkerState.BUSY)
        self.transport.broadcast(SHUTDOWN, ranks=live)
        logger.info("Shutdown sent to workers %s", live)

        while True:
            waiting = [
                r for r, h in self.pool.handles.items()
                if r not in self._confirmed
                and r not in self.result.init_failed_ranks
                and (h.initialized or h.state is WorkerState.STARTING)
            ]
            if not waiting:
                break
            self._handle_next()
