# recordpack/pipeline/receiver.py
"""Worker-side loop: receive packages, run the processor, report status."""

from __future__ import annotations

import logging
import traceback

from recordpack.errors import InitializationError, RecoverableError
from recordpack.logsheet import Logsheet
from recordpack.package.work_package import WorkPackage
from recordpack.processor import WorkPackageProcessor
from recordpack.transport.messages import (
    SHUTDOWN,
    InitFailed,
    Ready,
    ShutdownComplete,
    Status,
    StatusKind,
)

logger = logging.getLogger(__name__)

__all__ = ["run_receiver", "worker_source"]


def worker_source(rank: int) -> str:
    """Identifier used for logsheet entries produced by a worker."""
    return f"worker-{rank}"


def run_receiver(rank: int, factory, logsheet: Logsheet, tasks, results) -> int:
    """
    Run one worker until shutdown or a fatal processing error.

    Args:
        rank: Worker rank
        factory: Processor in its factory personality
        logsheet: Shared logsheet handed to the processor
        tasks: Queue of packed packages (or SHUTDOWN) for this rank
        results: Shared queue back to the coordinator

    Returns:
        Number of packages processed
    """
    source = worker_source(rank)

    try:
        processor = _initialize(factory, logsheet)
    except Exception as exc:
        message = f"Initialization failed: {exc}"
        logsheet.error(message, source)
        logger.debug("Worker %d init traceback:\n%s", rank, traceback.format_exc())
        results.put(InitFailed(rank, str(exc)))
        return 0

    results.put(Ready(rank))
    logger.info("Worker %d ready", rank)

    processed = 0
    try:
        while True:
            payload = tasks.get()
            if payload is SHUTDOWN:
                break

            status = _process(rank, processor, payload, logsheet, source)
            processed += 1
            results.put(status)
            if status.fatal:
                break
    finally:
        _shutdown(factory, logsheet, source)
        results.put(ShutdownComplete(rank, processed))
        logger.info("Worker %d stopped after %d packages", rank, processed)

    return processed


def _initialize(factory, logsheet: Logsheet):
    """Run one-time setup, then build the worker-local processor from it."""
    factory.perform_initialization(logsheet)
    processor = factory.new_processor(logsheet)
    if processor is None:
        raise InitializationError("new_processor() returned no processor")
    if isinstance(processor, WorkPackageProcessor) and processor.get_logsheet() is None:
        processor.set_logsheet(logsheet)
    return processor


def _process(rank: int, processor, payload, logsheet: Logsheet, source: str) -> Status:
    chunk_index = -1
    try:
        package = payload if isinstance(payload, WorkPackage) else WorkPackage.unpack(payload)
        chunk_index = package.chunk_index
        processor.process_work_package(package)
    except RecoverableError as exc:
        logsheet.warning(f"Chunk {chunk_index}: recoverable error: {exc}", source)
        return Status(rank, chunk_index, StatusKind.RECOVERABLE, str(exc))
    except Exception as exc:
        logsheet.critical(
            f"Chunk {chunk_index}: fatal error, worker retiring: "
            f"{type(exc).__name__}: {exc}",
            source,
        )
        logger.debug("Worker %d fatal traceback:\n%s", rank, traceback.format_exc())
        return Status(rank, chunk_index, StatusKind.FATAL, str(exc))

    logsheet.debug(
        f"Chunk {chunk_index}/{package.chunk_count}: processed {len(package)} entries",
        source,
    )
    return Status(rank, chunk_index, StatusKind.COMPLETED)


def _shutdown(factory, logsheet: Logsheet, source: str) -> None:
    try:
        factory.perform_shutdown()
    except Exception as exc:
        logsheet.error(f"Shutdown failed: {exc}", source)
