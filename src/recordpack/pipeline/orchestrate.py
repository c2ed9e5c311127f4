# recordpack/pipeline/orchestrate.py
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Type, Union

from setproctitle import setproctitle

from recordpack.config.job import DistributorConfig
from recordpack.config.resources import RecordStoreResources
from recordpack.errors import JobFailedError
from recordpack.logsheet import FileLogsheet, Logsheet, MemoryLogsheet
from recordpack.pipeline.distributor import Distributor, JobResult
from recordpack.pipeline.report import log_job_result, log_run_summary, print_run_summary
from recordpack.processor import load_processor
from recordpack.transport.process import ProcessTransport
from recordpack.transport.thread import ThreadTransport

logger = logging.getLogger(__name__)

__all__ = ["run_job"]


def run_job(
    properties_path: Union[str, Path],
    processor,
    *,
    resources_cls: Type[RecordStoreResources] = RecordStoreResources,
    num_workers: Optional[int] = None,
    use_threads: bool = False,
    include_values: bool = True,
    progress: bool = False,
    max_package_bytes: Optional[int] = None,
    poll_timeout_s: Optional[float] = None,
    logsheet: Optional[Logsheet] = None,
    log_dir: Optional[Path] = None,
    print_summary: bool = False,
    raise_on_failure: bool = False,
) -> JobResult:
    """
    Validate the job's resources, then chunk and process the record store.

    Process
    -------
    1. Read and validate the properties file; open the store read-only
    2. Create the shared logsheet (``Logsheet URL`` or in-memory)
    3. Start the workers (processes, or threads with `use_threads`)
    4. Dispatch every chunk; shut every worker down
    5. Close the store and report the outcome

    `processor` is a processor factory or a ``"module:Class"`` string.
    Configuration and store-open failures raise before any worker starts.
    """
    setproctitle("rp:coordinator")

    start_time = datetime.now()

    if isinstance(processor, str):
        processor = load_processor(processor)

    with resources_cls(properties_path) as resources:
        workers = num_workers or resources.get_workers_per_node()

        if logsheet is None:
            logsheet_path = resources.get_logsheet_path()
            if logsheet_path is not None:
                logsheet = FileLogsheet(logsheet_path)
            else:
                if not use_threads:
                    logger.warning(
                        "No 'Logsheet URL' set; worker entries go to worker logs only"
                    )
                logsheet = MemoryLogsheet()

        if use_threads:
            transport = ThreadTransport(workers)
            executor_name = "threads"
        else:
            transport = ProcessTransport(workers, log_dir=log_dir)
            executor_name = "processes"

        summary = dict(
            properties_path=str(properties_path),
            job=resources.config,
            workers=workers,
            executor_name=executor_name,
            start_time=start_time,
            processor_name=type(processor).__name__,
            include_values=include_values,
            logsheet_path=str(getattr(logsheet, "path", "") or ""),
        )
        log_run_summary(**summary)
        if print_summary:
            print_run_summary(**summary)

        config = DistributorConfig(
            include_values=include_values,
            max_package_bytes=max_package_bytes,
            progress=progress,
            poll_timeout_s=poll_timeout_s,
        )
        with transport:
            distributor = Distributor(
                resources.get_record_store(),
                resources.config,
                transport,
                processor,
                logsheet,
                config,
            )
            result = distributor.run()

    log_job_result(result, datetime.now() - start_time)

    if raise_on_failure and not result.succeeded:
        raise JobFailedError(
            result.message
            or f"{len(result.lost_chunks)} chunks lost, {result.undispatched} not dispatched"
        )
    return result
