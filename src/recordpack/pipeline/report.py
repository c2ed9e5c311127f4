# recordpack/pipeline/report.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from recordpack.config.job import JobConfig

logger = logging.getLogger(__name__)


def _abbrev(s: str, width: int = 96) -> str:
    """Return s truncated with an ellipsis if it exceeds width."""
    return s if len(s) <= width else (s[: max(0, width - 1)] + "…")


def format_run_summary(
    *,
    properties_path: str,
    job: JobConfig,
    workers: int,
    executor_name: str,
    start_time: datetime,
    processor_name: str = "",
    include_values: bool = True,
    logsheet_path: Optional[str] = None,
    color: bool = True,
) -> str:
    """
    Build a formatted, human-readable summary of the planned run.
    """
    heading = f"Start Time: {start_time:%Y-%m-%d %H:%M:%S}"
    if color:
        heading = f"\033[31m{heading}\033[0m"

    lines = [
        heading,
        ("\033[4mRecord Processing Configuration\033[0m" if color
         else "Record Processing Configuration"),
        f"Properties file:            {_abbrev(properties_path)}",
        f"Input record store:         {_abbrev(str(job.store_path))}",
        f"Records:                    {job.record_count:,}",
        f"Chunk size:                 {job.chunk_size:,}",
        f"Chunks:                     {job.chunk_count:,}",
        f"Max key length (bytes):     {job.max_key_length}",
        f"Ship values:                {include_values}",
    ]

    if processor_name:
        lines.append(f"Processor:                  {processor_name}")
    if logsheet_path:
        lines.append(f"Logsheet:                   {_abbrev(logsheet_path)}")

    lines.append(f"Workers:                    {workers} ({executor_name})")
    return "\n".join(lines) + "\n"


def format_job_result(result, runtime: timedelta, *, color: bool = True) -> str:
    """Build the completion report for a finished job."""
    ok = result.succeeded
    banner = "Job completed!" if ok else "Job failed!"
    if color:
        banner = f"\033[{32 if ok else 31}m{banner}\033[0m"

    lines = [
        banner,
        f"Chunks completed:           {result.completed:,} of {result.chunks_total:,}",
    ]
    if result.recoverable:
        lines.append(f"Recoverable errors:         {len(result.recoverable):,}")
    if result.lost_chunks:
        lines.append(
            "Chunks lost (fatal):        "
            + ", ".join(str(c) for c in result.lost_chunks)
        )
    if result.undispatched:
        lines.append(f"Chunks never dispatched:    {result.undispatched:,}")
    if result.retired_ranks:
        lines.append(
            "Retired workers:            "
            + ", ".join(str(r) for r in result.retired_ranks)
        )
    if result.message:
        lines.append(f"Message:                    {result.message}")
    lines.append(f"Total Runtime:              {runtime}")
    return "\n".join(lines) + "\n"


def print_run_summary(**kwargs) -> None:
    """Print the run summary to stdout (CLI usage)."""
    print(format_run_summary(**kwargs), end="")


def log_run_summary(*, color: bool = False, **kwargs) -> None:
    """Log the run summary at INFO level (pipelines using logging)."""
    summary = format_run_summary(color=color, **kwargs)
    for line in summary.rstrip("\n").splitlines():
        logger.info(line)


def log_job_result(result, runtime: timedelta) -> None:
    level = logging.INFO if result.succeeded else logging.ERROR
    for line in format_job_result(result, runtime, color=False).rstrip("\n").splitlines():
        logger.log(level, line)
