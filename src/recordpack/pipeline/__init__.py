"""Coordinator and worker roles of a record-processing job."""

from .distributor import Distributor, DistributorState, JobResult, WorkerPool, WorkerState
from .logger import setup_logger
from .orchestrate import run_job
from .receiver import run_receiver

__all__ = [
    "Distributor",
    "DistributorState",
    "JobResult",
    "WorkerPool",
    "WorkerState",
    "run_job",
    "run_receiver",
    "setup_logger",
]
