"""
Distributed record processing over chunked record stores.

A coordinator partitions an input record store into fixed-size work
packages and hands each one to a worker hosting an application processor.

Main entry point:
    run_job() - validate resources, dispatch every chunk, shut workers down

Key components:
    - config: properties files and resource descriptors
    - db: read-only record store access
    - package: work packages and chunking
    - processor: the pluggable processor contract
    - transport: message passing to worker processes or threads
    - pipeline: distributor (coordinator) and receiver (worker) roles
    - logsheet: shared log sinks
"""

from recordpack.config import JobConfig, RecordStoreResources, Resources
from recordpack.db import RecordStore
from recordpack.errors import (
    ConfigError,
    FatalError,
    InitializationError,
    JobFailedError,
    KeyNotFoundError,
    RecordPackError,
    RecoverableError,
    StoreOpenError,
)
from recordpack.logsheet import FileLogsheet, Logsheet, MemoryLogsheet, Severity
from recordpack.package import WorkPackage, iter_chunks
from recordpack.pipeline import Distributor, JobResult, run_job
from recordpack.processor import WorkPackageProcessor, load_processor

__all__ = [
    "run_job",
    "Distributor",
    "JobResult",
    "JobConfig",
    "Resources",
    "RecordStoreResources",
    "RecordStore",
    "WorkPackage",
    "iter_chunks",
    "WorkPackageProcessor",
    "load_processor",
    "Logsheet",
    "MemoryLogsheet",
    "FileLogsheet",
    "Severity",
    "RecordPackError",
    "ConfigError",
    "StoreOpenError",
    "KeyNotFoundError",
    "InitializationError",
    "RecoverableError",
    "FatalError",
    "JobFailedError",
]
