# recordpack/config/job.py
from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# Immutable description of the input for one job
@dataclass(frozen=True)
class JobConfig:
    store_path: Path
    chunk_size: int
    max_key_length: int = 0
    record_count: int = 0

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got {self.chunk_size}")

    @property
    def chunk_count(self) -> int:
        """Number of work packages the store partitions into."""
        return math.ceil(self.record_count / self.chunk_size)


# Coordinator options
@dataclass(frozen=True)
class DistributorConfig:
    """Options for the coordinator.

    include_values:
        Ship (key, value) pairs; when False, packages carry keys with empty values.
    max_package_bytes:
        Upper bound on a packed package; None for no bound.
    """
    include_values: bool = True
    max_package_bytes: Optional[int] = None
    progress: bool = False
    poll_timeout_s: Optional[float] = None  # None blocks until a worker reports
