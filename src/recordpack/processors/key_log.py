# recordpack/processors/key_log.py
"""Processor that writes one logsheet entry per record."""

from __future__ import annotations

import os

from recordpack.logsheet import Logsheet
from recordpack.package.work_package import WorkPackage
from recordpack.processor import WorkPackageProcessor


class KeyLogProcessor(WorkPackageProcessor):
    """Log each key with the size of its value."""

    def __init__(self, logsheet: Logsheet = None):
        super().__init__(logsheet)
        self.source = f"key-log-{os.getpid()}"

    def new_processor(self, logsheet: Logsheet) -> "KeyLogProcessor":
        return KeyLogProcessor(logsheet)

    def perform_initialization(self, logsheet: Logsheet) -> None:
        self.set_logsheet(logsheet)

    def process_work_package(self, package: WorkPackage) -> None:
        for key, value in package:
            self.logsheet.info(
                f"chunk {package.chunk_index}: {key} ({len(value)} bytes)", self.source
            )
