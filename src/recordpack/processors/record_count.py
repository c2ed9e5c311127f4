# recordpack/processors/record_count.py
"""Processor that counts records and value bytes per process."""

from __future__ import annotations

import os
import threading

from recordpack.logsheet import Logsheet
from recordpack.package.work_package import WorkPackage
from recordpack.processor import WorkPackageProcessor


class RecordCountProcessor(WorkPackageProcessor):
    """
    Count entries and value bytes.

    Workers add into the counters of the factory that built them. Under
    threads several workers share one factory, so updates are locked and the
    totals are written once, when the last of those workers shuts down.
    """

    def __init__(self, logsheet: Logsheet = None, *, factory: "RecordCountProcessor" = None):
        super().__init__(logsheet)
        self._factory = factory
        self._lock = threading.Lock()
        self._active = 0
        self.records = 0
        self.value_bytes = 0
        self.packages = 0

    def __getstate__(self):
        state = self.__dict__.copy()
        del state["_lock"]
        return state

    def __setstate__(self, state) -> None:
        self.__dict__.update(state)
        self._lock = threading.Lock()

    def new_processor(self, logsheet: Logsheet) -> "RecordCountProcessor":
        with self._lock:
            self._active += 1
        return RecordCountProcessor(logsheet, factory=self)

    def perform_initialization(self, logsheet: Logsheet) -> None:
        self.set_logsheet(logsheet)

    def process_work_package(self, package: WorkPackage) -> None:
        target = self._factory or self
        value_bytes = sum(len(v) for _, v in package)
        with target._lock:
            target.packages += 1
            target.records += len(package)
            target.value_bytes += value_bytes

    def perform_shutdown(self) -> None:
        with self._lock:
            self._active = max(self._active - 1, 0)
            if self._active:
                return
            message = (
                f"{self.records} records, {self.value_bytes} value bytes "
                f"in {self.packages} packages"
            )
        if self.logsheet is not None:
            self.logsheet.info(message, f"record-count-{os.getpid()}")
