# recordpack/processor.py
"""
Pluggable contract implemented by applications to process work packages.

A concrete processor presents two personalities:

* factory: ``new_processor``, ``perform_initialization`` and
  ``perform_shutdown``, called once per worker process;
* worker: ``process_work_package``, called once per package.

One class implements both. The framework injects the shared logsheet after
construction through ``set_logsheet`` so processors never reach for a global.
"""

from __future__ import annotations

import importlib
from abc import ABC, abstractmethod
from typing import Optional, Protocol, runtime_checkable

from recordpack.errors import InitializationError
from recordpack.logsheet import Logsheet
from recordpack.package.work_package import WorkPackage

__all__ = [
    "ProcessorFactory",
    "ProcessorWorker",
    "WorkPackageProcessor",
    "load_processor",
]


@runtime_checkable
class ProcessorFactory(Protocol):
    def new_processor(self, logsheet: Logsheet) -> "ProcessorWorker": ...

    def perform_initialization(self, logsheet: Logsheet) -> None: ...

    def perform_shutdown(self) -> None: ...


@runtime_checkable
class ProcessorWorker(Protocol):
    def process_work_package(self, package: WorkPackage) -> None: ...


class WorkPackageProcessor(ABC):
    """Base class for application processors (both personalities)."""

    def __init__(self, logsheet: Optional[Logsheet] = None):
        self._logsheet = logsheet

    @abstractmethod
    def new_processor(self, logsheet: Logsheet) -> "WorkPackageProcessor":
        """
        Return a fresh worker-local processor.

        Must never return None; raise InitializationError (or any exception)
        with a message that the framework logs.
        """

    @abstractmethod
    def perform_initialization(self, logsheet: Logsheet) -> None:
        """One-time setup; runs before `new_processor` builds any worker."""

    @abstractmethod
    def process_work_package(self, package: WorkPackage) -> None:
        """
        Process one package.

        Raise RecoverableError when only this package failed. Any other
        exception retires the worker.
        """

    def perform_shutdown(self) -> None:
        """Runs once after the last package; default does nothing."""

    def set_logsheet(self, logsheet: Logsheet) -> None:
        self._logsheet = logsheet

    def get_logsheet(self) -> Optional[Logsheet]:
        return self._logsheet

    @property
    def logsheet(self) -> Optional[Logsheet]:
        return self._logsheet


def load_processor(spec: str, *args, **kwargs) -> WorkPackageProcessor:
    """Instantiate a processor factory from ``"package.module:ClassName"``."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise InitializationError(
            f"Processor must be given as 'module:Class', got {spec!r}"
        )
    try:
        module = importlib.import_module(module_name)
        cls = getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise InitializationError(f"Could not load processor {spec!r}: {exc}") from exc
    return cls(*args, **kwargs)
