# recordpack/errors.py
"""Exception hierarchy shared by the coordinator and the workers."""

from __future__ import annotations

__all__ = [
    "RecordPackError",
    "ConfigError",
    "StoreOpenError",
    "KeyNotFoundError",
    "InitializationError",
    "RecoverableError",
    "FatalError",
    "JobFailedError",
    "InputStoreError",
]


class RecordPackError(Exception):
    """Base class for all framework errors."""


class ConfigError(RecordPackError):
    """A required property is missing or malformed; the job never starts."""


class StoreOpenError(RecordPackError):
    """The input record store could not be opened read-only."""


class KeyNotFoundError(RecordPackError, KeyError):
    """A key was requested that the record store does not hold."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class InitializationError(RecordPackError):
    """A worker's one-time setup failed; that worker never joins the pool."""


class RecoverableError(RecordPackError):
    """
    Raised by a processor when one package failed but the worker is still usable.

    The failure is logged and dispatch continues to the same worker.
    """


class FatalError(RecordPackError):
    """
    Raised by a processor when the worker can no longer be trusted.

    Any exception other than RecoverableError escaping process_work_package
    is treated the same way.
    """


class JobFailedError(RecordPackError):
    """The job terminated without processing every chunk."""


class InputStoreError(ConfigError, StoreOpenError):
    """The store named by the configuration could not be opened read-only."""
