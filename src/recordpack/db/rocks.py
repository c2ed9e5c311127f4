# recordpack/db/rocks.py
"""Read-only access to the input record store (RocksDB via rocksdict)."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Iterable, Iterator, Optional, Tuple, Union

from rocksdict import AccessType, Options, Rdict

from recordpack.errors import KeyNotFoundError, StoreOpenError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
Key = Union[str, bytes]

__all__ = [
    "RecordStore",
    "make_read_options",
    "key_length",
    "write_records",
]


def make_read_options() -> Options:
    """Options for opening an existing store without creating anything."""
    opts = Options()
    opts.create_if_missing(False)
    return opts


def key_length(key: Key) -> int:
    """Length of a key in bytes as stored (UTF-8 for str keys)."""
    if isinstance(key, str):
        return len(key.encode("utf-8"))
    return len(key)


class RecordStore:
    """
    Read-only handle on an opened record store.

    Supports ordered key enumeration and value-by-key lookup. Never
    mutates the underlying database.
    """

    def __init__(self, db: Rdict, path: Path):
        self._db = db
        self.path = path
        self._closed = False

    @classmethod
    def open_read_only(
        cls,
        path: PathLike,
        *,
        retries: int = 1,
        delay_seconds: float = 0.2,
        backoff: float = 2.0,
    ) -> "RecordStore":
        """
        Open an existing store read-only.

        Retries only on lock-related errors (common after crashed processes).

        Parameters
        ----------
        path : str | Path
            Directory of the RocksDB instance.
        retries : int
            Additional attempts after the first (total tries = retries + 1).
        delay_seconds : float
            Initial sleep between retries.
        backoff : float
            Multiplicative backoff factor for subsequent sleeps.

        Raises
        ------
        StoreOpenError
            If the store does not exist or cannot be opened.
        """
        p = Path(path).expanduser()
        if not p.is_dir():
            raise StoreOpenError(f"Record store not found: {p}")

        attempt = 1
        delay = delay_seconds
        while True:
            try:
                db = Rdict(
                    str(p),
                    make_read_options(),
                    access_type=AccessType.read_only(False),
                )
                logger.info("Opened record store %s read-only (attempt %d)", p, attempt)
                return cls(db, p)
            except Exception as exc:
                msg = str(exc).lower()
                lock_issue = "lock" in msg
                if not lock_issue or attempt > retries:
                    logger.error("Failed to open record store %s: %s", p, exc)
                    raise StoreOpenError(
                        f"Could not open record store: {exc}"
                    ) from exc

                logger.warning(
                    "Record store lock issue opening %s (attempt %d/%d): %s",
                    p,
                    attempt,
                    retries + 1,
                    exc,
                )
                time.sleep(delay)
                delay *= backoff
                attempt += 1

    def iter_keys(self) -> Iterator[Key]:
        """Lazily yield every key in the store's native order."""
        return iter(self._db.keys())

    def get(self, key: Key) -> bytes:
        try:
            return self._db[key]
        except KeyError:
            raise KeyNotFoundError(f"Key not found in {self.path.name}: {key!r}") from None

    def scan_keys(self) -> Tuple[int, int]:
        """Return (record_count, max_key_length) from one pass over the keys."""
        count = 0
        longest = 0
        for key in self.iter_keys():
            count += 1
            n = key_length(key)
            if n > longest:
                longest = n
        return count, longest

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._db.close()

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def write_records(
    path: PathLike,
    items: Iterable[Tuple[Key, bytes]],
    *,
    options: Optional[Options] = None,
) -> int:
    """
    Create (or extend) a store at `path` and write `items` into it.

    Returns the number of records written.
    """
    p = Path(path).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)

    if options is None:
        options = Options()
        options.create_if_missing(True)

    db = Rdict(str(p), options)
    written = 0
    try:
        for key, value in items:
            db[key] = value
            written += 1
    finally:
        db.close()
    logger.info("Wrote %d records to %s", written, p)
    return written
