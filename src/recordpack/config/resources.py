# recordpack/config/resources.py
"""Job resource descriptors built from a properties file."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import urlparse

from recordpack.config.job import JobConfig
from recordpack.config.properties import PropertiesFile
from recordpack.db.rocks import RecordStore
from recordpack.errors import ConfigError, InputStoreError, StoreOpenError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

__all__ = ["Resources", "RecordStoreResources"]


class Resources:
    """
    Job-wide resources common to every job type.

    Subclasses extend ``required_properties()`` so one validation pass
    rejects an incomplete configuration before any work is dispatched.
    """

    WORKERS_PER_NODE_PROPERTY = "Workers Per Node"
    LOGSHEET_URL_PROPERTY = "Logsheet URL"

    def __init__(self, properties_path: PathLike):
        self.properties_path = Path(properties_path).expanduser()
        self._props = PropertiesFile(self.properties_path)

        missing = [
            name for name in self.required_properties() if name not in self._props
        ]
        if missing:
            raise ConfigError(
                "Could not read properties: missing " + ", ".join(repr(m) for m in missing)
            )

        self._workers_per_node = os.cpu_count() or 1
        if self.WORKERS_PER_NODE_PROPERTY in self._props:
            self._workers_per_node = self._props.get_property_as_integer(
                self.WORKERS_PER_NODE_PROPERTY
            )
            if self._workers_per_node <= 0:
                raise ConfigError(
                    f"{self.WORKERS_PER_NODE_PROPERTY!r} must be positive, "
                    f"got {self._workers_per_node}"
                )

        self._logsheet_path: Optional[Path] = None
        if self.LOGSHEET_URL_PROPERTY in self._props:
            self._logsheet_path = _logsheet_url_to_path(
                self._props.get_property(self.LOGSHEET_URL_PROPERTY)
            )

    @classmethod
    def required_properties(cls) -> List[str]:
        return []

    @property
    def properties(self) -> PropertiesFile:
        return self._props

    def get_workers_per_node(self) -> int:
        return self._workers_per_node

    def get_logsheet_path(self) -> Optional[Path]:
        return self._logsheet_path

    def close(self) -> None:
        """Release anything opened by the descriptor."""

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def _logsheet_url_to_path(url: str) -> Path:
    parsed = urlparse(url)
    if parsed.scheme in ("", "file"):
        return Path(parsed.path if parsed.scheme else url).expanduser()
    raise ConfigError(f"Unsupported logsheet URL scheme: {parsed.scheme!r}")


class RecordStoreResources(Resources):
    """Resources for a job whose input is a record store split into chunks."""

    INPUT_RS_PROPERTY = "Input Record Store"
    CHUNK_SIZE_PROPERTY = "Chunk Size"

    def __init__(self, properties_path: PathLike):
        super().__init__(properties_path)

        chunk_size = self._props.get_property_as_integer(self.CHUNK_SIZE_PROPERTY)
        if chunk_size <= 0:
            raise ConfigError(
                f"{self.CHUNK_SIZE_PROPERTY!r} must be positive, got {chunk_size}"
            )
        rs_name = self._props.get_property(self.INPUT_RS_PROPERTY)
        if not rs_name:
            raise ConfigError(f"{self.INPUT_RS_PROPERTY!r} is empty")

        rs_path = Path(rs_name).expanduser()
        rs_base, rs_dir = rs_path.name, rs_path.parent
        try:
            store = RecordStore.open_read_only(rs_dir / rs_base)
        except StoreOpenError as exc:
            raise InputStoreError(f"Could not open record store: {exc}") from exc

        try:
            record_count, max_key = store.scan_keys()
        except Exception:
            store.close()
            raise

        self._record_store = store
        self._config = JobConfig(
            store_path=rs_dir / rs_base,
            chunk_size=chunk_size,
            max_key_length=max_key,
            record_count=record_count,
        )
        logger.info(
            "Record store %s: %d records, max key %d bytes, %d chunks of %d",
            self._config.store_path,
            record_count,
            max_key,
            self._config.chunk_count,
            chunk_size,
        )

    @classmethod
    def required_properties(cls) -> List[str]:
        props = super().required_properties()
        props.append(cls.CHUNK_SIZE_PROPERTY)
        props.append(cls.INPUT_RS_PROPERTY)
        return props

    @property
    def config(self) -> JobConfig:
        return self._config

    def get_chunk_size(self) -> int:
        return self._config.chunk_size

    def get_max_key_size(self) -> int:
        return self._config.max_key_length

    def get_record_count(self) -> int:
        return self._config.record_count

    def get_record_store(self) -> RecordStore:
        return self._record_store

    def close(self) -> None:
        self._record_store.close()
