"""Work packages and the chunking that produces them."""

from .chunking import KeyValueSource, count_chunks, iter_chunks
from .work_package import Entry, WorkPackage

__all__ = ["Entry", "KeyValueSource", "WorkPackage", "count_chunks", "iter_chunks"]
