"""Ready-made processors."""

from .key_log import KeyLogProcessor
from .record_count import RecordCountProcessor

__all__ = ["KeyLogProcessor", "RecordCountProcessor"]
