"""Record store adapters and output sinks."""

from .base import RecordStore, RecordSink
from .errors import RecordStoreError, StoreUnavailableError, MalformedRecordError
from .memory import InMemoryRecordStore, MemorySink
from .directory import DirectoryRecordStore, DirectorySink

__all__ = [
    "RecordStore",
    "RecordSink",
    "RecordStoreError",
    "StoreUnavailableError",
    "MalformedRecordError",
    "InMemoryRecordStore",
    "MemorySink",
    "DirectoryRecordStore",
    "DirectorySink",
]
