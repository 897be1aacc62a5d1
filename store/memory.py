"""In-memory store and sink, used for embedding and tests."""

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .base import RecordSink, RecordStore
from .errors import MalformedRecordError


RawRecord = Union[str, Mapping[str, Any]]


class InMemoryRecordStore(RecordStore):
    """
    A record store backed by a dict of identifier -> content.

    Content may be an already parsed mapping or raw JSON text. Text is parsed
    on every fetch, the way a store that hands out serialized records behaves.
    """

    def __init__(self, records: Optional[Mapping[str, RawRecord]] = None):
        self._records: Dict[str, RawRecord] = dict(records or {})

    def exists(self, candidate: str) -> bool:
        return candidate in self._records

    def fetch(self, path: str) -> Optional[Dict[str, Any]]:
        raw = self._records.get(path)
        if raw is None:
            return None

        if isinstance(raw, str):
            if not raw.strip():
                return None
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as e:
                raise MalformedRecordError(f"Invalid JSON for {path}: {e}", path=path)

        if not isinstance(raw, Mapping):
            raise MalformedRecordError(
                f"Expected a mapping for {path}, got {type(raw).__name__}",
                path=path,
            )
        return dict(raw)

    def list_all_identifiers(self) -> List[str]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"InMemoryRecordStore(records={len(self._records)})"


class MemorySink(RecordSink):
    """
    A sink that keeps outputs in a dict.

    Names listed in ``reject`` are refused, which lets callers exercise
    write-failure handling.
    """

    def __init__(self, reject: Optional[Iterable[str]] = None):
        self.outputs: Dict[str, str] = {}
        self._reject = set(reject or ())

    def write(self, name: str, text: str) -> bool:
        if name in self._reject:
            return False
        self.outputs[name] = text
        return True
