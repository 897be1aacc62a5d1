"""Interfaces for the record store and the output sink."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class RecordStore(ABC):
    """
    A keyed store of structured records.

    Identifiers are dotted paths such as ``Items.Sword``. Adapters may raise
    ``RecordStoreError`` subclasses from any method.
    """

    @abstractmethod
    def exists(self, candidate: str) -> bool:
        """Return True if ``candidate`` is a known record identifier."""
        pass

    @abstractmethod
    def fetch(self, path: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the parsed content of a record.

        Args:
            path: Record identifier.

        Returns:
            The content mapping, or None if the record is absent.

        Raises:
            MalformedRecordError: If the record exists but cannot be parsed.
        """
        pass

    @abstractmethod
    def list_all_identifiers(self) -> List[str]:
        """Return every identifier known to the store, in a stable order."""
        pass


class RecordSink(ABC):
    """A destination for named text outputs."""

    @abstractmethod
    def write(self, name: str, text: str) -> bool:
        """Write ``text`` under ``name``. Returns False if the write was rejected."""
        pass
