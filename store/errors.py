"""Exceptions raised by record store adapters."""

from typing import Optional


class RecordStoreError(Exception):
    """Base exception for record store problems."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path


class StoreUnavailableError(RecordStoreError):
    """The store cannot be reached or opened at all."""

    pass


class MalformedRecordError(RecordStoreError):
    """A record exists but its content cannot be parsed into a mapping."""

    pass
