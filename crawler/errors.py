"""
Error taxonomy for a record walk.

Fatal problems are exceptions and stop the run before traversal starts.
Everything else is recorded as a ``RunError`` in the run's ``ErrorLog`` and
the run carries on.
"""

from enum import Enum
from typing import Dict, Iterator, List, Optional

import structlog

logger = structlog.get_logger(__name__)


class RecordWalkError(Exception):
    """Base exception for record walk errors."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class FatalPreconditionError(RecordWalkError):
    """
    The run cannot start.

    Raised when the store is unavailable or the seed record is unknown or
    unreadable.
    """

    pass


class ConfigurationError(RecordWalkError):
    """Traversal settings are invalid."""

    pass


class ErrorKind(str, Enum):
    """Kinds of non-fatal errors recorded during a run."""

    FETCH = "fetch"
    EXTRACTION = "extraction"
    EXPANSION = "expansion"
    FORMAT = "format"
    WRITE = "write"


class RunError:
    """A single non-fatal error: what failed, on which subject, and why."""

    __slots__ = ("kind", "subject", "message")

    def __init__(self, kind: ErrorKind, subject: str, message: str):
        self.kind = kind
        self.subject = subject
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "subject": self.subject, "message": self.message}

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.subject}: {self.message}"

    def __repr__(self) -> str:
        return f"RunError(kind={self.kind.value!r}, subject={self.subject!r})"


class ErrorLog:
    """Run-scoped collection of non-fatal errors, shared by traversal and export."""

    def __init__(self):
        self._errors: List[RunError] = []

    def record(self, kind: ErrorKind, subject: str, message: str) -> RunError:
        """Record an error and log it."""
        error = RunError(kind, subject, message)
        self._errors.append(error)
        logger.warning("run.error", kind=kind.value, subject=subject, error=message)
        return error

    def of_kind(self, kind: ErrorKind) -> List[RunError]:
        return [e for e in self._errors if e.kind == kind]

    def counts(self) -> Dict[str, int]:
        """Return the number of errors per kind, for kinds that occurred."""
        counts: Dict[str, int] = {}
        for error in self._errors:
            counts[error.kind.value] = counts.get(error.kind.value, 0) + 1
        return counts

    def __iter__(self) -> Iterator[RunError]:
        return iter(list(self._errors))

    def __len__(self) -> int:
        return len(self._errors)

    def __bool__(self) -> bool:
        return bool(self._errors)
