"""Expansion of a type tag or namespace into all of its member records."""

from typing import List, Optional

import structlog

from graph.model import NAMESPACE_SEPARATOR, get_record_type
from store.base import RecordStore
from store.errors import RecordStoreError

from .errors import ErrorKind, ErrorLog

logger = structlog.get_logger(__name__)


class CategoryExpander:
    """
    Finds every record of a type or namespace.

    Expansion is a best-effort bulk scan: records that cannot be fetched
    while scanning are skipped silently, and a failed listing is recorded as
    an expansion error with whatever was gathered so far returned.
    """

    def __init__(self, store: RecordStore, errors: Optional[ErrorLog] = None):
        self.store = store
        self.errors = errors if errors is not None else ErrorLog()

    def _list_identifiers(self, category: str) -> List[str]:
        try:
            return list(self.store.list_all_identifiers())
        except RecordStoreError as e:
            self.errors.record(ErrorKind.EXPANSION, category, f"Cannot list identifiers: {e}")
            return []

    def expand_type(self, tag: str) -> List[str]:
        """
        Return every record whose type tag equals ``tag``.

        Each known identifier is fetched to read its type, in the order the
        store lists them.
        """
        members: List[str] = []
        for path in self._list_identifiers(tag):
            try:
                content = self.store.fetch(path)
            except RecordStoreError as e:
                logger.debug("categories.fetch_skipped", path=path, error=str(e))
                continue
            if content is not None and get_record_type(content) == tag:
                members.append(path)

        logger.info("categories.type_expanded", type=tag, members=len(members))
        return members

    def expand_namespace(self, prefix: str) -> List[str]:
        """Return every identifier starting with ``prefix`` followed by a separator."""
        needle = prefix + NAMESPACE_SEPARATOR
        members = [path for path in self._list_identifiers(prefix) if path.startswith(needle)]

        logger.info("categories.namespace_expanded", namespace=prefix, members=len(members))
        return members
