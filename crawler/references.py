"""
Reference detection in record content.

Detection runs in two stages. Shape rules pick candidate strings that look
like record identifiers; the store's existence check then confirms them.
Shape rules only save existence checks, the store decides what a reference is.
"""

import re
from typing import Any, Iterator, List, Mapping

import structlog

from graph.model import get_data_source
from store.base import RecordStore
from store.errors import RecordStoreError

logger = structlog.get_logger(__name__)


MIN_CANDIDATE_LENGTH = 3

# Identifier shapes used by the record store
REFERENCE_PATTERNS = [
    re.compile(r"^[A-Z][a-zA-Z0-9_]*\.[A-Za-z0-9_]+"),  # Items.Something, BaseStats.Something
    re.compile(r"^[a-z]+data[A-Z]"),                    # gamedataConstantStatModifier_Record
    re.compile(r"^[A-Z][a-zA-Z0-9_]*_Record\Z"),        # SomeType_Record
    re.compile(r"^[A-Z][a-zA-Z]*\.[A-Z]"),              # Namespace.Item
    re.compile(r"^[a-z]+\.[A-Z]"),                      # lowercase.Uppercase
]

# Strings that are safe to write without quotes
PLAIN_SCALAR_PATTERNS = [
    re.compile(r"^[A-Za-z0-9_.]+$"),      # identifiers and dotted paths
    re.compile(r"^LocKey#\d+$"),          # localization keys
    re.compile(r"^[+-]?\d*\.?\d+$"),      # numbers
]

_WHITESPACE = re.compile(r"\s")


def is_candidate_reference(value: Any) -> bool:
    """
    Check whether a string is shaped like a record identifier.

    Args:
        value: Value to check.

    Returns:
        True if the value is a string of at least three characters with no
        whitespace that matches one of REFERENCE_PATTERNS.
    """
    if not isinstance(value, str) or len(value) < MIN_CANDIDATE_LENGTH:
        return False
    if _WHITESPACE.search(value):
        return False
    return any(pattern.match(value) for pattern in REFERENCE_PATTERNS)


def is_plain_scalar(value: str) -> bool:
    """Check whether a string can be written unquoted (identifier, LocKey or number)."""
    return any(pattern.fullmatch(value) for pattern in PLAIN_SCALAR_PATTERNS)


def iter_strings(data: Any) -> Iterator[str]:
    """Yield every string leaf of a content tree, depth first, in document order."""
    if isinstance(data, str):
        yield data
    elif isinstance(data, Mapping):
        for value in data.values():
            yield from iter_strings(value)
    elif isinstance(data, (list, tuple)):
        for item in data:
            yield from iter_strings(item)


def find_candidates(content: Any) -> List[str]:
    """
    Collect the candidate references of a record, without consulting the store.

    Args:
        content: Parsed record content. The payload under ``Data`` or
            ``RootChunk`` is searched when present.

    Returns:
        Unique candidate strings in order of first appearance.
    """
    candidates = {}
    for value in iter_strings(get_data_source(content)):
        if value not in candidates and is_candidate_reference(value):
            candidates[value] = None
    return list(candidates)


def confirm_reference(store: RecordStore, candidate: str) -> bool:
    """Ask the store whether a candidate exists. Store errors count as "no"."""
    try:
        return bool(store.exists(candidate))
    except RecordStoreError as e:
        logger.debug("references.exists_failed", candidate=candidate, error=str(e))
        return False


def extract_references(content: Any, store: RecordStore) -> List[str]:
    """
    Extract confirmed references from a record's content.

    Args:
        content: Parsed record content.
        store: Store used as the existence oracle.

    Returns:
        Confirmed reference paths, unique, in order of first appearance.
    """
    return [c for c in find_candidates(content) if confirm_reference(store, c)]
