"""Record model and the graph of records discovered during a walk."""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple


UNKNOWN_TYPE = "Unknown"
TYPE_KEY = "$type"
NAMESPACE_SEPARATOR = "."

# Containers that may wrap a record's payload, in lookup order
PAYLOAD_KEYS = ("Data", "RootChunk")


def get_data_source(content: Any) -> Any:
    """
    Return the part of a record's content that holds its fields.

    Records keep their payload under ``Data`` or ``RootChunk``; anything
    else is treated as the payload itself.
    """
    if isinstance(content, Mapping):
        for key in PAYLOAD_KEYS:
            if content.get(key):
                return content[key]
    return content


def get_record_type(content: Any) -> str:
    """
    Derive the type tag of a record from its content.

    Args:
        content: Parsed record content.

    Returns:
        The ``$type`` of ``Data``, ``RootChunk`` or the content itself,
        or ``"Unknown"`` if none is present.
    """
    if not isinstance(content, Mapping):
        return UNKNOWN_TYPE

    for key in PAYLOAD_KEYS:
        payload = content.get(key)
        if isinstance(payload, Mapping) and payload.get(TYPE_KEY):
            return str(payload[TYPE_KEY])

    if content.get(TYPE_KEY):
        return str(content[TYPE_KEY])

    return UNKNOWN_TYPE


def get_namespace(path: str) -> Optional[str]:
    """Return the text before the first separator, or None for a bare name."""
    namespace, separator, _ = path.partition(NAMESPACE_SEPARATOR)
    if not separator or not namespace:
        return None
    return namespace


class Record:
    """
    One record fetched from the store.

    Records are never modified after creation; the type tag and namespace
    are derived once.
    """

    __slots__ = ("_path", "_content", "_type_tag", "_namespace")

    def __init__(self, path: str, content: Dict[str, Any]):
        self._path = path
        self._content = content
        self._type_tag = get_record_type(content)
        self._namespace = get_namespace(path)

    @property
    def path(self) -> str:
        return self._path

    @property
    def content(self) -> Dict[str, Any]:
        return self._content

    @property
    def data(self) -> Any:
        """The payload of the record (see ``get_data_source``)."""
        return get_data_source(self._content)

    @property
    def type_tag(self) -> str:
        return self._type_tag

    @property
    def namespace(self) -> Optional[str]:
        return self._namespace

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self._path == other._path and self._content == other._content

    def __hash__(self) -> int:
        return hash(self._path)

    def __repr__(self) -> str:
        return f"Record(path={self._path!r}, type={self._type_tag!r})"


class RecordGraph:
    """
    The records visited during a walk and the references between them.

    Records keep their visitation order. Edges are directed
    ``source -> referenced`` pairs between confirmed references.
    """

    def __init__(self):
        self._records: Dict[str, Record] = {}
        self._edges: Dict[str, List[str]] = {}

    @property
    def records(self) -> List[Record]:
        """Return all records in visitation order."""
        return list(self._records.values())

    @property
    def paths(self) -> List[str]:
        """Return all record paths in visitation order."""
        return list(self._records)

    @property
    def edges(self) -> Dict[str, List[str]]:
        """Return adjacency list representation of edges."""
        return {k: list(v) for k, v in self._edges.items()}

    def add_record(self, record: Record) -> None:
        """
        Add a visited record.

        Raises:
            ValueError: If a record with the same path was already added.
        """
        if record.path in self._records:
            raise ValueError(f"Record already visited: {record.path}")
        self._records[record.path] = record

    def add_edge(self, source: str, target: str) -> None:
        """Add a directed reference from source to target."""
        targets = self._edges.setdefault(source, [])
        if target not in targets:
            targets.append(target)

    def get_targets(self, source: str) -> List[str]:
        """Get all paths that the source record references."""
        return list(self._edges.get(source, []))

    def get_sources(self, target: str) -> Set[str]:
        """Get all records that reference the target path."""
        return {source for source, targets in self._edges.items() if target in targets}

    def iter_edges(self) -> Iterator[Tuple[str, str]]:
        """Iterate over all edges as (source, target) tuples."""
        for source, targets in self._edges.items():
            for target in targets:
                yield source, target

    def group_by_type(self) -> Dict[str, List[Record]]:
        """
        Group records by type tag.

        Groups appear in order of first occurrence, and records keep their
        visitation order inside a group.
        """
        groups: Dict[str, List[Record]] = {}
        for record in self._records.values():
            groups.setdefault(record.type_tag, []).append(record)
        return groups

    def record_types(self) -> List[str]:
        """Return the distinct known type tags, sorted."""
        return sorted({r.type_tag for r in self._records.values() if r.type_tag != UNKNOWN_TYPE})

    def namespaces(self) -> List[str]:
        """Return the distinct namespaces, sorted."""
        return sorted({r.namespace for r in self._records.values() if r.namespace})

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, path: str) -> bool:
        return path in self._records

    def __repr__(self) -> str:
        edge_count = sum(len(t) for t in self._edges.values())
        return f"RecordGraph(records={len(self._records)}, edges={edge_count}, types={len(self.record_types())})"
