"""
Frontier controller: the round-based walk over record references.

The controller owns all traversal state (frontier, visited records, failed
paths and the category memo). Each round takes up to ``batch_size`` paths
from the front of the frontier. The round counter bounds the walk, so
``max_depth`` limits rounds of batches rather than reference hops.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, List, Optional, Set

import structlog

from graph.model import UNKNOWN_TYPE, Record, RecordGraph
from store.base import RecordStore
from store.errors import RecordStoreError

from .categories import CategoryExpander
from .errors import ErrorKind, ErrorLog, FatalPreconditionError
from .references import extract_references
from .settings import TraversalSettings

logger = structlog.get_logger(__name__)


STOP_FRONTIER_EMPTY = "frontier_empty"
STOP_MAX_DEPTH = "max_depth"
STOP_MAX_RECORDS = "max_records"


ProgressCallback = Callable[[int, str], None]


@dataclass
class TraversalResult:
    """Everything a finished walk produced, read by the exporters."""

    seed: str
    graph: RecordGraph
    errors: ErrorLog
    settings: TraversalSettings
    rounds: int = 0
    stop_reason: str = STOP_FRONTIER_EMPTY
    pending: List[str] = field(default_factory=list)
    expanded_types: List[str] = field(default_factory=list)
    expanded_namespaces: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    elapsed_seconds: float = 0.0

    @property
    def truncated(self) -> bool:
        """True if a bound stopped the walk while paths were still pending."""
        return bool(self.pending)

    @property
    def record_types(self) -> List[str]:
        return self.graph.record_types()

    @property
    def namespaces(self) -> List[str]:
        return self.graph.namespaces()


class FrontierController:
    """
    Walks the reference graph of a record store from a seed record.

    Args:
        store: Record store to read from.
        settings: Traversal bounds (defaults if omitted).
        errors: Error log to record non-fatal errors in; a new one if omitted.
        expander: Category expander; one over ``store`` if omitted.
        on_progress: Called with (visited count, path) after each visit.
    """

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[TraversalSettings] = None,
        errors: Optional[ErrorLog] = None,
        expander: Optional[CategoryExpander] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.store = store
        self.settings = settings or TraversalSettings()
        self.errors = errors if errors is not None else ErrorLog()
        self.expander = expander or CategoryExpander(store, self.errors)
        self.on_progress = on_progress
        self._reset()

    def _reset(self) -> None:
        self.graph = RecordGraph()
        self.rounds = 0
        self._frontier: Deque[str] = deque()
        self._pending: Set[str] = set()
        self._failed: Set[str] = set()
        self._expanded_types: Set[str] = set()
        self._expanded_namespaces: Set[str] = set()

    @property
    def visited_count(self) -> int:
        """Number of records visited so far. Never decreases during a run."""
        return len(self.graph)

    @property
    def pending(self) -> List[str]:
        """Paths waiting in the frontier, in processing order."""
        return list(self._frontier)

    def is_known(self, path: str) -> bool:
        """True if ``path`` was visited, failed, or is already pending."""
        return path in self.graph or path in self._pending or path in self._failed

    def enqueue(self, path: str) -> bool:
        """
        Append a path to the frontier unless it is already known.

        Returns:
            True if the path was added.
        """
        if self.is_known(path):
            return False
        self._frontier.append(path)
        self._pending.add(path)
        return True

    def _enqueue_members(self, members: List[str]) -> int:
        added = 0
        for path in members[: self.settings.per_category_cap]:
            if self.enqueue(path):
                added += 1
        return added

    def expand_type(self, tag: str) -> int:
        """
        Enqueue the members of a type tag, at most once per run.

        Returns:
            Number of paths added to the frontier.
        """
        if tag == UNKNOWN_TYPE or tag in self._expanded_types:
            return 0
        self._expanded_types.add(tag)
        logger.info("frontier.expand_type", type=tag)
        return self._enqueue_members(self.expander.expand_type(tag))

    def expand_namespace(self, prefix: str) -> int:
        """
        Enqueue the members of a namespace, at most once per run.

        Returns:
            Number of paths added to the frontier.
        """
        if prefix in self._expanded_namespaces:
            return 0
        self._expanded_namespaces.add(prefix)
        logger.info("frontier.expand_namespace", namespace=prefix)
        return self._enqueue_members(self.expander.expand_namespace(prefix))

    def validate_seed(self, seed_path: str) -> None:
        """
        Check that the walk can start from ``seed_path``.

        Raises:
            FatalPreconditionError: If the store is unavailable, or the seed
                is unknown or cannot be read.
        """
        try:
            found = self.store.exists(seed_path)
        except RecordStoreError as e:
            raise FatalPreconditionError(
                f"Record store unavailable: {e}", context={"seed": seed_path}
            ) from e
        if not found:
            raise FatalPreconditionError(
                f"Starting record not found: {seed_path}", context={"seed": seed_path}
            )

        try:
            content = self.store.fetch(seed_path)
        except RecordStoreError as e:
            raise FatalPreconditionError(
                f"Could not read starting record {seed_path}: {e}", context={"seed": seed_path}
            ) from e
        if content is None:
            raise FatalPreconditionError(
                f"Could not retrieve starting record data: {seed_path}",
                context={"seed": seed_path},
            )
        logger.info("frontier.seed_found", seed=seed_path, keys=list(content))

    def run(
        self,
        seed_path: str,
        max_depth: Optional[int] = None,
        batch_size: Optional[int] = None,
        per_category_cap: Optional[int] = None,
    ) -> TraversalResult:
        """
        Walk every record reachable from ``seed_path`` within the bounds.

        Explicit arguments override the controller's settings for this run.

        Raises:
            FatalPreconditionError: If the seed cannot be used.
        """
        self.settings = self.settings.merged(
            max_depth=max_depth,
            batch_size=batch_size,
            per_category_cap=per_category_cap,
        )
        self.validate_seed(seed_path)

        self._reset()
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()
        stop_reason = STOP_FRONTIER_EMPTY
        self.enqueue(seed_path)

        logger.info(
            "frontier.start",
            seed=seed_path,
            max_depth=self.settings.max_depth,
            batch_size=self.settings.batch_size,
            per_category_cap=self.settings.per_category_cap,
        )

        while self._frontier:
            if self.rounds >= self.settings.max_depth:
                stop_reason = STOP_MAX_DEPTH
                break
            if not self._run_round():
                stop_reason = STOP_MAX_RECORDS
                break

        result = TraversalResult(
            seed=seed_path,
            graph=self.graph,
            errors=self.errors,
            settings=self.settings,
            rounds=self.rounds,
            stop_reason=stop_reason,
            pending=self.pending,
            expanded_types=sorted(self._expanded_types),
            expanded_namespaces=sorted(self._expanded_namespaces),
            started_at=started_at,
            elapsed_seconds=time.monotonic() - start,
        )
        logger.info(
            "frontier.complete",
            records=len(self.graph),
            rounds=self.rounds,
            stop_reason=stop_reason,
            pending=len(result.pending),
            errors=len(self.errors),
        )
        return result

    def _run_round(self) -> bool:
        """
        Process one batch from the front of the frontier.

        Returns:
            False if the total-records bound stopped the round early.
        """
        size = min(self.settings.batch_size, len(self._frontier))
        batch = [self._frontier.popleft() for _ in range(size)]
        logger.info("frontier.batch", size=len(batch), round=self.rounds)

        for index, path in enumerate(batch):
            if self._records_exhausted():
                # Put the unprocessed tail back so it is reported as pending
                self._frontier.extendleft(reversed(batch[index:]))
                self.rounds += 1
                return False
            self._pending.discard(path)
            if path in self.graph:
                continue
            self._visit(path)

        self.rounds += 1
        return True

    def _records_exhausted(self) -> bool:
        limit = self.settings.max_records
        return limit is not None and len(self.graph) >= limit

    def _visit(self, path: str) -> None:
        try:
            content = self.store.fetch(path)
        except RecordStoreError as e:
            self._failed.add(path)
            self.errors.record(ErrorKind.FETCH, path, str(e))
            return
        if content is None:
            self._failed.add(path)
            self.errors.record(ErrorKind.FETCH, path, "Record not found")
            return

        record = Record(path, content)
        self.graph.add_record(record)

        try:
            references = extract_references(content, self.store)
        except (RecursionError, TypeError, ValueError) as e:
            self.errors.record(ErrorKind.EXTRACTION, path, f"Cannot extract references: {e}")
            references = []

        if references:
            logger.debug("frontier.references", path=path, count=len(references))
        for reference in references:
            if reference != path:
                self.graph.add_edge(path, reference)
            self.enqueue(reference)

        if self.settings.expand_categories:
            self.expand_type(record.type_tag)
            if record.namespace:
                self.expand_namespace(record.namespace)

        self._report_progress(path)

    def _report_progress(self, path: str) -> None:
        count = self.visited_count
        if self.on_progress is not None:
            self.on_progress(count, path)
        if count % self.settings.progress_interval == 0:
            logger.info("frontier.progress", visited=count)


def walk(
    store: RecordStore,
    seed_path: str,
    settings: Optional[TraversalSettings] = None,
    errors: Optional[ErrorLog] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> TraversalResult:
    """Run one walk from ``seed_path`` and return its result."""
    controller = FrontierController(store, settings, errors=errors, on_progress=on_progress)
    return controller.run(seed_path)


def summarize_counts(result: TraversalResult) -> Dict[str, int]:
    """Headline counters of a walk, as shown in summaries and manifests."""
    return {
        "records": len(result.graph),
        "record_types": len(result.record_types),
        "namespaces": len(result.namespaces),
        "rounds": result.rounds,
        "pending": len(result.pending),
        "errors": len(result.errors),
    }
