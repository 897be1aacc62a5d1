"""Tests for the frontier controller walk."""

import pytest

from crawler.errors import ErrorKind, FatalPreconditionError
from crawler.frontier import (
    STOP_FRONTIER_EMPTY,
    STOP_MAX_DEPTH,
    STOP_MAX_RECORDS,
    FrontierController,
    walk,
)
from crawler.settings import TraversalSettings
from exporters.text_exporter import ExportWriter
from store.errors import StoreUnavailableError
from store.memory import InMemoryRecordStore, MemorySink


def record(type_tag, **fields):
    """Build record content in the store's layout."""
    data = {"$type": type_tag}
    data.update(fields)
    return {"Data": data}


class CountingStore(InMemoryRecordStore):
    """An in-memory store that counts calls."""

    def __init__(self, records=None):
        super().__init__(records)
        self.list_calls = 0
        self.fetches = []

    def list_all_identifiers(self):
        self.list_calls += 1
        return super().list_all_identifiers()

    def fetch(self, path):
        self.fetches.append(path)
        return super().fetch(path)


class UnavailableStore(InMemoryRecordStore):
    """A store that cannot answer anything."""

    def exists(self, candidate):
        raise StoreUnavailableError("store offline")


def cycle_store():
    return CountingStore({
        "A.one": record("Node", refs=["A.two", "B.three"]),
        "A.two": record("Node", back="A.one"),
        "B.three": record("Leaf"),
    })


NO_EXPAND = TraversalSettings(expand_categories=False)


class TestTraversal:
    """Tests for the core walk."""

    def test_cycle_scenario(self):
        """Test the walk over a reference cycle visits each record once."""
        store = cycle_store()

        result = walk(store, "A.one", NO_EXPAND.merged(max_depth=5))

        assert set(result.graph.paths) == {"A.one", "A.two", "B.three"}
        assert result.graph.paths == ["A.one", "A.two", "B.three"]
        assert result.stop_reason == STOP_FRONTIER_EMPTY
        assert result.pending == []
        # One validation fetch of the seed, then one fetch per record
        assert store.fetches.count("A.one") == 2
        assert store.fetches.count("A.two") == 1

    def test_cycle_scenario_with_expansion(self):
        """Test the same scenario with category expansion enabled."""
        result = walk(cycle_store(), "A.one", TraversalSettings(max_depth=5))

        assert sorted(result.graph.paths) == ["A.one", "A.two", "B.three"]
        assert result.expanded_types == ["Leaf", "Node"]
        assert result.expanded_namespaces == ["A", "B"]

    def test_self_reference(self):
        """Test a record that references itself."""
        store = InMemoryRecordStore({"A.self": record("Node", me="A.self")})

        result = walk(store, "A.self", NO_EXPAND)

        assert result.graph.paths == ["A.self"]
        assert result.graph.edges == {}

    def test_edges_recorded(self):
        """Test that confirmed references become edges."""
        result = walk(cycle_store(), "A.one", NO_EXPAND)

        assert result.graph.get_targets("A.one") == ["A.two", "B.three"]
        assert result.graph.get_targets("A.two") == ["A.one"]

    def test_visited_unique(self):
        """Test that no path is visited twice on a dense graph."""
        records = {}
        names = [f"N.n{i}" for i in range(12)]
        for name in names:
            records[name] = record("Node", refs=[n for n in names if n != name])
        result = walk(InMemoryRecordStore(records), "N.n0", TraversalSettings(batch_size=3, max_depth=50))

        assert len(result.graph.paths) == len(set(result.graph.paths)) == 12

    def test_unconfirmed_candidates_not_followed(self):
        """Test that shaped strings the store does not know are ignored."""
        store = InMemoryRecordStore({"A.one": record("Node", ghost="Items.Ghost")})

        result = walk(store, "A.one", NO_EXPAND)

        assert result.graph.paths == ["A.one"]
        assert len(result.errors) == 0


class TestRounds:
    """Tests for round-based depth counting."""

    def test_chain_limited_by_rounds(self):
        """Test that each round of a chain processes one hop."""
        store = InMemoryRecordStore({
            f"C.r{i}": record("Link", next=f"C.r{i + 1}") for i in range(6)
        })

        result = walk(store, "C.r0", NO_EXPAND.merged(max_depth=3))

        assert result.graph.paths == ["C.r0", "C.r1", "C.r2"]
        assert result.rounds == 3
        assert result.stop_reason == STOP_MAX_DEPTH
        assert result.pending == ["C.r3"]
        assert result.truncated

    def test_rounds_are_batches_not_hops(self):
        """Test that a small batch leaves first-hop records for later rounds."""
        store = InMemoryRecordStore({
            "S.seed": record("Node", refs=["S.a", "S.b", "S.c"]),
            "S.a": record("Node", ref="S.d"),
            "S.b": record("Node"),
            "S.c": record("Node"),
            "S.d": record("Node"),
        })

        result = walk(store, "S.seed", NO_EXPAND.merged(max_depth=2, batch_size=2))

        # S.c is one hop from the seed but did not fit in round two
        assert result.graph.paths == ["S.seed", "S.a", "S.b"]
        assert result.pending == ["S.c", "S.d"]

    def test_run_arguments_override_settings(self):
        """Test the explicit run bounds."""
        store = InMemoryRecordStore({
            f"C.r{i}": record("Link", next=f"C.r{i + 1}") for i in range(6)
        })
        controller = FrontierController(store, NO_EXPAND)

        result = controller.run("C.r0", max_depth=2, batch_size=1, per_category_cap=5)

        assert result.graph.paths == ["C.r0", "C.r1"]
        assert result.settings.per_category_cap == 5

    def test_max_records_bound(self):
        """Test the total-records bound stops the walk mid-round."""
        store = InMemoryRecordStore({
            "S.seed": record("Node", refs=["S.a", "S.b", "S.c"]),
            "S.a": record("Node"),
            "S.b": record("Node"),
            "S.c": record("Node"),
        })

        result = walk(store, "S.seed", NO_EXPAND.merged(max_records=2))

        assert result.graph.paths == ["S.seed", "S.a"]
        assert result.stop_reason == STOP_MAX_RECORDS
        assert result.pending == ["S.b", "S.c"]


class TestCategoryExpansion:
    """Tests for expansion driven by the walk."""

    def test_expand_type_once(self):
        """Test that a type is scanned at most once per run."""
        store = CountingStore({"Items.a": record("T"), "Items.b": record("T")})
        controller = FrontierController(store)

        first = controller.expand_type("T")
        second = controller.expand_type("T")

        assert first == 2
        assert second == 0
        assert store.list_calls == 1

    def test_unknown_type_not_expanded(self):
        """Test that records without a type do not trigger a scan."""
        store = CountingStore({"Items.a": {"name": "x"}})
        controller = FrontierController(store)

        assert controller.expand_type("Unknown") == 0
        assert store.list_calls == 0

    def test_each_category_scanned_once_per_walk(self):
        """Test that many records of one type and namespace cause one scan each."""
        store = CountingStore({f"Items.i{i}": record("T") for i in range(5)})

        result = walk(store, "Items.i0", TraversalSettings())

        assert len(result.graph) == 5
        # One scan for type T and one for namespace Items
        assert store.list_calls == 2

    def test_per_category_cap(self):
        """Test that each expansion enqueues at most the cap, in store order."""
        store = InMemoryRecordStore({f"Items.i{i}": record("T") for i in range(5)})

        result = walk(store, "Items.i0", TraversalSettings(per_category_cap=2))

        assert result.graph.paths == ["Items.i0", "Items.i1"]

    def test_caps_are_per_category(self):
        """Test that unrelated categories each get their own allowance."""
        records = {f"Items.i{i}": record("Weapon") for i in range(3)}
        records.update({f"Stats.s{i}": record("Stat") for i in range(3)})
        records["Items.i0"] = record("Weapon", stat="Stats.s0")
        store = InMemoryRecordStore(records)

        result = walk(store, "Items.i0", TraversalSettings(per_category_cap=2))

        assert result.graph.paths == ["Items.i0", "Stats.s0", "Items.i1", "Stats.s1"]

    def test_expansion_disabled(self):
        """Test a plain reference walk."""
        store = CountingStore({f"Items.i{i}": record("T") for i in range(5)})

        result = walk(store, "Items.i0", NO_EXPAND)

        assert result.graph.paths == ["Items.i0"]
        assert store.list_calls == 0


class TestErrors:
    """Tests for non-fatal and fatal error handling."""

    def test_fetch_failure_not_fatal(self):
        """Test that a malformed record is logged and the walk continues."""
        store = InMemoryRecordStore({
            "A.one": record("Node", refs=["A.bad", "A.good"]),
            "A.two": record("Node", again="A.bad"),
            "A.bad": "{not json",
            "A.good": record("Node", next="A.two"),
        })

        result = walk(store, "A.one", NO_EXPAND)

        assert result.graph.paths == ["A.one", "A.good", "A.two"]
        fetch_errors = result.errors.of_kind(ErrorKind.FETCH)
        assert [e.subject for e in fetch_errors] == ["A.bad"]

    def test_absent_record_is_fetch_failure(self):
        """Test a reference that exists but has no content."""
        store = InMemoryRecordStore({"A.one": record("Node", ref="A.empty"), "A.empty": ""})

        result = walk(store, "A.one", NO_EXPAND)

        assert result.graph.paths == ["A.one"]
        assert result.errors.of_kind(ErrorKind.FETCH)[0].subject == "A.empty"

    def test_extraction_failure_still_visited(self):
        """Test that a record whose content cannot be walked is still kept and exported."""
        looping = {"$type": "Node"}
        looping["self"] = looping
        store = InMemoryRecordStore({"A.one": record("Node", ref="A.loop"), "A.loop": looping})

        result = walk(store, "A.one", NO_EXPAND)

        assert "A.loop" in result.graph
        assert result.errors.of_kind(ErrorKind.EXTRACTION)[0].subject == "A.loop"

        sink = MemorySink()
        report = ExportWriter(sink).write(result)

        assert report.ok
        assert set(sink.outputs) == {"Node.yaml", "A.one_complete_dependencies.yaml", "export_summary.txt"}
        assert "A.loop:\n  # Error formatting record" in sink.outputs["Node.yaml"]
        assert "A.one:" in sink.outputs["A.one_complete_dependencies.yaml"]
        assert [e.subject for e in result.errors.of_kind(ErrorKind.FORMAT)] == ["A.loop"]

    def test_unknown_seed_is_fatal(self):
        """Test that a missing seed aborts before traversal."""
        with pytest.raises(FatalPreconditionError) as excinfo:
            walk(InMemoryRecordStore({"A.one": {}}), "A.missing")

        assert "A.missing" in str(excinfo.value)

    def test_unreadable_seed_is_fatal(self):
        """Test that a seed that cannot be parsed aborts before traversal."""
        with pytest.raises(FatalPreconditionError):
            walk(InMemoryRecordStore({"A.one": "[oops"}), "A.one")

    def test_unavailable_store_is_fatal(self):
        """Test that a store error during validation aborts the run."""
        with pytest.raises(FatalPreconditionError):
            walk(UnavailableStore({"A.one": {}}), "A.one")


class TestProgress:
    """Tests for progress reporting."""

    def test_progress_callback_monotonic(self):
        """Test that the visited count only grows."""
        seen = []
        result = walk(
            cycle_store(),
            "A.one",
            NO_EXPAND,
            on_progress=lambda count, path: seen.append((count, path)),
        )

        assert [count for count, _ in seen] == [1, 2, 3]
        assert [path for _, path in seen] == result.graph.paths

    def test_visited_count(self):
        """Test the controller's visited count after a run."""
        controller = FrontierController(cycle_store(), NO_EXPAND)
        controller.run("A.one")

        assert controller.visited_count == 3
