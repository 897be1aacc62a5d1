"""Tests for record store adapters and sinks."""

import json

import pytest

from store.directory import DirectoryRecordStore, DirectorySink, iter_record_files
from store.errors import MalformedRecordError, StoreUnavailableError
from store.memory import InMemoryRecordStore, MemorySink


class TestInMemoryRecordStore:
    """Tests for InMemoryRecordStore."""

    def test_parsed_and_text_records(self):
        """Test that mappings and JSON text both fetch as mappings."""
        store = InMemoryRecordStore({
            "Items.A": {"Data": {"$type": "T"}},
            "Items.B": json.dumps({"Data": {"$type": "U"}}),
        })

        assert store.fetch("Items.A") == {"Data": {"$type": "T"}}
        assert store.fetch("Items.B") == {"Data": {"$type": "U"}}
        assert store.list_all_identifiers() == ["Items.A", "Items.B"]

    def test_absent(self):
        """Test fetching an unknown record."""
        store = InMemoryRecordStore()
        assert store.fetch("Items.Missing") is None
        assert not store.exists("Items.Missing")

    def test_malformed(self):
        """Test malformed text and non-mapping content."""
        store = InMemoryRecordStore({"Items.Bad": "{oops", "Items.List": "[1, 2]"})

        with pytest.raises(MalformedRecordError):
            store.fetch("Items.Bad")
        with pytest.raises(MalformedRecordError):
            store.fetch("Items.List")

    def test_memory_sink_reject(self):
        """Test that rejected names are not written."""
        sink = MemorySink(reject=["no.txt"])

        assert sink.write("yes.txt", "a")
        assert not sink.write("no.txt", "b")
        assert sink.outputs == {"yes.txt": "a"}


class TestDirectoryRecordStore:
    """Tests for DirectoryRecordStore."""

    def _populate(self, root):
        (root / "Items").mkdir()
        (root / "Items" / "Items.Sword.json").write_text(
            json.dumps({"Data": {"$type": "Weapon", "quality": "Quality.Rare"}}), encoding="utf-8"
        )
        (root / "Quality.Rare.yaml").write_text("Data:\n  $type: Quality\n  value: 3\n", encoding="utf-8")
        (root / "Broken.Record.json").write_text("{not json", encoding="utf-8")
        (root / "notes.txt").write_text("ignored", encoding="utf-8")
        (root / ".git").mkdir()
        (root / ".git" / "Hidden.Record.json").write_text("{}", encoding="utf-8")

    def test_index(self, tmp_path):
        """Test that identifiers come from file names, in sorted walk order."""
        self._populate(tmp_path)
        store = DirectoryRecordStore(tmp_path)

        assert store.list_all_identifiers() == ["Broken.Record", "Items.Sword", "Quality.Rare"]
        assert store.exists("Items.Sword")
        assert not store.exists("Hidden.Record")
        assert not store.exists("notes")

    def test_fetch_json_and_yaml(self, tmp_path):
        """Test parsing both record formats."""
        self._populate(tmp_path)
        store = DirectoryRecordStore(tmp_path)

        assert store.fetch("Items.Sword")["Data"]["$type"] == "Weapon"
        assert store.fetch("Quality.Rare") == {"Data": {"$type": "Quality", "value": 3}}
        assert store.fetch("Nope.Missing") is None

    def test_fetch_malformed(self, tmp_path):
        """Test that unparsable files raise MalformedRecordError."""
        self._populate(tmp_path)
        store = DirectoryRecordStore(tmp_path)

        with pytest.raises(MalformedRecordError) as excinfo:
            store.fetch("Broken.Record")
        assert excinfo.value.path == "Broken.Record"

    def test_duplicate_identifier_keeps_first(self, tmp_path):
        """Test that the first file wins for a duplicated identifier."""
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        (tmp_path / "a" / "Items.Dup.json").write_text('{"$type": "First"}', encoding="utf-8")
        (tmp_path / "b" / "Items.Dup.json").write_text('{"$type": "Second"}', encoding="utf-8")

        store = DirectoryRecordStore(tmp_path)

        assert store.fetch("Items.Dup") == {"$type": "First"}
        assert len(store) == 1

    def test_missing_root(self, tmp_path):
        """Test that a missing directory makes the store unavailable."""
        with pytest.raises(StoreUnavailableError):
            DirectoryRecordStore(tmp_path / "absent")

    def test_iter_record_files_extensions(self, tmp_path):
        """Test that only record extensions are yielded."""
        self._populate(tmp_path)
        names = [p.name for p in iter_record_files(tmp_path)]

        assert "notes.txt" not in names
        assert "Hidden.Record.json" not in names
        assert len(names) == 3


class TestDirectorySink:
    """Tests for DirectorySink."""

    def test_writes_files(self, tmp_path):
        """Test that the output directory is created on write."""
        sink = DirectorySink(tmp_path / "out" / "Items.Sword")

        assert sink.write("Weapon.yaml", "# Weapon Records\n")
        assert (tmp_path / "out" / "Items.Sword" / "Weapon.yaml").read_text(encoding="utf-8") == "# Weapon Records\n"

    def test_write_failure(self, tmp_path):
        """Test that an OS error is reported as False."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        sink = DirectorySink(blocker)

        assert not sink.write("Weapon.yaml", "text")
