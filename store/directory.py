"""Directory-backed record store and sink (one file per record)."""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set

import structlog
import yaml

from .base import RecordSink, RecordStore
from .errors import MalformedRecordError, StoreUnavailableError

logger = structlog.get_logger(__name__)


RECORD_EXTENSIONS = {".json", ".yaml", ".yml"}
DEFAULT_EXCLUDE_DIRS = {
    ".git", ".hg", ".svn",
    "node_modules", "__pycache__", ".tox", ".nox",
    "venv", ".venv",
    ".idea", ".vscode",
}


def iter_record_files(
    root: Path,
    exclude_dirs: Optional[Set[str]] = None,
) -> Iterator[Path]:
    """
    Iterate over record files in a directory tree.

    Args:
        root: Root directory to scan.
        exclude_dirs: Directory names to skip. If None, uses DEFAULT_EXCLUDE_DIRS.

    Yields:
        Paths of ``.json``/``.yaml``/``.yml`` files, in sorted order.
    """
    if exclude_dirs is None:
        exclude_dirs = DEFAULT_EXCLUDE_DIRS

    def _walk(current: Path) -> Iterator[Path]:
        try:
            entries = sorted(current.iterdir())
        except PermissionError:
            return

        for entry in entries:
            if entry.is_dir():
                if entry.name in exclude_dirs:
                    continue
                yield from _walk(entry)
            elif entry.is_file() and entry.suffix.lower() in RECORD_EXTENSIONS:
                yield entry

    yield from _walk(root.resolve())


def parse_record_text(text: str, suffix: str) -> Any:
    """
    Parse serialized record text.

    Args:
        text: Raw file content.
        suffix: File extension, used to pick the parser.

    Returns:
        Parsed data structure.

    Raises:
        ValueError: If the text is not valid JSON/YAML.
    """
    if suffix in {".yaml", ".yml"}:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(str(e)) from e
    return json.loads(text)


class DirectoryRecordStore(RecordStore):
    """
    A record store laid out as one file per record.

    The identifier of a record is its file name without the final extension,
    so ``Items/Items.Sword.json`` holds the record ``Items.Sword``.
    """

    def __init__(self, root: Path, exclude_dirs: Optional[Set[str]] = None):
        root = Path(root)
        if not root.is_dir():
            raise StoreUnavailableError(f"Record store directory not found: {root}")

        self.root = root.resolve()
        self._index: Dict[str, Path] = {}

        for file_path in iter_record_files(self.root, exclude_dirs):
            identifier = file_path.stem
            if identifier in self._index:
                logger.warning(
                    "store.duplicate_identifier",
                    identifier=identifier,
                    kept=str(self._index[identifier]),
                    ignored=str(file_path),
                )
                continue
            self._index[identifier] = file_path

        logger.debug("store.indexed", root=str(self.root), records=len(self._index))

    def exists(self, candidate: str) -> bool:
        return candidate in self._index

    def fetch(self, path: str) -> Optional[Dict[str, Any]]:
        file_path = self._index.get(path)
        if file_path is None:
            return None

        try:
            text = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedRecordError(f"Cannot read {file_path}: {e}", path=path)

        if not text.strip():
            return None

        try:
            data = parse_record_text(text, file_path.suffix.lower())
        except ValueError as e:
            raise MalformedRecordError(f"Cannot parse {file_path}: {e}", path=path)

        if not isinstance(data, dict):
            raise MalformedRecordError(
                f"Expected a mapping in {file_path}, got {type(data).__name__}",
                path=path,
            )
        return data

    def list_all_identifiers(self) -> List[str]:
        return list(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"DirectoryRecordStore(root={self.root}, records={len(self._index)})"


class DirectorySink(RecordSink):
    """Writes each output as a UTF-8 text file inside ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def write(self, name: str, text: str) -> bool:
        output_path = self.root / name
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(text, encoding="utf-8")
        except OSError as e:
            logger.error("sink.write_failed", path=str(output_path), error=str(e))
            return False
        return True
