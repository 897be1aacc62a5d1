"""Traversal bounds and their YAML configuration file."""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigurationError


DEFAULT_MAX_DEPTH = 10
DEFAULT_BATCH_SIZE = 100
DEFAULT_PER_CATEGORY_CAP = 1000
DEFAULT_PROGRESS_INTERVAL = 100


@dataclass(frozen=True)
class TraversalSettings:
    """
    Bounds for one walk.

    Attributes:
        max_depth: Maximum number of rounds. A round processes one batch,
            which is not the same as one reference hop.
        batch_size: Paths taken from the front of the frontier per round.
        per_category_cap: Members of a type or namespace enqueued per expansion.
        max_records: Stop once this many records were visited (None: no limit).
        expand_categories: Expand newly seen types and namespaces.
        progress_interval: Log progress every N visited records.
    """

    max_depth: int = DEFAULT_MAX_DEPTH
    batch_size: int = DEFAULT_BATCH_SIZE
    per_category_cap: int = DEFAULT_PER_CATEGORY_CAP
    max_records: Optional[int] = None
    expand_categories: bool = True
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL

    def __post_init__(self):
        for name in ("max_depth", "batch_size", "per_category_cap", "progress_interval"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if self.max_records is not None:
            if isinstance(self.max_records, bool) or not isinstance(self.max_records, int) or self.max_records < 1:
                raise ConfigurationError(
                    f"max_records must be a positive integer, got {self.max_records!r}"
                )
        if not isinstance(self.expand_categories, bool):
            raise ConfigurationError(
                f"expand_categories must be true or false, got {self.expand_categories!r}"
            )

    def merged(self, **overrides: Any) -> "TraversalSettings":
        """Return a copy with every override that is not None applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


def settings_from_dict(data: Dict[str, Any]) -> TraversalSettings:
    """
    Build settings from a plain mapping.

    Raises:
        ConfigurationError: On unknown keys or invalid values.
    """
    known = {f.name for f in fields(TraversalSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown setting(s): {', '.join(unknown)}",
            context={"allowed": sorted(known)},
        )
    return TraversalSettings(**data)


def load_settings(path: Path) -> TraversalSettings:
    """
    Load settings from a YAML file.

    Args:
        path: YAML file with a top-level mapping of setting names to values.

    Returns:
        Parsed settings.

    Raises:
        ConfigurationError: If the file is missing, unparsable, or invalid.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}")

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}")

    if data is None:
        return TraversalSettings()
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping in {path}, got {type(data).__name__}")

    return settings_from_dict(data)
