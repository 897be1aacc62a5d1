"""Reference discovery: extraction, category expansion and the frontier walk."""

from .errors import (
    ConfigurationError,
    ErrorKind,
    ErrorLog,
    FatalPreconditionError,
    RecordWalkError,
    RunError,
)
from .settings import TraversalSettings, load_settings
from .references import extract_references, find_candidates, is_candidate_reference
from .categories import CategoryExpander
from .frontier import FrontierController, TraversalResult, walk

__all__ = [
    "ConfigurationError",
    "ErrorKind",
    "ErrorLog",
    "FatalPreconditionError",
    "RecordWalkError",
    "RunError",
    "TraversalSettings",
    "load_settings",
    "extract_references",
    "find_candidates",
    "is_candidate_reference",
    "CategoryExpander",
    "FrontierController",
    "TraversalResult",
    "walk",
]
