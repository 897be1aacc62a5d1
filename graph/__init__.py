"""Record model and discovered-record graph."""

from .model import (
    Record,
    RecordGraph,
    UNKNOWN_TYPE,
    get_data_source,
    get_namespace,
    get_record_type,
)

__all__ = [
    "Record",
    "RecordGraph",
    "UNKNOWN_TYPE",
    "get_data_source",
    "get_namespace",
    "get_record_type",
]
