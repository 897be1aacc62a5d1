"""JSON manifest exporter for a finished walk (machine-friendly format)."""

import json
from typing import Any, Dict, List

from crawler.frontier import TraversalResult, summarize_counts


def to_json(result: TraversalResult, indent: int = 2) -> str:
    """
    Convert a walk result to a JSON manifest.

    The manifest lists records (path and type tag) in visitation order, the
    reference edges between them, the non-fatal errors and the headline
    counters. Record content is not included.

    Args:
        result: The walk to export.
        indent: JSON indentation level.

    Returns:
        JSON string representation of the walk.
    """
    records: List[Dict[str, Any]] = []
    for record in result.graph.records:
        records.append({
            "path": record.path,
            "type": record.type_tag,
            "namespace": record.namespace,
        })

    edges: List[Dict[str, str]] = []
    for source, target in result.graph.iter_edges():
        edges.append({"source": source, "target": target})

    data: Dict[str, Any] = {
        "seed": result.seed,
        "started_at": result.started_at.isoformat() if result.started_at else None,
        "stop_reason": result.stop_reason,
        "counts": summarize_counts(result),
        "record_types": result.record_types,
        "namespaces": result.namespaces,
        "records": records,
        "edges": edges,
        "pending": result.pending,
        "errors": [error.to_dict() for error in result.errors],
    }

    return json.dumps(data, indent=indent)
