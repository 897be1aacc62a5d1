"""Export writer: grouped YAML-style text files plus a plaintext summary."""

import re
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

import structlog

from crawler.errors import ErrorKind, ErrorLog
from crawler.frontier import TraversalResult
from graph.model import Record
from store.base import RecordSink

from .formatter import format_record
from .json_exporter import to_json

logger = structlog.get_logger(__name__)


TYPE_FILE_SUFFIX = ".yaml"
COMPLETE_FILE_SUFFIX = "_complete_dependencies.yaml"
MANIFEST_FILE_SUFFIX = "_manifest.json"
SUMMARY_FILE = "export_summary.txt"

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE_RUN = re.compile(r"\s+")


Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def sanitize_filename(name: str) -> str:
    """Replace ``< > : " / \\ | ? *`` and runs of whitespace with ``_``."""
    return _WHITESPACE_RUN.sub("_", _UNSAFE_CHARS.sub("_", name))


def type_file_name(record_type: str, used: Set[str]) -> str:
    """
    Return the per-type output name for ``record_type`` and add it to ``used``.

    Tags that sanitize to a name already taken get a numeric suffix
    (``A_B.yaml``, ``A_B_2.yaml``) instead of overwriting each other.
    """
    base = sanitize_filename(record_type)
    name = base + TYPE_FILE_SUFFIX
    counter = 1
    while name in used:
        counter += 1
        name = f"{base}_{counter}{TYPE_FILE_SUFFIX}"
    if counter > 1:
        logger.warning("export.name_collision", record_type=record_type, name=name)
    used.add(name)
    return name


def render_record(record: Record, errors: Optional[ErrorLog] = None) -> str:
    """
    Render one record, falling back to an error comment if its content
    cannot be formatted.

    A failure is recorded in ``errors`` when one is given.
    """
    try:
        return format_record(record.path, record.content)
    except (RecursionError, TypeError, ValueError) as e:
        if errors is not None:
            errors.record(ErrorKind.FORMAT, record.path, f"Cannot format record: {e}")
        return f"{record.path}:\n  # Error formatting record: {e}\n"


def _lookup(record: Record, rendered: Optional[Dict[str, str]]) -> str:
    if rendered is not None and record.path in rendered:
        return rendered[record.path]
    return render_record(record)


def render_type_group(
    record_type: str,
    records: List[Record],
    generated: datetime,
    rendered: Optional[Dict[str, str]] = None,
) -> str:
    """
    Render the records of one type tag, in visitation order.

    Args:
        record_type: Type tag shared by the records.
        records: Records to render.
        generated: Timestamp written in the header.
        rendered: Pre-rendered record text by path.

    Returns:
        File content with a comment header followed by each record.
    """
    lines = [
        f"# {record_type} Records",
        f"# Total: {len(records)}",
        f"# Generated: {generated.isoformat()}",
        "",
    ]
    text = "\n".join(lines) + "\n"
    for record in records:
        text += _lookup(record, rendered) + "\n"
    return text


def render_consolidated(
    result: TraversalResult,
    groups: Dict[str, List[Record]],
    generated: datetime,
    rendered: Optional[Dict[str, str]] = None,
) -> str:
    """Render every group in one document, groups sorted by type tag."""
    lines = [
        f"# Recursive Export starting from: {result.seed}",
        f"# Generated: {generated.isoformat()}",
        f"# Total records: {len(result.graph)}",
        f"# Record types: {len(result.record_types)}",
        f"# Namespaces: {len(result.namespaces)}",
        "",
    ]
    text = "\n".join(lines) + "\n"

    for record_type in sorted(groups):
        records = groups[record_type]
        text += f"# ===== {record_type} Records ({len(records)}) =====\n\n"
        for record in records:
            text += _lookup(record, rendered) + "\n"
    return text


def render_summary(
    result: TraversalResult,
    generated: datetime,
    elapsed_seconds: Optional[float] = None,
) -> str:
    """
    Render the plaintext run summary.

    ``elapsed_seconds`` defaults to the traversal time of ``result``.
    """
    if elapsed_seconds is None:
        elapsed_seconds = result.elapsed_seconds
    duration = round(elapsed_seconds)
    record_types = result.record_types
    namespaces = result.namespaces

    lines = [
        "Recursive Record Export Summary",
        f"Generated: {generated.isoformat()}",
        f"Starting Record: {result.seed}",
        f"Duration: {duration} seconds",
        "",
        "Statistics:",
        f"- Total records exported: {len(result.graph)}",
        f"- Record types found: {len(record_types)}",
        f"- Namespaces found: {len(namespaces)}",
        f"- Rounds: {result.rounds} (stopped: {result.stop_reason})",
        f"- Records still pending: {len(result.pending)}",
        f"- Errors: {len(result.errors)}",
        "",
        "Record Types:",
    ]
    lines.extend(f"- {record_type}" for record_type in record_types)
    lines.append("")
    lines.append("Namespaces:")
    lines.extend(f"- {namespace}" for namespace in namespaces)

    if result.errors:
        lines.append("")
        lines.append("Errors:")
        for kind, count in sorted(result.errors.counts().items()):
            lines.append(f"- {kind}: {count}")
        lines.append("")
        lines.extend(f"- {error}" for error in result.errors)

    return "\n".join(lines) + "\n"


class ExportReport:
    """Names of the outputs that were written and of those that failed."""

    def __init__(self):
        self.written: List[str] = []
        self.failed: List[str] = []
        self.elapsed_seconds = 0.0

    @property
    def ok(self) -> bool:
        return not self.failed

    def __repr__(self) -> str:
        return f"ExportReport(written={len(self.written)}, failed={len(self.failed)})"


class ExportWriter:
    """
    Writes a finished walk to a sink.

    One file per type tag, one consolidated file named after the seed, an
    optional JSON manifest, and the summary last. A failed write is recorded
    in the run's error log and the remaining outputs are still written.
    """

    def __init__(
        self,
        sink: RecordSink,
        clock: Optional[Clock] = None,
        manifest: bool = False,
    ):
        self.sink = sink
        self.clock = clock or _utc_now
        self.manifest = manifest

    def _write(self, name: str, text: str, errors: ErrorLog, report: ExportReport) -> None:
        try:
            ok = self.sink.write(name, text)
        except Exception as e:
            # A sink failure only fails this output
            ok = False
            message = str(e) or type(e).__name__
        else:
            message = "Sink rejected the output"

        if ok:
            report.written.append(name)
            logger.info("export.written", name=name, size=len(text))
        else:
            report.failed.append(name)
            errors.record(ErrorKind.WRITE, name, message)

    def write(self, result: TraversalResult) -> ExportReport:
        """
        Write every output for ``result``.

        Returns:
            Report of written and failed output names.
        """
        report = ExportReport()
        start = time.monotonic()
        generated = self.clock()
        groups = result.graph.group_by_type()

        # Each record is formatted once and shared by both layouts
        rendered = {record.path: render_record(record, result.errors) for record in result.graph.records}

        used_names: Set[str] = set()
        for record_type, records in groups.items():
            name = type_file_name(record_type, used_names)
            text = render_type_group(record_type, records, generated, rendered)
            self._write(name, text, result.errors, report)

        seed_name = sanitize_filename(result.seed)
        self._write(
            seed_name + COMPLETE_FILE_SUFFIX,
            render_consolidated(result, groups, generated, rendered),
            result.errors,
            report,
        )

        if self.manifest:
            self._write(seed_name + MANIFEST_FILE_SUFFIX, to_json(result), result.errors, report)

        report.elapsed_seconds = time.monotonic() - start
        summary = render_summary(result, generated, result.elapsed_seconds + report.elapsed_seconds)
        self._write(SUMMARY_FILE, summary, result.errors, report)

        logger.info(
            "export.complete",
            groups=len(groups),
            written=len(report.written),
            failed=len(report.failed),
        )
        return report
