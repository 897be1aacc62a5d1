#!/usr/bin/env python3
"""
Record Walk CLI

Starts from one record in a record store, follows every cross-reference it
can find, and exports the discovered records grouped by type.
"""

import argparse
import logging
import sys
from pathlib import Path

import structlog

from crawler.errors import ConfigurationError, FatalPreconditionError
from crawler.frontier import FrontierController
from crawler.settings import TraversalSettings, load_settings
from exporters.text_exporter import ExportWriter, sanitize_filename
from store.directory import DirectoryRecordStore, DirectorySink
from store.errors import StoreUnavailableError


DEFAULT_OUTPUT_ROOT = "Record_Dependencies"


def configure_logging(verbose: bool = False) -> None:
    """Route structlog through the standard library, rendering to stderr."""
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def parse_args(args=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="recordwalk",
        description="Discover every record reachable from a seed record and export them grouped by type.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  recordwalk Items.Preset_Tomahawk_Default --store ./tweaks
  recordwalk Items.Sword --store ./tweaks -o exports --max-depth 3
  recordwalk Items.Sword --store ./tweaks --no-expand   # references only
  recordwalk Items.Sword --store ./tweaks --config walk.yaml --manifest
        """,
    )

    parser.add_argument(
        "seed",
        help="Identifier of the starting record (e.g. Items.Sword)",
    )

    parser.add_argument(
        "--store",
        required=True,
        help="Directory holding one JSON/YAML file per record",
    )

    parser.add_argument(
        "-o", "--output",
        default=DEFAULT_OUTPUT_ROOT,
        help=f"Output root; files go to <output>/<seed> (default: {DEFAULT_OUTPUT_ROOT})",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="YAML file with traversal settings",
    )

    # Traversal bounds (override the config file)
    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Maximum number of rounds (default: 10)",
    )

    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Records processed per round (default: 100)",
    )

    parser.add_argument(
        "--per-category-cap",
        type=int,
        default=None,
        help="Records enqueued per expanded type or namespace (default: 1000)",
    )

    parser.add_argument(
        "--max-records",
        type=int,
        default=None,
        help="Stop after visiting this many records (default: no limit)",
    )

    parser.add_argument(
        "--no-expand",
        action="store_true",
        help="Only follow references; do not pull in every record of a seen type or namespace",
    )

    parser.add_argument(
        "--manifest",
        action="store_true",
        help="Also write a JSON manifest of records, references and errors",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(args)


def build_settings(parsed) -> TraversalSettings:
    """Combine defaults, the optional config file, and command line flags."""
    settings = load_settings(Path(parsed.config)) if parsed.config else TraversalSettings()
    return settings.merged(
        max_depth=parsed.max_depth,
        batch_size=parsed.batch_size,
        per_category_cap=parsed.per_category_cap,
        max_records=parsed.max_records,
        expand_categories=False if parsed.no_expand else None,
    )


def main(args=None):
    """Main entry point."""
    parsed = parse_args(args)
    configure_logging(parsed.verbose)

    try:
        settings = build_settings(parsed)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        store = DirectoryRecordStore(Path(parsed.store))
    except StoreUnavailableError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Phase 1: walk the references
    controller = FrontierController(store, settings)
    try:
        result = controller.run(parsed.seed)
    except FatalPreconditionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Phase 2: export
    output_dir = Path(parsed.output) / sanitize_filename(parsed.seed)
    writer = ExportWriter(DirectorySink(output_dir), manifest=parsed.manifest)
    report = writer.write(result)

    print(
        f"Recursive export complete: {len(result.graph)} records, "
        f"{len(result.record_types)} types, {len(result.namespaces)} namespaces "
        f"in {round(result.elapsed_seconds + report.elapsed_seconds)}s. Files saved to: {output_dir}",
        file=sys.stderr,
    )
    if not report.ok:
        print(f"Warning: {len(report.failed)} output(s) could not be written", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
