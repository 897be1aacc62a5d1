"""Exporters for rendering a finished walk."""

from .formatter import format_record, format_value
from .json_exporter import to_json
from .text_exporter import ExportReport, ExportWriter, sanitize_filename

__all__ = [
    "format_record",
    "format_value",
    "to_json",
    "ExportReport",
    "ExportWriter",
    "sanitize_filename",
]
