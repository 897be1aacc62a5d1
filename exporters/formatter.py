"""
Typed value formatter.

Renders record content as indented YAML-style text. Store value wrappers
(``{"$type": "Bool", "$value": true}``) are unwrapped, small coordinate
objects stay on one line, and strings are only quoted when needed.

Composite values (objects and non-empty lists) render as text starting with
a newline, so callers write ``key:`` directly followed by the result.
"""

import math
from typing import Any, List, Mapping

from crawler.references import is_plain_scalar
from graph.model import TYPE_KEY, get_data_source

INDENT = "  "
NULL = "null"
EMPTY_STRING = "''"
EMPTY_LIST = "[]"
VALUE_KEY = "$value"

COORDINATE_KEYS = {"x", "y", "z", "w"}
MAX_COORDINATE_KEYS = 4

IDENTIFIER_TYPES = {"TweakDBID", "CName", "String"}
BOOL_TYPES = {"Bool"}
NUMERIC_TYPES = {
    "Float", "Double",
    "Int8", "Int16", "Int32", "Int64",
    "Uint8", "Uint16", "Uint32", "Uint64",
}


def format_bool(value: Any) -> str:
    """Render a boolean as ``True``/``False``."""
    if isinstance(value, str):
        value = value.strip().lower() == "true"
    return "True" if value else "False"


def format_number(value: Any) -> str:
    """Render a number in literal decimal form; integral floats drop the ``.0``."""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def format_string(value: str) -> str:
    """Render a bare string, quoting it unless it is a plain identifier or number."""
    if value == "":
        return EMPTY_STRING
    if is_plain_scalar(value):
        return value
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def is_wrapped_value(value: Any) -> bool:
    """True for store wrappers carrying both a type name and a raw value."""
    return isinstance(value, Mapping) and bool(value.get(TYPE_KEY)) and VALUE_KEY in value


def is_coordinate(value: Mapping) -> bool:
    """True for objects like ``{x: 0, y: 1, z: 2}`` with only numeric components."""
    if len(value) > MAX_COORDINATE_KEYS:
        return False
    for key, component in value.items():
        if not isinstance(key, str) or key.lower() not in COORDINATE_KEYS:
            return False
        if isinstance(component, bool) or not isinstance(component, (int, float)):
            return False
    return True


def format_wrapped(value: Mapping, level: int = 0) -> str:
    """Unwrap a ``{"$type": ..., "$value": ...}`` wrapper."""
    type_name = value[TYPE_KEY]
    raw = value[VALUE_KEY]

    if raw is None:
        return NULL
    if type_name in BOOL_TYPES:
        return format_bool(raw)
    if type_name in NUMERIC_TYPES and isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return format_number(raw)
    if isinstance(raw, str) or (type_name in IDENTIFIER_TYPES and not isinstance(raw, (Mapping, list))):
        # Identifier and string wrappers hold raw text
        text = str(raw)
        if "\n" in text or "\r" in text:
            return format_string(text)
        return text if text != "" else EMPTY_STRING
    return format_value(raw, level)


def format_inline(value: Mapping) -> str:
    """Render a coordinate object as ``{x: 0, y: 0, z: 0}``."""
    parts = [f"{key}: {format_number(component)}" for key, component in value.items()]
    return "{" + ", ".join(parts) + "}"


def _ordered_items(value: Mapping) -> List[Any]:
    items = list(value.items())
    if TYPE_KEY in value:
        items = [(TYPE_KEY, value[TYPE_KEY])] + [(k, v) for k, v in items if k != TYPE_KEY]
    return items


def format_entry(key: Any, text: str) -> str:
    """Join a key and its formatted value."""
    if text.startswith("\n"):
        return f"{key}:{text}"
    return f"{key}: {text}"


def format_value(value: Any, level: int = 0) -> str:
    """
    Format a content value.

    Args:
        value: Any JSON-like value.
        level: Indentation level of the lines this value produces when it
            spans several lines (two spaces per level).

    Returns:
        Rendered text. Objects and non-empty lists start with a newline.
    """
    if value is None:
        return NULL

    if isinstance(value, bool):
        return format_bool(value)

    if isinstance(value, (int, float)):
        return format_number(value)

    if isinstance(value, str):
        return format_string(value)

    if isinstance(value, Mapping):
        if is_wrapped_value(value):
            return format_wrapped(value, level)
        if is_coordinate(value):
            return format_inline(value)

        spaces = INDENT * level
        lines = []
        for key, item in _ordered_items(value):
            lines.append("\n" + spaces + format_entry(key, format_value(item, level + 1)))
        return "".join(lines)

    if isinstance(value, (list, tuple)):
        if not value:
            return EMPTY_LIST

        spaces = INDENT * level
        lines = []
        for item in value:
            text = format_value(item, level + 1)
            marker = "-" if text.startswith("\n") else "- "
            lines.append("\n" + spaces + marker + text)
        return "".join(lines)

    return str(value)


def format_record(path: str, content: Any) -> str:
    """
    Render one record as ``path:`` followed by its fields.

    The record's ``$type`` is written first, then the remaining fields of its
    payload in document order.
    """
    header = f"{path}:"
    if not content:
        return header + "\n" + INDENT + "# No record data\n"

    data = get_data_source(content)
    if not isinstance(data, Mapping):
        return format_entry(path, format_value(data, 1)) + "\n"

    lines = [header]
    for key, item in _ordered_items(data):
        lines.append(INDENT + format_entry(key, format_value(item, 2)))
    return "\n".join(lines) + "\n"

