"""
String/JSON value helpers shared by the filters.

Filter values are always strings. Collections travel between filters as
compact JSON text, the same shape ``JSON.stringify`` produces in the browser
extension, so ``split`` output can feed ``join`` or ``wikilink`` directly.
"""

import json
import math
import re
from collections.abc import Mapping
from typing import Any

_MISSING = object()


def try_parse_json(text: str, default: Any = _MISSING) -> Any:
    """Parses ``text`` as JSON, returning ``default`` (or ``text``) on failure."""
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return text if default is _MISSING else default


def parse_collection(text: str) -> list | dict | None:
    """Returns the parsed list/dict, or None when ``text`` is not one."""
    if not text or text[0] not in "[{":
        return None
    value = try_parse_json(text, None)
    if isinstance(value, (list, dict)):
        return value
    return None


def to_json(value: Any) -> str:
    """Compact JSON without ASCII escaping."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def stringify(value: Any) -> str:
    """Converts any value to the string a filter chain carries."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, (list, tuple, dict)):
        return to_json(list(value) if isinstance(value, tuple) else value)
    return str(value)


def format_number(value: int | float) -> str:
    """Formats numbers like JavaScript does (``3.0`` → ``3``)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def parse_number(text: str) -> float | None:
    """Parses a leading float like ``parseFloat``; None when there is none."""
    match = re.match(r"\s*[+-]?(\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)", text)
    if not match:
        return None
    return float(match.group(0))


def parse_int(text: str) -> int | None:
    """Parses a leading integer like ``parseInt(text, 10)``."""
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else None


_PATH_SEPARATOR = re.compile(r"[.\[\]]")


def lookup_path(value: Any, path: str) -> Any:
    """Walks ``author.name`` / ``items[0].title`` style paths; None if absent.

    JSON text met on the way (a ``split`` result stored by ``{% set %}``) is
    walked as the collection it encodes.
    """
    current = value
    for key in filter(None, _PATH_SEPARATOR.split(path)):
        if isinstance(current, str):
            current = parse_collection(current)
        if isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, list) and key.isdigit():
            index = int(key)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current
